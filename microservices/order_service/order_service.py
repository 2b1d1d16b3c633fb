"""
Order Service Business Logic

Order intake (validation, totals, numbering, persistence, notification
hand-off) and the read side (lookup, listing, status updates, statistics).

Uses dependency injection for testability:
- Repository, number generator and notifier are injected
- No I/O at import time
"""

import logging
import re
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, List, Optional

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from core.config import OrderConfig
from .models import (
    Order, OrderCreateRequest, OrderFilter, OrderItem, OrderListResponse,
    OrderResponse, OrderStatistics, OrderStatus, OrderStatusUpdateRequest,
    Pagination, PaymentMethod, PaymentStatus, ShippingAddress
)
from .order_number import day_boundaries, local_now
from .protocols import (
    DuplicateOrderError,
    NotificationDispatcherProtocol,
    OrderNotFoundError,
    OrderNumberGeneratorProtocol,
    OrderRepositoryProtocol,
    OrderValidationError,
)

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
CENTS = Decimal("0.01")
# Largest value a NUMERIC(12, 2) column holds
MAX_AMOUNT = Decimal("9999999999.99")

ADDRESS_FIELDS = ("street", "city", "state", "zip_code", "country")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


class OrderService:
    """
    Order management business logic service

    Handles order intake and the order read side.
    """

    def __init__(
        self,
        repository: OrderRepositoryProtocol,
        number_generator: OrderNumberGeneratorProtocol,
        notifier: Optional[NotificationDispatcherProtocol] = None,
        config: Optional[OrderConfig] = None,
    ):
        """
        Initialize Order Service

        Args:
            repository: Order store
            number_generator: Order number generator
            notifier: Notification dispatcher (optional, no emails when None)
            config: Order settings (defaults to OrderConfig.from_env())
        """
        self.repository = repository
        self.number_generator = number_generator
        self.notifier = notifier
        self.config = config or OrderConfig.from_env()
        self.phone_pattern = re.compile(rf"^\d{{{self.config.customer_phone_digits}}}$")
        self.default_payment_method = self._resolve_default_payment_method()

        logger.info("✅ OrderService initialized")

    def _resolve_default_payment_method(self) -> PaymentMethod:
        try:
            return PaymentMethod(self.config.default_payment_method)
        except ValueError:
            logger.warning(
                f"Invalid DEFAULT_PAYMENT_METHOD '{self.config.default_payment_method}', "
                f"using {PaymentMethod.CREDIT_CARD.value}"
            )
            return PaymentMethod.CREDIT_CARD

    # Order Intake

    async def create_order(
        self,
        request: OrderCreateRequest,
        schedule: Optional[Callable[..., Any]] = None
    ) -> OrderResponse:
        """
        Create a new order

        Validates the request, computes the total, assigns an order number,
        persists the order and hands it to the notifier without waiting.
        `schedule` (e.g. BackgroundTasks.add_task) defers the emails until
        the response has been sent.

        Raises:
            OrderValidationError: request failed one or more rules
            DuplicateOrderError: order number already taken (client may retry)
            DependencyUnavailableError: order store unreachable
        """
        errors = self._validate_order_create_request(request)
        if errors:
            logger.info(f"Order rejected: {len(errors)} validation error(s)")
            raise OrderValidationError(errors)

        subtotal = _money(request.subtotal)
        tax = _money(request.tax) if request.tax is not None else Decimal("0.00")
        shipping_fee = _money(request.shipping_fee) if request.shipping_fee is not None else Decimal("0.00")
        payment_method = self._coerce_payment_method(request.payment_method)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.create_max_attempts),
            retry=retry_if_exception_type(DuplicateOrderError),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        f"Retrying order creation after duplicate number "
                        f"(attempt {attempt.retry_state.attempt_number})"
                    )
                now = local_now()
                order_number = await self.number_generator.generate(now)
                order = Order(
                    order_number=order_number,
                    customer_name=request.customer_name.strip(),
                    customer_email=request.customer_email.strip().lower(),
                    customer_phone=request.customer_phone.strip(),
                    shipping_address=ShippingAddress(**{
                        field: getattr(request.shipping_address, field).strip()
                        for field in ADDRESS_FIELDS
                    }),
                    products=[
                        OrderItem(
                            name=item.name.strip(),
                            quantity=item.quantity,
                            price=_money(item.price),
                            variant=item.variant.strip() if item.variant and item.variant.strip() else None,
                        )
                        for item in request.products
                    ],
                    subtotal=subtotal,
                    tax=tax,
                    shipping_fee=shipping_fee,
                    total_amount=subtotal + tax + shipping_fee,
                    payment_method=payment_method,
                    payment_status=PaymentStatus.PENDING,
                    order_status=OrderStatus.PENDING,
                    notes=request.notes.strip() if request.notes and request.notes.strip() else None,
                    created_at=now,
                    updated_at=now,
                )
                persisted = await self.repository.create_order(order)

        logger.info(
            f"Order created: {persisted.order_number} for {persisted.customer_email} "
            f"(total {persisted.total_amount})"
        )

        self._dispatch_notifications(persisted, schedule)

        return OrderResponse(
            success=True,
            order=persisted,
            message="Order created successfully"
        )

    def _dispatch_notifications(self, order: Order, schedule: Optional[Callable[..., Any]] = None):
        if not self.notifier:
            return
        try:
            self.notifier.dispatch(order, schedule=schedule)
        except Exception as e:
            logger.error(f"Failed to schedule notifications for order {order.order_number}: {e}")

    def _coerce_payment_method(self, value: Optional[str]) -> PaymentMethod:
        """Unknown or missing methods fall back to the configured default"""
        if value:
            try:
                return PaymentMethod(value.strip().lower())
            except ValueError:
                logger.info(
                    f"Unknown payment method '{value}', using {self.default_payment_method.value}"
                )
        return self.default_payment_method

    def _validate_order_create_request(self, request: OrderCreateRequest) -> List[Dict[str, str]]:
        """Collect every field-level violation"""
        errors: List[Dict[str, str]] = []

        def error(field: str, message: str):
            errors.append({"field": field, "message": message})

        if not request.customer_name.strip():
            error("customer_name", "Customer name is required")

        email = request.customer_email.strip()
        if not email:
            error("customer_email", "Email is required")
        elif not EMAIL_PATTERN.match(email):
            error("customer_email", "Please provide a valid email")

        phone = request.customer_phone.strip()
        if not phone:
            error("customer_phone", "Phone number is required")
        elif not self.phone_pattern.match(phone):
            error(
                "customer_phone",
                f"Phone number must be {self.config.customer_phone_digits} digits"
            )

        for field in ADDRESS_FIELDS:
            if not getattr(request.shipping_address, field).strip():
                label = field.replace("_", " ").capitalize()
                error(f"shipping_address.{field}", f"{label} is required")

        if not request.products:
            error("products", "At least one product is required")
        for index, item in enumerate(request.products):
            if not item.name.strip():
                error(f"products[{index}].name", "Product name is required")
            if item.quantity < 1:
                error(f"products[{index}].quantity", "Quantity must be at least 1")
            if item.price < 0:
                error(f"products[{index}].price", "Price must not be negative")
            elif item.price > MAX_AMOUNT:
                error(f"products[{index}].price", f"Price must not exceed {MAX_AMOUNT}")

        amounts_valid = True
        for field, label in (("subtotal", "Subtotal"), ("tax", "Tax"), ("shipping_fee", "Shipping fee")):
            value = getattr(request, field)
            if value is None:
                continue
            if value < 0:
                error(field, f"{label} must not be negative")
                amounts_valid = False
            elif value > MAX_AMOUNT:
                error(field, f"{label} must not exceed {MAX_AMOUNT}")
                amounts_valid = False

        if amounts_valid:
            total = sum(
                (_money(value) for value in (request.subtotal, request.tax, request.shipping_fee) if value is not None),
                Decimal("0.00"),
            )
            if total > MAX_AMOUNT:
                error("total_amount", f"Order total must not exceed {MAX_AMOUNT}")

        return errors

    # Order Queries

    async def get_order(self, order_number: str) -> Order:
        """Get order by order number"""
        order = await self.repository.get_order(order_number.strip())
        if not order:
            raise OrderNotFoundError(f"Order not found: {order_number}")
        return order

    async def list_orders(self, filter_params: OrderFilter) -> OrderListResponse:
        """List orders with filtering, sorting and pagination"""
        # Naive bounds are server-local time
        local_bounds = {
            field: value.astimezone()
            for field, value in (
                ("start_date", filter_params.start_date),
                ("end_date", filter_params.end_date),
            )
            if value is not None and value.tzinfo is None
        }
        if local_bounds:
            filter_params = filter_params.model_copy(update=local_bounds)

        orders, total = await self.repository.list_orders(filter_params)
        pages = (total + filter_params.limit - 1) // filter_params.limit

        return OrderListResponse(
            orders=orders,
            pagination=Pagination(
                page=filter_params.page,
                limit=filter_params.limit,
                total=total,
                pages=pages
            )
        )

    async def get_customer_orders(self, email: str) -> List[Order]:
        """Get all orders placed with a customer email"""
        return await self.repository.get_orders_by_email(email)

    # Status Updates

    async def update_order_status(
        self,
        order_number: str,
        request: OrderStatusUpdateRequest
    ) -> OrderResponse:
        """
        Update order and/or payment status

        Only supplied fields change; updated_at is refreshed.

        Raises:
            OrderValidationError: unknown status value or nothing to update
            OrderNotFoundError: no order with this number
        """
        errors: List[Dict[str, str]] = []
        order_status = None
        payment_status = None

        if request.order_status is None and request.payment_status is None:
            errors.append({
                "field": "order_status",
                "message": "Provide order_status and/or payment_status"
            })

        if request.order_status is not None:
            try:
                order_status = OrderStatus(request.order_status)
            except ValueError:
                errors.append({
                    "field": "order_status",
                    "message": f"Invalid order status. Allowed: {', '.join(s.value for s in OrderStatus)}"
                })

        if request.payment_status is not None:
            try:
                payment_status = PaymentStatus(request.payment_status)
            except ValueError:
                errors.append({
                    "field": "payment_status",
                    "message": f"Invalid payment status. Allowed: {', '.join(s.value for s in PaymentStatus)}"
                })

        if errors:
            raise OrderValidationError(errors)

        updated_order = await self.repository.update_order_status(
            order_number.strip(),
            order_status=order_status,
            payment_status=payment_status
        )
        if not updated_order:
            raise OrderNotFoundError(f"Order not found: {order_number}")

        logger.info(
            f"Order {order_number} status updated: "
            f"order_status={order_status.value if order_status else '-'}, "
            f"payment_status={payment_status.value if payment_status else '-'}"
        )
        return OrderResponse(
            success=True,
            order=updated_order,
            message="Order updated successfully"
        )

    # Statistics

    async def get_order_statistics(self, now: Optional[datetime] = None) -> OrderStatistics:
        """Aggregate counts and revenue, computed fresh on every call"""
        now = now or local_now()
        today_start, yesterday_start, month_start = day_boundaries(now)
        stats: Dict[str, Any] = await self.repository.get_order_statistics(
            today_start, yesterday_start, month_start
        )

        return OrderStatistics(
            total_orders=stats["total_orders"],
            today_orders=stats["today_orders"],
            yesterday_orders=stats["yesterday_orders"],
            month_orders=stats["month_orders"],
            orders_by_status={
                status.value: stats["orders_by_status"].get(status.value, 0)
                for status in OrderStatus
            },
            orders_by_payment_status={
                status.value: stats["orders_by_payment_status"].get(status.value, 0)
                for status in PaymentStatus
            },
            total_revenue=_money(Decimal(str(stats["total_revenue"]))),
            avg_order_value=_money(Decimal(str(stats["avg_order_value"]))),
            timestamp=now
        )
