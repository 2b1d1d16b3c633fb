"""
Order Service - Mock Dependencies

Mock implementations for component testing.
Returns Order model objects as expected by the service.
"""
import asyncio
from datetime import datetime
from decimal import Decimal
from email.message import EmailMessage
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

import aiosmtplib

from microservices.order_service.models import (
    Order, OrderFilter, OrderStatus, PaymentStatus, SortOrder
)
from microservices.order_service.protocols import DuplicateOrderError


class MockOrderRepository:
    """Mock order repository for component testing

    Implements OrderRepositoryProtocol interface.
    Order numbers are unique, like the real table's constraint.
    """

    def __init__(self, yield_after_read: bool = False):
        self._data: Dict[str, Order] = {}
        self._sequences: Dict[str, int] = {}
        self._error: Optional[Exception] = None
        self._call_log: List[Dict] = []
        # Hand control back to the loop after counting, so concurrent
        # creations interleave like separate requests against a real store
        self.yield_after_read = yield_after_read

    def set_order(self, order: Order):
        """Add an order to the mock repository"""
        self._data[order.order_number] = order

    def set_error(self, error: Exception):
        """Set an error to be raised on operations"""
        self._error = error

    def _log_call(self, method: str, **kwargs):
        """Log method calls for assertions"""
        self._call_log.append({"method": method, "kwargs": kwargs})
        if self._error:
            raise self._error

    def assert_called(self, method: str):
        """Assert that a method was called"""
        called_methods = [c["method"] for c in self._call_log]
        assert method in called_methods, f"Expected {method} to be called, but got {called_methods}"

    def assert_not_called(self, method: str):
        called_methods = [c["method"] for c in self._call_log]
        assert method not in called_methods, f"Expected {method} not to be called"

    def get_call_count(self, method: str) -> int:
        """Get number of times a method was called"""
        return sum(1 for c in self._call_log if c["method"] == method)

    @property
    def orders(self) -> List[Order]:
        return list(self._data.values())

    async def create_order(self, order: Order) -> Order:
        self._log_call("create_order", order_number=order.order_number)
        if order.order_number in self._data:
            raise DuplicateOrderError(f"Order number {order.order_number} already exists")
        self._data[order.order_number] = order
        return order

    async def get_order(self, order_number: str) -> Optional[Order]:
        self._log_call("get_order", order_number=order_number)
        return self._data.get(order_number)

    async def update_order_status(
        self,
        order_number: str,
        order_status: Optional[OrderStatus] = None,
        payment_status: Optional[PaymentStatus] = None
    ) -> Optional[Order]:
        self._log_call(
            "update_order_status",
            order_number=order_number,
            order_status=order_status,
            payment_status=payment_status
        )
        order = self._data.get(order_number)
        if not order:
            return None

        changes: Dict[str, Any] = {"updated_at": datetime.now().astimezone()}
        if order_status is not None:
            changes["order_status"] = order_status
        if payment_status is not None:
            changes["payment_status"] = payment_status
        updated = order.model_copy(update=changes)
        self._data[order_number] = updated
        return updated

    async def list_orders(self, filter_params: OrderFilter) -> Tuple[List[Order], int]:
        self._log_call("list_orders", filter_params=filter_params)
        orders = list(self._data.values())

        if filter_params.status:
            orders = [o for o in orders if o.order_status == filter_params.status]
        if filter_params.payment_status:
            orders = [o for o in orders if o.payment_status == filter_params.payment_status]
        if filter_params.start_date:
            orders = [o for o in orders if o.created_at >= filter_params.start_date]
        if filter_params.end_date:
            orders = [o for o in orders if o.created_at <= filter_params.end_date]
        if filter_params.search:
            term = filter_params.search.lower()
            orders = [
                o for o in orders
                if any(term in value.lower() for value in (
                    o.order_number, o.customer_name, o.customer_email, o.customer_phone
                ))
            ]

        orders.sort(
            key=lambda o: getattr(o, filter_params.sort_by),
            reverse=filter_params.sort_order == SortOrder.DESC
        )
        total = len(orders)
        page = orders[filter_params.offset:filter_params.offset + filter_params.limit]
        return page, total

    async def get_orders_by_email(self, email: str) -> List[Order]:
        self._log_call("get_orders_by_email", email=email)
        email = email.strip().lower()
        orders = [o for o in self._data.values() if o.customer_email.lower() == email]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    async def count_orders_since(self, since: datetime) -> int:
        self._log_call("count_orders_since", since=since)
        count = sum(1 for o in self._data.values() if o.created_at >= since)
        if self.yield_after_read:
            await asyncio.sleep(0)
        return count

    async def next_daily_sequence(self, day: str) -> int:
        self._log_call("next_daily_sequence", day=day)
        self._sequences[day] = self._sequences.get(day, 0) + 1
        value = self._sequences[day]
        if self.yield_after_read:
            await asyncio.sleep(0)
        return value

    async def get_order_statistics(
        self,
        today_start: datetime,
        yesterday_start: datetime,
        month_start: datetime
    ) -> Dict[str, Any]:
        self._log_call("get_order_statistics", today_start=today_start)
        orders = list(self._data.values())
        revenue = sum((o.total_amount for o in orders), Decimal("0"))

        by_status: Dict[str, int] = {}
        by_payment: Dict[str, int] = {}
        for o in orders:
            by_status[o.order_status.value] = by_status.get(o.order_status.value, 0) + 1
            by_payment[o.payment_status.value] = by_payment.get(o.payment_status.value, 0) + 1

        return {
            "total_orders": len(orders),
            "today_orders": sum(1 for o in orders if o.created_at >= today_start),
            "yesterday_orders": sum(
                1 for o in orders if yesterday_start <= o.created_at < today_start
            ),
            "month_orders": sum(1 for o in orders if o.created_at >= month_start),
            "total_revenue": revenue,
            "avg_order_value": revenue / len(orders) if orders else Decimal("0"),
            "orders_by_status": by_status,
            "orders_by_payment_status": by_payment,
        }


class MockMailTransport:
    """Mock mail transport

    Implements MailTransportProtocol. Records every attempted message;
    recipients listed in ``fail_for`` are refused.
    """

    def __init__(
        self,
        sender: str = "shop@example.com",
        admin_address: str = "admin@example.com",
        fail_for: Optional[Set[str]] = None
    ):
        self.sender = sender
        self.admin_address = admin_address
        self.fail_for = fail_for or set()
        self.attempts: List[EmailMessage] = []
        self.sent: List[EmailMessage] = []

    async def send_message(self, message: EmailMessage) -> None:
        self.attempts.append(message)
        if message["To"] in self.fail_for:
            raise aiosmtplib.SMTPResponseException(550, "Mailbox unavailable")
        self.sent.append(message)

    def attempts_to(self, address: str) -> int:
        return sum(1 for m in self.attempts if m["To"] == address)


class MockNotifier:
    """Mock notification dispatcher

    Implements NotificationDispatcherProtocol.
    """

    def __init__(self, error: Optional[Exception] = None):
        self.dispatched: List[Order] = []
        self.schedules: List[Optional[Callable[..., Any]]] = []
        self._error = error

    def dispatch(self, order: Order, schedule: Optional[Callable[..., Any]] = None) -> None:
        self.dispatched.append(order)
        self.schedules.append(schedule)
        if self._error:
            raise self._error


class MockNumberGenerator:
    """Mock order number generator

    Implements OrderNumberGeneratorProtocol. Hands out ``numbers`` in order
    and repeats the last one when exhausted.
    """

    def __init__(self, numbers: List[str]):
        self.numbers = list(numbers)
        self.calls = 0

    async def generate(self, now: Optional[datetime] = None) -> str:
        index = min(self.calls, len(self.numbers) - 1)
        self.calls += 1
        return self.numbers[index]
