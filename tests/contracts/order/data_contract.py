"""
Order Service Data Contract

Defines canonical data structures for order service testing.
All tests MUST use these factories for consistency.

This is the SINGLE SOURCE OF TRUTH for order service test data.
"""

import itertools
import random
import secrets
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


# ============================================================================
# Enums (Mirror production models)
# ============================================================================

class OrderStatusContract(str, Enum):
    """Order status enumeration for contracts"""
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatusContract(str, Enum):
    """Payment status enumeration for contracts"""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethodContract(str, Enum):
    """Payment method enumeration for contracts"""
    CREDIT_CARD = "credit_card"
    PAYPAL = "paypal"
    BANK_TRANSFER = "bank_transfer"
    COD = "cod"
    UPI = "upi"


_order_sequence = itertools.count(1)


# ============================================================================
# Test Data Factory
# ============================================================================

class OrderTestDataFactory:
    """
    Test data factory for order_service.

    Request payloads are plain dicts in the HTTP wire shape; use
    ``make_create_request`` for the parsed request model.
    """

    # === Customer Generators ===

    @staticmethod
    def make_customer_name() -> str:
        return f"Customer {secrets.token_hex(3)}"

    @staticmethod
    def make_email() -> str:
        return f"buyer_{uuid.uuid4().hex[:10]}@example.com"

    @staticmethod
    def make_phone(digits: int = 10) -> str:
        """Generate a digit-only phone number"""
        return str(random.randint(6, 9)) + "".join(str(random.randint(0, 9)) for _ in range(digits - 1))

    @staticmethod
    def make_shipping_address(**overrides) -> Dict[str, str]:
        address = {
            "street": f"{random.randint(1, 999)} Market Street",
            "city": "Pune",
            "state": "Maharashtra",
            "zip_code": f"{random.randint(100000, 999999)}",
            "country": "India",
        }
        address.update(overrides)
        return address

    # === Product Generators ===

    @staticmethod
    def make_product(**overrides) -> Dict[str, Any]:
        product = {
            "name": f"Product {secrets.token_hex(4)}",
            "quantity": random.randint(1, 3),
            "price": str(Decimal(random.randint(100, 99999)) / 100),
            "variant": random.choice([None, "Red", "Large"]),
        }
        product.update(overrides)
        return product

    @staticmethod
    def make_products(count: int = 2) -> List[Dict[str, Any]]:
        return [OrderTestDataFactory.make_product() for _ in range(count)]

    @staticmethod
    def subtotal_of(products: List[Dict[str, Any]]) -> Decimal:
        return sum(
            (Decimal(str(p["price"])) * int(p["quantity"]) for p in products),
            Decimal("0")
        )

    # === Request Generators ===

    @staticmethod
    def make_create_payload(**overrides) -> Dict[str, Any]:
        """Generate a valid order creation payload (JSON shape)"""
        products = overrides.pop("products", None) or OrderTestDataFactory.make_products()
        payload = {
            "customer_name": OrderTestDataFactory.make_customer_name(),
            "customer_email": OrderTestDataFactory.make_email(),
            "customer_phone": OrderTestDataFactory.make_phone(),
            "shipping_address": OrderTestDataFactory.make_shipping_address(),
            "products": products,
            "subtotal": str(OrderTestDataFactory.subtotal_of(products)),
            "tax": "0",
            "shipping_fee": "0",
            "payment_method": PaymentMethodContract.CREDIT_CARD.value,
            "notes": None,
        }
        payload.update(overrides)
        return payload

    @staticmethod
    def make_create_request(**overrides):
        """Generate a valid OrderCreateRequest model"""
        from microservices.order_service.models import OrderCreateRequest

        return OrderCreateRequest(**OrderTestDataFactory.make_create_payload(**overrides))

    @staticmethod
    def make_status_update(
        order_status: Optional[str] = None,
        payment_status: Optional[str] = None
    ):
        from microservices.order_service.models import OrderStatusUpdateRequest

        return OrderStatusUpdateRequest(order_status=order_status, payment_status=payment_status)

    # === Stored Order Generators ===

    @staticmethod
    def make_order_number(day: Optional[datetime] = None, sequence: int = 1, prefix: str = "TRB") -> str:
        day = day or datetime.now().astimezone()
        return f"{prefix}{day:%y%m%d}{sequence:04d}"

    @staticmethod
    def make_order(**overrides):
        """Generate a persisted Order model"""
        from microservices.order_service.models import Order

        now = overrides.pop("created_at", None) or datetime.now().astimezone()
        products = overrides.pop("products", None) or OrderTestDataFactory.make_products(1)
        subtotal = OrderTestDataFactory.subtotal_of(products)
        tax = Decimal(str(overrides.pop("tax", "0")))
        shipping_fee = Decimal(str(overrides.pop("shipping_fee", "0")))
        defaults = {
            "order_number": OrderTestDataFactory.make_order_number(now, next(_order_sequence)),
            "customer_name": OrderTestDataFactory.make_customer_name(),
            "customer_email": OrderTestDataFactory.make_email(),
            "customer_phone": OrderTestDataFactory.make_phone(),
            "shipping_address": OrderTestDataFactory.make_shipping_address(),
            "products": products,
            "subtotal": subtotal,
            "tax": tax,
            "shipping_fee": shipping_fee,
            "total_amount": subtotal + tax + shipping_fee,
            "payment_method": PaymentMethodContract.CREDIT_CARD.value,
            "payment_status": PaymentStatusContract.PENDING.value,
            "order_status": OrderStatusContract.PENDING.value,
            "created_at": now,
            "updated_at": now,
        }
        defaults.update(overrides)
        return Order(**defaults)


# ============================================================================
# Request Builders
# ============================================================================

class OrderCreateRequestBuilder:
    """Builder for order creation payloads"""

    def __init__(self):
        self._payload = OrderTestDataFactory.make_create_payload()

    def with_customer(self, name: str, email: str, phone: str) -> 'OrderCreateRequestBuilder':
        self._payload.update(customer_name=name, customer_email=email, customer_phone=phone)
        return self

    def with_products(self, products: List[Dict[str, Any]]) -> 'OrderCreateRequestBuilder':
        self._payload["products"] = products
        self._payload["subtotal"] = str(OrderTestDataFactory.subtotal_of(products)) if products else "0"
        return self

    def with_amounts(self, subtotal, tax=None, shipping_fee=None) -> 'OrderCreateRequestBuilder':
        self._payload["subtotal"] = str(subtotal)
        self._payload["tax"] = None if tax is None else str(tax)
        self._payload["shipping_fee"] = None if shipping_fee is None else str(shipping_fee)
        return self

    def with_payment_method(self, value: Optional[str]) -> 'OrderCreateRequestBuilder':
        self._payload["payment_method"] = value
        return self

    def with_notes(self, value: str) -> 'OrderCreateRequestBuilder':
        self._payload["notes"] = value
        return self

    def with_field(self, field: str, value: Any) -> 'OrderCreateRequestBuilder':
        self._payload[field] = value
        return self

    def build_payload(self) -> Dict[str, Any]:
        return dict(self._payload)

    def build(self):
        from microservices.order_service.models import OrderCreateRequest

        return OrderCreateRequest(**self._payload)
