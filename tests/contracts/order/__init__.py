"""
Order Service Contracts

Data contracts for order_service testing.
"""

from .data_contract import (
    # Enums
    OrderStatusContract,
    PaymentStatusContract,
    PaymentMethodContract,
    # Test Data Factory
    OrderTestDataFactory,
    # Builders
    OrderCreateRequestBuilder,
)

__all__ = [
    "OrderStatusContract",
    "PaymentStatusContract",
    "PaymentMethodContract",
    "OrderTestDataFactory",
    "OrderCreateRequestBuilder",
]
