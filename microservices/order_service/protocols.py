"""
Order Service Protocols (Interfaces)

These interfaces define contracts for dependency injection.
NO import-time I/O dependencies - safe to import anywhere.
"""
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple, runtime_checkable
from datetime import datetime
from email.message import EmailMessage

# Import only models (no I/O dependencies)
from .models import Order, OrderFilter, OrderStatus, PaymentStatus


# ============================================================================
# Custom Exceptions - defined here to avoid importing repository
# ============================================================================

class OrderServiceError(Exception):
    """Base exception for order service errors"""
    pass


class OrderValidationError(OrderServiceError):
    """One or more fields of a request failed validation"""

    def __init__(self, errors: List[Dict[str, str]], message: str = "Validation failed"):
        super().__init__(message)
        self.message = message
        self.errors = errors


class OrderNotFoundError(OrderServiceError):
    """Order not found error"""
    pass


class DuplicateOrderError(OrderServiceError):
    """Order number already taken; the client may retry the request"""
    pass


class DependencyUnavailableError(OrderServiceError):
    """Order store unreachable or misconfigured"""
    pass


# ============================================================================
# Repository Protocol
# ============================================================================

@runtime_checkable
class OrderRepositoryProtocol(Protocol):
    """
    Interface for Order Repository.

    Implementations must provide these methods.
    Used for dependency injection to enable testing.
    """

    async def create_order(self, order: Order) -> Order:
        """Insert a new order; raises DuplicateOrderError on a taken number"""
        ...

    async def get_order(self, order_number: str) -> Optional[Order]:
        """Get order by order number"""
        ...

    async def update_order_status(
        self,
        order_number: str,
        order_status: Optional[OrderStatus] = None,
        payment_status: Optional[PaymentStatus] = None
    ) -> Optional[Order]:
        """Partial status update; None when the order does not exist"""
        ...

    async def list_orders(self, filter_params: OrderFilter) -> Tuple[List[Order], int]:
        """One page of matching orders plus the filtered total"""
        ...

    async def get_orders_by_email(self, email: str) -> List[Order]:
        """Orders placed with a customer email"""
        ...

    async def count_orders_since(self, since: datetime) -> int:
        """Number of orders created at or after `since`"""
        ...

    async def next_daily_sequence(self, day: str) -> int:
        """Atomically increment and return the counter for `day`"""
        ...

    async def get_order_statistics(
        self,
        today_start: datetime,
        yesterday_start: datetime,
        month_start: datetime
    ) -> Dict[str, Any]:
        """Aggregate counts and revenue"""
        ...


# ============================================================================
# Order Number Protocol
# ============================================================================

@runtime_checkable
class OrderNumberGeneratorProtocol(Protocol):
    """Produces the next order number"""

    async def generate(self, now: Optional[datetime] = None) -> str:
        ...


# ============================================================================
# Notification Protocols
# ============================================================================

@runtime_checkable
class MailTransportProtocol(Protocol):
    """Interface for the mail transport - no I/O imports"""

    sender: str
    admin_address: str

    async def send_message(self, message: EmailMessage) -> None:
        """Deliver one message"""
        ...


@runtime_checkable
class NotificationDispatcherProtocol(Protocol):
    """Fire-and-forget order notifications"""

    def dispatch(self, order: Order, schedule: Optional[Callable[..., Any]] = None) -> None:
        """Schedule notifications for a persisted order and return at once"""
        ...
