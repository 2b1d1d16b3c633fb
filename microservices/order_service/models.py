"""
Order Service Data Models

Pydantic models for order intake, status updates, listing and statistics.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from decimal import Decimal
from enum import Enum


class OrderStatus(str, Enum):
    """Order status enumeration"""
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """Payment status enumeration"""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    """Accepted payment methods"""
    CREDIT_CARD = "credit_card"
    PAYPAL = "paypal"
    BANK_TRANSFER = "bank_transfer"
    COD = "cod"
    UPI = "upi"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


# Columns a listing may be sorted by
SORTABLE_FIELDS = {
    "created_at",
    "updated_at",
    "order_number",
    "customer_name",
    "customer_email",
    "total_amount",
    "subtotal",
    "order_status",
    "payment_status",
    "payment_method",
}


# Core Order Models

class ShippingAddress(BaseModel):
    """Shipping address"""
    street: str
    city: str
    state: str
    zip_code: str
    country: str


class OrderItem(BaseModel):
    """Order line item"""
    name: str
    quantity: int
    price: Decimal
    variant: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class Order(BaseModel):
    """Core order model"""
    order_number: str
    customer_name: str
    customer_email: str
    customer_phone: str
    shipping_address: ShippingAddress
    products: List[OrderItem]
    subtotal: Decimal
    tax: Decimal = Decimal("0")
    shipping_fee: Decimal = Decimal("0")
    total_amount: Decimal
    payment_method: PaymentMethod
    payment_status: PaymentStatus = PaymentStatus.PENDING
    order_status: OrderStatus = OrderStatus.PENDING
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.products)


# Request Models

class ShippingAddressRequest(BaseModel):
    """Shipping address as submitted by the client"""
    street: str = Field(..., description="Street address")
    city: str = Field(..., description="City")
    state: str = Field(..., description="State or province")
    zip_code: str = Field(..., description="ZIP / postal code")
    country: str = Field(..., description="Country")


class OrderItemRequest(BaseModel):
    """Line item as submitted by the client"""
    name: str = Field(..., description="Product name")
    quantity: int = Field(..., description="Quantity, at least 1")
    price: Decimal = Field(..., description="Unit price, not negative")
    variant: Optional[str] = Field(None, description="Variant / type tag")


class OrderCreateRequest(BaseModel):
    """
    Create order request

    Shape only; business rules (non-empty after trimming, email and phone
    patterns, non-negative amounts) are checked by OrderService so that all
    violations are reported together. Any client-sent total is ignored.
    """
    customer_name: str = Field(..., description="Customer full name")
    customer_email: str = Field(..., description="Customer email address")
    customer_phone: str = Field(..., description="Customer phone number")
    shipping_address: ShippingAddressRequest = Field(..., description="Shipping address")
    products: List[OrderItemRequest] = Field(..., description="Ordered line items")
    subtotal: Decimal = Field(..., description="Sum of line items")
    tax: Optional[Decimal] = Field(None, description="Tax amount, defaults to 0")
    shipping_fee: Optional[Decimal] = Field(None, description="Shipping fee, defaults to 0")
    payment_method: Optional[str] = Field(None, description="Payment method")
    notes: Optional[str] = Field(None, description="Free-text notes")


class OrderStatusUpdateRequest(BaseModel):
    """Update order / payment status request"""
    order_status: Optional[str] = Field(None, description="New order status")
    payment_status: Optional[str] = Field(None, description="New payment status")


# Response Models

class FieldError(BaseModel):
    """Single field-level validation failure"""
    field: str
    message: str


class OrderResponse(BaseModel):
    """Order response model"""
    success: bool
    order: Optional[Order] = None
    message: str
    error_code: Optional[str] = None


class Pagination(BaseModel):
    """Pagination metadata"""
    page: int
    limit: int
    total: int
    pages: int


class OrderListResponse(BaseModel):
    """Order list response"""
    success: bool = True
    orders: List[Order]
    pagination: Pagination


# Filter and Query Models

class OrderFilter(BaseModel):
    """Order filtering, pagination and sorting parameters"""
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    search: Optional[str] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    sort_by: str = Field(default="created_at")
    sort_order: SortOrder = Field(default=SortOrder.DESC)

    @field_validator('sort_by')
    @classmethod
    def validate_sort_by(cls, v):
        if v not in SORTABLE_FIELDS:
            raise ValueError(f"sort_by must be one of: {', '.join(sorted(SORTABLE_FIELDS))}")
        return v

    @field_validator('search')
    @classmethod
    def normalize_search(cls, v):
        if v is None:
            return None
        v = v.strip()
        return v or None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


# Order Statistics Models

class OrderStatistics(BaseModel):
    """Order statistics model"""
    total_orders: int
    today_orders: int
    yesterday_orders: int
    month_orders: int
    orders_by_status: Dict[str, int]
    orders_by_payment_status: Dict[str, int]
    total_revenue: Decimal
    avg_order_value: Decimal
    timestamp: datetime


class OrderServiceStatus(BaseModel):
    """Order service status response"""
    service: str = "order_service"
    status: str = "operational"
    port: int = 8210
    version: str = "1.0.0"
    database_connected: bool
    notifications_available: Optional[bool] = None
    timestamp: Optional[datetime] = None
