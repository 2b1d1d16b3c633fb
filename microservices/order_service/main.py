"""
Order Microservice

Responsibilities:
- Order intake with unique day-scoped order numbers
- Customer and admin email notifications for new orders
- Order lookup, listing and search
- Order and payment status updates
- Order statistics
"""

from fastapi import FastAPI, HTTPException, Depends, Request, status, Query, Path, Body, BackgroundTasks
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
import uvicorn
import logging
from contextlib import asynccontextmanager
import sys
import os
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone

# Add parent directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../..'))

# Import local components
from .order_service import OrderService
from .factory import create_order_service
from .protocols import (
    DependencyUnavailableError, DuplicateOrderError, OrderNotFoundError,
    OrderServiceError, OrderValidationError
)
from core.config_manager import ConfigManager
from core.logger import setup_service_logger
from core.postgres_client import PostgresClientWrapper
from core.smtp_client import AsyncSMTPClient
from .models import (
    OrderCreateRequest, OrderStatusUpdateRequest, OrderResponse,
    OrderListResponse, OrderFilter, OrderStatus, PaymentStatus, SortOrder,
    OrderServiceStatus
)
from .notifications import NotificationDispatcher

# Initialize configuration
config_manager = ConfigManager("order_service")
config = config_manager.get_service_config()

# Setup loggers (use actual service name)
app_logger = setup_service_logger("order_service", config_manager.get_logging_config())
logger = app_logger  # for backward compatibility

SERVICE_VERSION = "1.0.0"
GENERIC_ERROR_MESSAGE = "Internal server error"


class OrderMicroservice:
    """Order microservice core class"""

    def __init__(self):
        self.order_service: Optional[OrderService] = None
        self.dispatcher: Optional[NotificationDispatcher] = None
        self.db: Optional[PostgresClientWrapper] = None
        self.smtp_client: Optional[AsyncSMTPClient] = None

    async def initialize(self):
        """Initialize the microservice"""
        try:
            self.db = PostgresClientWrapper(
                service_name=config.service_name,
                config=config_manager.get_infra_config()
            )
            self.smtp_client = AsyncSMTPClient(config_manager.get_infra_config())
            self.order_service, self.dispatcher = create_order_service(
                config_manager,
                db=self.db,
                smtp_client=self.smtp_client
            )
            logger.info("Order microservice initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize order microservice: {e}")
            raise

        try:
            await self.order_service.repository.ensure_schema()
        except DependencyUnavailableError as e:
            logger.warning(f"⚠️  Order store not ready: {e}. Requests will fail until it is reachable.")

        await self.check_notifications()

    async def check_notifications(self) -> Dict[str, Any]:
        """Verify the mail transport and switch the dispatcher accordingly"""
        smtp_status = await self.smtp_client.verify()
        if smtp_status["available"]:
            self.dispatcher.mark_available()
            logger.info("✅ Mail transport verified")
        else:
            self.dispatcher.mark_unavailable(smtp_status["error"] or "mail transport unavailable")
        return {
            **smtp_status,
            "notifications_enabled": self.dispatcher.enabled,
            "notifications_available": self.dispatcher.available,
            "pending_notifications": self.dispatcher.pending,
        }

    async def shutdown(self):
        """Shutdown the microservice"""
        try:
            if self.dispatcher:
                await self.dispatcher.drain(timeout=config_manager.get_infra_config().smtp_timeout)
            if self.smtp_client:
                await self.smtp_client.close()
                logger.info("SMTP connection closed")
            if self.db:
                await self.db.close()
                logger.info("PostgreSQL pool closed")
            logger.info("Order microservice shutdown completed")
        except Exception as e:
            logger.error(f"Error during shutdown: {e}")


# Global microservice instance
order_microservice = OrderMicroservice()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    await order_microservice.initialize()

    yield

    await order_microservice.shutdown()


# Create FastAPI application
app = FastAPI(
    title="Order Service",
    description="Order intake, notification and reporting microservice",
    version=SERVICE_VERSION,
    lifespan=lifespan
)


# Dependency injection
def get_order_microservice() -> OrderMicroservice:
    """Get initialized microservice"""
    if not order_microservice.order_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Order service not initialized"
        )
    return order_microservice


def get_order_service() -> OrderService:
    """Get order service instance"""
    if not order_microservice.order_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Order service not initialized"
        )
    return order_microservice.order_service


# Health check endpoints
@app.get("/health")
async def health_check():
    """Service health check with dependency status"""
    database = {"healthy": False, "error": "not initialized"}
    if order_microservice.db:
        database = await order_microservice.db.health_check()

    return {
        "status": "healthy",
        "service": config.service_name,
        "port": config.service_port,
        "version": SERVICE_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "dependencies": {
            "database": database,
            "notifications": {
                "available": bool(order_microservice.dispatcher and order_microservice.dispatcher.available),
                "reason": order_microservice.dispatcher.unavailable_reason if order_microservice.dispatcher else None,
            },
        },
    }


@app.get("/health/detailed", response_model=OrderServiceStatus)
async def detailed_health_check(
    microservice: OrderMicroservice = Depends(get_order_microservice)
):
    """Detailed health check with database connectivity"""
    health_data = await microservice.db.health_check()
    return OrderServiceStatus(
        port=config.service_port,
        version=SERVICE_VERSION,
        database_connected=health_data["healthy"],
        notifications_available=microservice.dispatcher.available,
        timestamp=datetime.now(timezone.utc)
    )


# Order intake

@app.post("/api/v1/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    request: OrderCreateRequest,
    background_tasks: BackgroundTasks = BackgroundTasks(),
    order_service: OrderService = Depends(get_order_service)
):
    """Create a new order; notification emails go out after the response"""
    return await order_service.create_order(request, schedule=background_tasks.add_task)


# Order query endpoints (fixed paths before /{order_number})

@app.get("/api/v1/orders", response_model=OrderListResponse)
async def list_orders(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Items per page"),
    order_status: Optional[OrderStatus] = Query(None, alias="status", description="Filter by order status"),
    payment_status: Optional[PaymentStatus] = Query(None, description="Filter by payment status"),
    start_date: Optional[datetime] = Query(None, description="Created at or after"),
    end_date: Optional[datetime] = Query(None, description="Created at or before"),
    search: Optional[str] = Query(None, description="Order number, customer name, email or phone"),
    sort_by: str = Query("created_at", description="Sort column"),
    sort_order: SortOrder = Query(SortOrder.DESC, description="asc or desc"),
    order_service: OrderService = Depends(get_order_service)
):
    """List orders with filtering, sorting and pagination"""
    try:
        filter_params = OrderFilter(
            status=order_status,
            payment_status=payment_status,
            start_date=start_date,
            end_date=end_date,
            search=search,
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order
        )
    except ValidationError as e:
        raise OrderValidationError(_field_errors(e.errors()))
    return await order_service.list_orders(filter_params)


@app.get("/api/v1/orders/stats")
async def get_order_statistics(
    order_service: OrderService = Depends(get_order_service)
):
    """Get order statistics"""
    stats = await order_service.get_order_statistics()
    return {"success": True, "stats": stats}


@app.get("/api/v1/orders/notifications/status")
async def get_notification_status(
    microservice: OrderMicroservice = Depends(get_order_microservice)
):
    """Verify the mail transport and report notification status"""
    notifications = await microservice.check_notifications()
    return {"success": True, "notifications": notifications}


@app.get("/api/v1/orders/{order_number}")
async def get_order(
    order_number: str = Path(..., description="Order number"),
    order_service: OrderService = Depends(get_order_service)
):
    """Get order details"""
    order = await order_service.get_order(order_number)
    return {"success": True, "order": order}


@app.patch("/api/v1/orders/{order_number}/status", response_model=OrderResponse)
@app.put("/api/v1/orders/{order_number}/status", response_model=OrderResponse)
async def update_order_status(
    order_number: str = Path(..., description="Order number"),
    request: OrderStatusUpdateRequest = Body(...),
    order_service: OrderService = Depends(get_order_service)
):
    """Update order status and/or payment status"""
    return await order_service.update_order_status(order_number, request)


@app.get("/api/v1/customers/{email}/orders")
async def get_customer_orders(
    email: str = Path(..., description="Customer email"),
    order_service: OrderService = Depends(get_order_service)
):
    """Get orders for a specific customer"""
    orders = await order_service.get_customer_orders(email)
    return {
        "success": True,
        "orders": orders,
        "count": len(orders)
    }


# Error handlers

def _field_errors(errors) -> List[Dict[str, str]]:
    """Flatten pydantic error entries into {field, message} pairs"""
    return [
        {
            "field": ".".join(
                str(part) for part in error.get("loc", ())
                if part not in ("body", "query", "path")
            ) or "request",
            "message": error.get("msg", "Invalid value"),
        }
        for error in errors
    ]


def _error_response(
    status_code: int,
    message: str,
    error_code: str,
    errors: Optional[List[Dict[str, str]]] = None
) -> JSONResponse:
    content: Dict[str, Any] = {
        "success": False,
        "message": message,
        "error_code": error_code,
    }
    if errors is not None:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content)


def _server_error_message(exc: Exception, default: str) -> str:
    return GENERIC_ERROR_MESSAGE if config.is_production else (str(exc) or default)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        "Validation failed",
        "VALIDATION_ERROR",
        _field_errors(exc.errors())
    )


@app.exception_handler(OrderValidationError)
async def validation_error_handler(request: Request, exc: OrderValidationError):
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        exc.message,
        "VALIDATION_ERROR",
        exc.errors
    )


@app.exception_handler(DuplicateOrderError)
async def duplicate_error_handler(request: Request, exc: DuplicateOrderError):
    return _error_response(
        status.HTTP_409_CONFLICT,
        "Order number already exists. Please retry.",
        "DUPLICATE_ORDER_NUMBER"
    )


@app.exception_handler(OrderNotFoundError)
async def not_found_error_handler(request: Request, exc: OrderNotFoundError):
    return _error_response(
        status.HTTP_404_NOT_FOUND,
        str(exc) or "Order not found",
        "ORDER_NOT_FOUND"
    )


@app.exception_handler(DependencyUnavailableError)
async def dependency_error_handler(request: Request, exc: DependencyUnavailableError):
    logger.error(f"Dependency failure on {request.method} {request.url.path}: {exc}")
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        _server_error_message(exc, "Order store unavailable"),
        "DEPENDENCY_ERROR"
    )


@app.exception_handler(OrderServiceError)
async def service_error_handler(request: Request, exc: OrderServiceError):
    logger.error(f"Order service error on {request.method} {request.url.path}: {exc}")
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        _server_error_message(exc, "Order service error"),
        "INTERNAL_ERROR"
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unexpected error on {request.method} {request.url.path}: {type(exc).__name__}: {exc}")
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        _server_error_message(exc, GENERIC_ERROR_MESSAGE),
        "INTERNAL_ERROR"
    )


if __name__ == "__main__":
    # Print configuration summary for debugging
    config_manager.print_config_summary()

    uvicorn.run(
        "microservices.order_service.main:app",
        host=config.service_host,
        port=config.service_port,
        reload=config.debug,
        log_level=config.log_level.lower()
    )
