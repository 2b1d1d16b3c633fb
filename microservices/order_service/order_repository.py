"""
Order Repository

Data access layer for orders using the shared asyncpg pool.

Line items and the shipping address are stored as JSONB documents next to
the scalar columns; `order_number` carries a UNIQUE constraint which is the
final guard against duplicate numbers.
"""

from typing import Optional, List, Dict, Any, Tuple
from datetime import datetime, timezone
import asyncio
import logging

import asyncpg

from core.postgres_client import PostgresClientWrapper
from .models import Order, OrderFilter, OrderStatus, PaymentStatus, SortOrder
from .protocols import DependencyUnavailableError, DuplicateOrderError

logger = logging.getLogger(__name__)

# Errors meaning "the store is not reachable", as opposed to bad SQL or data
_STORE_UNAVAILABLE = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.exceptions.InterfaceError,
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.CannotConnectNowError,
)

SCHEMA_SQL = """
CREATE SCHEMA IF NOT EXISTS orders;

CREATE TABLE IF NOT EXISTS orders.orders (
    id BIGSERIAL PRIMARY KEY,
    order_number TEXT NOT NULL,
    customer_name TEXT NOT NULL,
    customer_email TEXT NOT NULL,
    customer_phone TEXT NOT NULL,
    shipping_address JSONB NOT NULL,
    products JSONB NOT NULL,
    subtotal NUMERIC(12, 2) NOT NULL CHECK (subtotal >= 0),
    tax NUMERIC(12, 2) NOT NULL DEFAULT 0 CHECK (tax >= 0),
    shipping_fee NUMERIC(12, 2) NOT NULL DEFAULT 0 CHECK (shipping_fee >= 0),
    total_amount NUMERIC(12, 2) NOT NULL,
    payment_method TEXT NOT NULL,
    payment_status TEXT NOT NULL DEFAULT 'pending',
    order_status TEXT NOT NULL DEFAULT 'pending',
    notes TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CONSTRAINT orders_order_number_key UNIQUE (order_number)
);

CREATE INDEX IF NOT EXISTS idx_orders_created_at ON orders.orders (created_at DESC);
CREATE INDEX IF NOT EXISTS idx_orders_customer_email ON orders.orders (customer_email);
CREATE INDEX IF NOT EXISTS idx_orders_order_status ON orders.orders (order_status);

CREATE TABLE IF NOT EXISTS orders.order_sequences (
    day TEXT PRIMARY KEY,
    value INTEGER NOT NULL
);
"""


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class OrderRepository:
    """
    Repository for order data operations

    Handles all database operations for orders using PostgresClientWrapper.
    """

    def __init__(self, db: PostgresClientWrapper):
        """Initialize Order Repository with a shared PostgreSQL client"""
        self.db = db
        self.schema = "orders"  # Using "orders" instead of "order" (reserved keyword)
        self.orders_table = f'"{self.schema}".orders'
        self.sequences_table = f'"{self.schema}".order_sequences'

        logger.info("OrderRepository initialized with PostgresClient")

    async def ensure_schema(self):
        """Create schema, tables and indexes if missing"""
        try:
            await self.db.execute(SCHEMA_SQL)
            logger.info("Order schema ready")
        except _STORE_UNAVAILABLE as e:
            logger.error(f"Failed to prepare order schema: {e}")
            raise DependencyUnavailableError(f"Order store unavailable: {e}") from e

    async def create_order(self, order: Order) -> Order:
        """Insert a new order"""
        data = order.model_dump(mode="json")
        query = f'''
            INSERT INTO {self.orders_table} (
                order_number, customer_name, customer_email, customer_phone,
                shipping_address, products, subtotal, tax, shipping_fee,
                total_amount, payment_method, payment_status, order_status,
                notes, created_at, updated_at
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, $16)
            RETURNING *
        '''
        params = [
            order.order_number,
            order.customer_name,
            order.customer_email,
            order.customer_phone,
            data["shipping_address"],
            data["products"],
            order.subtotal,
            order.tax,
            order.shipping_fee,
            order.total_amount,
            order.payment_method.value,
            order.payment_status.value,
            order.order_status.value,
            order.notes,
            order.created_at,
            order.updated_at,
        ]

        try:
            row = await self.db.query_row(query, params)
        except asyncpg.exceptions.UniqueViolationError as e:
            logger.warning(f"Duplicate order number {order.order_number}: {e}")
            raise DuplicateOrderError(f"Order number {order.order_number} already exists") from e
        except _STORE_UNAVAILABLE as e:
            logger.error(f"Failed to create order {order.order_number}: {e}")
            raise DependencyUnavailableError(f"Order store unavailable: {e}") from e

        return self._dict_to_order(row)

    async def get_order(self, order_number: str) -> Optional[Order]:
        """Get order by order number"""
        query = f'SELECT * FROM {self.orders_table} WHERE order_number = $1'

        try:
            result = await self.db.query_row(query, [order_number])
        except _STORE_UNAVAILABLE as e:
            logger.error(f"Failed to get order {order_number}: {e}")
            raise DependencyUnavailableError(f"Order store unavailable: {e}") from e

        if result:
            return self._dict_to_order(result)
        return None

    async def update_order_status(
        self,
        order_number: str,
        order_status: Optional[OrderStatus] = None,
        payment_status: Optional[PaymentStatus] = None
    ) -> Optional[Order]:
        """Update order and/or payment status; only supplied fields change"""
        update_data: Dict[str, Any] = {"updated_at": datetime.now(timezone.utc)}
        if order_status:
            update_data["order_status"] = order_status.value
        if payment_status:
            update_data["payment_status"] = payment_status.value

        # Build SET clause
        set_clauses = []
        params = []
        param_count = 0

        for key, value in update_data.items():
            param_count += 1
            set_clauses.append(f"{key} = ${param_count}")
            params.append(value)

        param_count += 1
        params.append(order_number)

        set_clause = ", ".join(set_clauses)
        query = f'''
            UPDATE {self.orders_table}
            SET {set_clause}
            WHERE order_number = ${param_count}
            RETURNING *
        '''

        try:
            row = await self.db.query_row(query, params)
        except _STORE_UNAVAILABLE as e:
            logger.error(f"Failed to update order {order_number}: {e}")
            raise DependencyUnavailableError(f"Order store unavailable: {e}") from e

        return self._dict_to_order(row) if row else None

    async def list_orders(self, filter_params: OrderFilter) -> Tuple[List[Order], int]:
        """List one page of orders with filtering; also returns the filtered total"""
        conditions = []
        params: List[Any] = []
        param_count = 0

        if filter_params.status:
            param_count += 1
            conditions.append(f"order_status = ${param_count}")
            params.append(filter_params.status.value)

        if filter_params.payment_status:
            param_count += 1
            conditions.append(f"payment_status = ${param_count}")
            params.append(filter_params.payment_status.value)

        if filter_params.start_date:
            param_count += 1
            conditions.append(f"created_at >= ${param_count}")
            params.append(filter_params.start_date)

        if filter_params.end_date:
            param_count += 1
            conditions.append(f"created_at <= ${param_count}")
            params.append(filter_params.end_date)

        if filter_params.search:
            param_count += 1
            params.append(f"%{_escape_like(filter_params.search)}%")
            conditions.append(
                f"(order_number ILIKE ${param_count} OR customer_name ILIKE ${param_count} "
                f"OR customer_email ILIKE ${param_count} OR customer_phone ILIKE ${param_count})"
            )

        where_clause = " AND ".join(conditions) if conditions else "TRUE"
        # sort_by is whitelisted by OrderFilter
        direction = "ASC" if filter_params.sort_order == SortOrder.ASC else "DESC"

        count_query = f'SELECT COUNT(*) FROM {self.orders_table} WHERE {where_clause}'
        page_query = f'''
            SELECT * FROM {self.orders_table}
            WHERE {where_clause}
            ORDER BY {filter_params.sort_by} {direction}, id {direction}
            LIMIT {filter_params.limit} OFFSET {filter_params.offset}
        '''

        try:
            total = await self.db.query_value(count_query, params)
            results = await self.db.query(page_query, params)
        except _STORE_UNAVAILABLE as e:
            logger.error(f"Failed to list orders: {e}")
            raise DependencyUnavailableError(f"Order store unavailable: {e}") from e

        return [self._dict_to_order(row) for row in results], int(total or 0)

    async def get_orders_by_email(self, email: str) -> List[Order]:
        """Get orders placed with a customer email"""
        query = f'''
            SELECT * FROM {self.orders_table}
            WHERE LOWER(customer_email) = LOWER($1)
            ORDER BY created_at DESC
        '''

        try:
            results = await self.db.query(query, [email.strip()])
        except _STORE_UNAVAILABLE as e:
            logger.error(f"Failed to get orders for {email}: {e}")
            raise DependencyUnavailableError(f"Order store unavailable: {e}") from e

        return [self._dict_to_order(row) for row in results]

    async def count_orders_since(self, since: datetime) -> int:
        """Count orders created at or after `since`"""
        query = f'SELECT COUNT(*) FROM {self.orders_table} WHERE created_at >= $1'

        try:
            count = await self.db.query_value(query, [since])
        except _STORE_UNAVAILABLE as e:
            logger.error(f"Failed to count orders since {since.isoformat()}: {e}")
            raise DependencyUnavailableError(f"Order store unavailable: {e}") from e

        return int(count or 0)

    async def next_daily_sequence(self, day: str) -> int:
        """Atomically bump the per-day counter and return the new value"""
        query = f'''
            INSERT INTO {self.sequences_table} (day, value)
            VALUES ($1, 1)
            ON CONFLICT (day) DO UPDATE SET value = order_sequences.value + 1
            RETURNING value
        '''

        try:
            value = await self.db.query_value(query, [day])
        except _STORE_UNAVAILABLE as e:
            logger.error(f"Failed to advance order sequence for {day}: {e}")
            raise DependencyUnavailableError(f"Order store unavailable: {e}") from e

        return int(value)

    async def get_order_statistics(
        self,
        today_start: datetime,
        yesterday_start: datetime,
        month_start: datetime
    ) -> Dict[str, Any]:
        """Get order statistics over the whole collection"""
        totals_query = f'''
            SELECT
                COUNT(*) AS total_orders,
                COUNT(*) FILTER (WHERE created_at >= $1) AS today_orders,
                COUNT(*) FILTER (WHERE created_at >= $2 AND created_at < $1) AS yesterday_orders,
                COUNT(*) FILTER (WHERE created_at >= $3) AS month_orders,
                COALESCE(SUM(total_amount), 0) AS total_revenue,
                COALESCE(AVG(total_amount), 0) AS avg_order_value
            FROM {self.orders_table}
        '''
        status_query = f'''
            SELECT order_status AS key, COUNT(*) AS count
            FROM {self.orders_table}
            GROUP BY order_status
        '''
        payment_query = f'''
            SELECT payment_status AS key, COUNT(*) AS count
            FROM {self.orders_table}
            GROUP BY payment_status
        '''

        try:
            totals = await self.db.query_row(totals_query, [today_start, yesterday_start, month_start])
            status_rows = await self.db.query(status_query)
            payment_rows = await self.db.query(payment_query)
        except _STORE_UNAVAILABLE as e:
            logger.error(f"Failed to get order statistics: {e}")
            raise DependencyUnavailableError(f"Order store unavailable: {e}") from e

        totals = totals or {}
        return {
            "total_orders": int(totals.get("total_orders") or 0),
            "today_orders": int(totals.get("today_orders") or 0),
            "yesterday_orders": int(totals.get("yesterday_orders") or 0),
            "month_orders": int(totals.get("month_orders") or 0),
            "total_revenue": totals.get("total_revenue") or 0,
            "avg_order_value": totals.get("avg_order_value") or 0,
            "orders_by_status": {row["key"]: int(row["count"]) for row in status_rows},
            "orders_by_payment_status": {row["key"]: int(row["count"]) for row in payment_rows},
        }

    def _dict_to_order(self, data: Dict[str, Any]) -> Order:
        """Convert a database row to an Order"""
        return Order.model_validate(data)
