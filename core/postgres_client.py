"""
PostgreSQL Client Wrapper

Process-wide asyncpg connection pool with a small query API.
The pool is created lazily on first use and shared by all in-flight requests.

Usage:
    from core.postgres_client import PostgresClientWrapper

    db = PostgresClientWrapper("order_service", infra_config)

    # Execute queries
    rows = await db.query("SELECT * FROM orders.orders WHERE order_status = $1", ["pending"])
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import asyncpg

from core.config import InfraConfig

logger = logging.getLogger(__name__)


async def _init_connection(conn: asyncpg.Connection):
    """Decode json/jsonb columns into Python objects"""
    for type_name in ("json", "jsonb"):
        await conn.set_type_codec(
            type_name,
            encoder=json.dumps,
            decoder=json.loads,
            schema="pg_catalog",
        )


class PostgresClientWrapper:
    """
    PostgreSQL client wrapper around an asyncpg pool.

    Provides:
    - Lazy, lock-protected pool creation
    - Connection and command timeouts from InfraConfig
    - Dict rows from query/query_row
    """

    def __init__(self, service_name: str, config: Optional[InfraConfig] = None):
        """
        Initialize PostgreSQL client wrapper.

        Args:
            service_name: Name of the service using this client
            config: Infrastructure settings (defaults to InfraConfig.from_env())
        """
        self.service_name = service_name
        self.config = config or InfraConfig.from_env()
        self._pool: Optional[asyncpg.Pool] = None
        self._pool_lock = asyncio.Lock()

        logger.info(
            f"PostgreSQL client initialized for {service_name}: "
            f"{self.config.postgres_host}:{self.config.postgres_port}/{self.config.postgres_db}"
        )

    async def get_pool(self) -> asyncpg.Pool:
        """Create the pool on first use"""
        if self._pool is not None:
            return self._pool

        async with self._pool_lock:
            if self._pool is None:
                self._pool = await asyncpg.create_pool(
                    dsn=self.config.postgres_dsn,
                    min_size=self.config.postgres_pool_min_size,
                    max_size=self.config.postgres_pool_max_size,
                    timeout=self.config.postgres_connect_timeout,
                    command_timeout=self.config.postgres_command_timeout,
                    init=_init_connection,
                )
                logger.info(f"PostgreSQL pool created for {self.service_name}")
        return self._pool

    async def health_check(self) -> Dict[str, Any]:
        """Check database health"""
        try:
            pool = await self.get_pool()
            async with pool.acquire() as conn:
                version = await conn.fetchval("SHOW server_version")
            return {"healthy": True, "version": version}
        except (asyncpg.PostgresError, OSError, asyncio.TimeoutError) as e:
            logger.warning(f"PostgreSQL health check failed: {e}")
            return {"healthy": False, "error": str(e)}

    async def query(self, sql: str, params: Optional[List[Any]] = None) -> List[Dict[str, Any]]:
        """Execute query and return results"""
        pool = await self.get_pool()
        rows = await pool.fetch(sql, *(params or []))
        return [dict(row) for row in rows]

    async def query_row(self, sql: str, params: Optional[List[Any]] = None) -> Optional[Dict[str, Any]]:
        """Execute query and return single row"""
        pool = await self.get_pool()
        row = await pool.fetchrow(sql, *(params or []))
        return dict(row) if row is not None else None

    async def query_value(self, sql: str, params: Optional[List[Any]] = None) -> Any:
        """Execute query and return the first column of the first row"""
        pool = await self.get_pool()
        return await pool.fetchval(sql, *(params or []))

    async def execute(self, sql: str, params: Optional[List[Any]] = None) -> int:
        """Execute SQL statement, returning the affected row count"""
        pool = await self.get_pool()
        status = await pool.execute(sql, *(params or []))
        # asyncpg returns the command tag, e.g. "UPDATE 1"
        try:
            return int(status.rsplit(" ", 1)[-1])
        except ValueError:
            return 0

    async def close(self):
        """Close the pool"""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info(f"PostgreSQL pool closed for {self.service_name}")

