#!/usr/bin/env python3
"""
SMTP Client

Small pool of long-lived async SMTP connections shared by every notification
the process sends. The pool holds up to ``SMTP_POOL_SIZE`` connections; each
carries one SMTP conversation at a time, so at most that many messages are in
flight and further sends wait for a free connection. Connections are opened
lazily, reused across messages and reopened when the server drops them.

Usage:
    smtp = AsyncSMTPClient(infra_config)
    status = await smtp.verify()
    await smtp.send_message(message)
    await smtp.close()
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from email.message import EmailMessage
from typing import Any, AsyncIterator, Dict, List, Optional

import aiosmtplib
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from core.config import InfraConfig

logger = logging.getLogger(__name__)

# Transient failures worth another connect attempt; auth errors are not
_RETRYABLE_CONNECT_ERRORS = (
    aiosmtplib.SMTPConnectError,
    aiosmtplib.SMTPConnectTimeoutError,
    aiosmtplib.SMTPServerDisconnected,
    ConnectionError,
)


class AsyncSMTPClient:
    """Reusable, pooled SMTP transport"""

    def __init__(
        self,
        config: Optional[InfraConfig] = None,
        connect_attempts: int = 3,
        pool_size: Optional[int] = None,
    ):
        self.config = config or InfraConfig.from_env()
        self.connect_attempts = connect_attempts
        self.pool_size = max(1, pool_size or self.config.smtp_pool_size)
        # Slots hold an open connection or None (not yet connected / dropped)
        self._slots: Optional[asyncio.Queue] = None
        self._in_use = 0
        self.available: Optional[bool] = None
        self.last_error: Optional[str] = None

    @property
    def configured(self) -> bool:
        return self.config.smtp_configured

    @property
    def sender(self) -> str:
        return self.config.email_from

    @property
    def admin_address(self) -> str:
        return self.config.email_admin

    def _build_smtp(self) -> aiosmtplib.SMTP:
        return aiosmtplib.SMTP(
            hostname=self.config.smtp_host,
            port=self.config.smtp_port,
            username=self.config.smtp_username or None,
            password=self.config.smtp_password or None,
            use_tls=self.config.smtp_use_tls,
            start_tls=self.config.smtp_start_tls if not self.config.smtp_use_tls else False,
            timeout=self.config.smtp_timeout,
        )

    def _pool(self) -> asyncio.Queue:
        # Created on first use so it belongs to the running loop
        if self._slots is None:
            self._slots = asyncio.Queue(maxsize=self.pool_size)
            for _ in range(self.pool_size):
                self._slots.put_nowait(None)
        return self._slots

    async def _open(self) -> aiosmtplib.SMTP:
        """Connect (and log in) with bounded retries"""

        @retry(
            stop=stop_after_attempt(self.connect_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(_RETRYABLE_CONNECT_ERRORS),
            reraise=True
        )
        async def _connect_with_retry():
            smtp = self._build_smtp()
            await smtp.connect()
            return smtp

        smtp = await _connect_with_retry()
        logger.info(f"SMTP connected to {self.config.smtp_host}:{self.config.smtp_port}")
        return smtp

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[List[Optional[aiosmtplib.SMTP]]]:
        """
        Borrow one pooled connection.

        Yields a one-element holder so the caller can swap in a reopened
        connection; whatever the holder contains is returned to the pool.
        """
        slots = self._pool()
        smtp = await slots.get()
        self._in_use += 1
        holder: List[Optional[aiosmtplib.SMTP]] = [None]
        try:
            if smtp is None or not smtp.is_connected:
                smtp = await self._open()
            holder[0] = smtp
            yield holder
        finally:
            self._in_use -= 1
            slots.put_nowait(holder[0])

    async def verify(self) -> Dict[str, Any]:
        """Connect and NOOP; records whether the transport is usable"""
        if not self.configured:
            self.available = False
            self.last_error = "SMTP credentials not configured"
            return self.status()

        try:
            async with self._connection() as holder:
                await holder[0].noop()
            self.available = True
            self.last_error = None
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as e:
            self.available = False
            self.last_error = str(e)
            logger.error(f"SMTP verification failed: {e}")
        return self.status()

    async def send_message(self, message: EmailMessage) -> None:
        """Send one message, reopening the connection once if it was dropped"""
        if not self.configured:
            raise aiosmtplib.SMTPException("SMTP credentials not configured")

        async with self._connection() as holder:
            try:
                await holder[0].send_message(message)
            except aiosmtplib.SMTPServerDisconnected:
                logger.warning("SMTP connection dropped, reconnecting")
                holder[0] = None
                holder[0] = await self._open()
                await holder[0].send_message(message)
        self.available = True

    def status(self) -> Dict[str, Any]:
        return {
            "configured": self.configured,
            "available": self.available,
            "host": self.config.smtp_host if self.configured else "Not configured",
            "port": self.config.smtp_port,
            "user": self.config.smtp_username if self.configured else "Not configured",
            "from": self.config.email_from,
            "admin": self.config.email_admin,
            "pool_size": self.pool_size,
            "in_use": self._in_use,
            "error": self.last_error,
        }

    async def close(self):
        """Quit every idle pooled session"""
        if self._slots is None:
            return
        while not self._slots.empty():
            smtp = self._slots.get_nowait()
            if smtp is not None and smtp.is_connected:
                try:
                    await smtp.quit()
                except aiosmtplib.SMTPException as e:
                    logger.debug(f"SMTP quit failed: {e}")
        self._slots = None
