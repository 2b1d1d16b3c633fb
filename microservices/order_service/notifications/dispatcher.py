"""
Order Notification Dispatcher

Sends the customer confirmation and the admin alert for a newly created
order. ``dispatch`` returns immediately: with a ``schedule`` callable (the
request's ``BackgroundTasks.add_task``) the sends run after the HTTP response
has gone out, otherwise they run in a tracked asyncio task. Every failure is
logged and dropped inside the send so nothing reaches the request that
created the order.
"""

import asyncio
import logging
from email.message import EmailMessage
from typing import Any, Callable, Dict, Optional, Set

from ..models import Order
from ..protocols import MailTransportProtocol
from .templates import build_admin_email, build_customer_email

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Fire-and-forget order email notifications"""

    def __init__(
        self,
        transport: Optional[MailTransportProtocol],
        enabled: bool = True,
        delay_seconds: float = 0.0,
    ):
        """
        Initialize the dispatcher.

        Args:
            transport: Mail transport; None disables sending
            enabled: NOTIFICATIONS_ENABLED switch
            delay_seconds: Wait before sending, lets the HTTP response go out first
        """
        self.transport = transport
        self.enabled = enabled
        self.delay_seconds = max(0.0, delay_seconds)
        self.unavailable_reason: Optional[str] = None
        self._tasks: Set[asyncio.Task] = set()
        self._scheduled = 0

        if transport is None:
            self.unavailable_reason = "Mail transport not configured"

    @property
    def available(self) -> bool:
        return self.enabled and self.transport is not None and self.unavailable_reason is None

    @property
    def pending(self) -> int:
        return len(self._tasks) + self._scheduled

    def mark_unavailable(self, reason: str):
        """Switch to notifications-unavailable mode; order intake is unaffected"""
        self.unavailable_reason = reason
        logger.warning(f"⚠️  Notifications unavailable: {reason}")

    def mark_available(self):
        self.unavailable_reason = None

    def dispatch(self, order: Order, schedule: Optional[Callable[..., Any]] = None) -> None:
        """
        Schedule both notifications for `order` without waiting on them.

        Args:
            order: The persisted order
            schedule: Post-response hook such as ``BackgroundTasks.add_task``;
                called as ``schedule(func, order)``
        """
        if not self.available:
            reason = self.unavailable_reason or "notifications disabled"
            logger.warning(f"Skipping notifications for order {order.order_number}: {reason}")
            return

        if schedule is not None:
            self._scheduled += 1
            schedule(self._run_scheduled, order)
            return

        task = asyncio.get_running_loop().create_task(
            self.notify_order_created(order),
            name=f"notify-{order.order_number}",
        )
        # Keep a strong reference until done
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_scheduled(self, order: Order) -> None:
        try:
            await self.notify_order_created(order)
        finally:
            self._scheduled -= 1

    async def notify_order_created(self, order: Order) -> Dict[str, bool]:
        """Send both emails; returns per-recipient success"""
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)

        results = await asyncio.gather(
            self._send(
                "customer", order,
                lambda: build_customer_email(order, self.transport.sender),
            ),
            self._send(
                "admin", order,
                lambda: build_admin_email(order, self.transport.sender, self.transport.admin_address),
            ),
            return_exceptions=True,
        )
        customer_sent, admin_sent = (result is True for result in results)
        return {"customer": customer_sent, "admin": admin_sent}

    async def _send(self, role: str, order: Order, build: Callable[[], EmailMessage]) -> bool:
        """One email with its own error boundary"""
        try:
            message = build()
            await self.transport.send_message(message)
            logger.info(f"✅ {role} email sent for order {order.order_number} to {message['To']}")
            return True
        except Exception as e:
            logger.error(
                f"❌ Failed to send {role} email for order {order.order_number}: "
                f"{type(e).__name__}: {e}"
            )
            return False

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight notifications (shutdown and tests)"""
        if not self._tasks:
            return
        tasks = list(self._tasks)
        _, not_done = await asyncio.wait(tasks, timeout=timeout)
        for task in not_done:
            task.cancel()
        if not_done:
            await asyncio.gather(*not_done, return_exceptions=True)
            logger.warning(f"Cancelled {len(not_done)} pending notification task(s) on shutdown")
