"""
Notification Dispatcher Component Golden Tests

Customer/admin emails go out in a background task; one failing recipient
never stops the other and nothing propagates to the caller.

Usage:
    pytest tests/component/golden/order_service -v -k dispatcher
"""
import pytest

from microservices.order_service.notifications import NotificationDispatcher
from tests.component.golden.order_service.mocks import MockMailTransport
from tests.contracts.order.data_contract import OrderTestDataFactory

pytestmark = [pytest.mark.component, pytest.mark.golden, pytest.mark.asyncio]


@pytest.fixture
def order():
    return OrderTestDataFactory.make_order(customer_email="kim@example.com")


class TestNotificationDispatcherGolden:
    """Golden: NotificationDispatcher"""

    async def test_both_emails_sent_once(self, order):
        transport = MockMailTransport()
        dispatcher = NotificationDispatcher(transport)

        result = await dispatcher.notify_order_created(order)

        assert result == {"customer": True, "admin": True}
        assert transport.attempts_to("kim@example.com") == 1
        assert transport.attempts_to("admin@example.com") == 1

    async def test_customer_failure_does_not_block_admin(self, order):
        transport = MockMailTransport(fail_for={"kim@example.com"})
        dispatcher = NotificationDispatcher(transport)

        result = await dispatcher.notify_order_created(order)

        assert result == {"customer": False, "admin": True}
        assert [m["To"] for m in transport.sent] == ["admin@example.com"]

    async def test_admin_failure_does_not_block_customer(self, order):
        transport = MockMailTransport(fail_for={"admin@example.com"})
        dispatcher = NotificationDispatcher(transport)

        result = await dispatcher.notify_order_created(order)

        assert result == {"customer": True, "admin": False}

    async def test_dispatch_returns_before_sending(self, order):
        transport = MockMailTransport()
        dispatcher = NotificationDispatcher(transport, delay_seconds=0.01)

        dispatcher.dispatch(order)

        assert dispatcher.pending == 1
        assert transport.attempts == []

        await dispatcher.drain()

        assert dispatcher.pending == 0
        assert len(transport.attempts) == 2

    async def test_dispatch_failures_stay_in_background(self, order):
        transport = MockMailTransport(fail_for={"kim@example.com", "admin@example.com"})
        dispatcher = NotificationDispatcher(transport)

        dispatcher.dispatch(order)
        await dispatcher.drain()

        assert len(transport.attempts) == 2
        assert transport.sent == []

    async def test_no_transport_skips_sending(self, order):
        dispatcher = NotificationDispatcher(None)

        dispatcher.dispatch(order)

        assert dispatcher.available is False
        assert dispatcher.pending == 0

    async def test_unavailable_mode_skips_until_recovered(self, order):
        transport = MockMailTransport()
        dispatcher = NotificationDispatcher(transport)

        dispatcher.mark_unavailable("SMTP verification failed")
        dispatcher.dispatch(order)
        assert dispatcher.pending == 0

        dispatcher.mark_available()
        dispatcher.dispatch(order)
        await dispatcher.drain()
        assert len(transport.sent) == 2

    async def test_disabled_dispatcher_skips_sending(self, order):
        transport = MockMailTransport()
        dispatcher = NotificationDispatcher(transport, enabled=False)

        dispatcher.dispatch(order)
        await dispatcher.drain()

        assert transport.attempts == []

    async def test_drain_cancels_stragglers_after_timeout(self, order):
        transport = MockMailTransport()
        dispatcher = NotificationDispatcher(transport, delay_seconds=10)

        dispatcher.dispatch(order)
        await dispatcher.drain(timeout=0.01)

        assert transport.attempts == []

    async def test_schedule_hook_defers_sending(self, order):
        transport = MockMailTransport()
        dispatcher = NotificationDispatcher(transport)
        scheduled = []

        dispatcher.dispatch(order, schedule=lambda func, *args: scheduled.append((func, args)))

        assert len(scheduled) == 1
        assert dispatcher.pending == 1
        assert transport.attempts == []

        func, args = scheduled[0]
        await func(*args)

        assert dispatcher.pending == 0
        assert len(transport.sent) == 2

    async def test_schedule_hook_unused_when_unavailable(self, order):
        dispatcher = NotificationDispatcher(MockMailTransport(), enabled=False)
        scheduled = []

        dispatcher.dispatch(order, schedule=lambda func, *args: scheduled.append(func))

        assert scheduled == []
        assert dispatcher.pending == 0
