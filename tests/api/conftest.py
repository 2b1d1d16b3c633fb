"""
API Test Layer Configuration

The FastAPI app is driven in-process through httpx's ASGI transport. The
lifespan does not run, so no database or SMTP connection is opened; tests
override the service dependencies instead.
"""
import httpx
import pytest
import pytest_asyncio

from microservices.order_service.main import app, get_order_service
from microservices.order_service.notifications import NotificationDispatcher
from microservices.order_service.order_number import CounterOrderNumberGenerator
from microservices.order_service.order_service import OrderService
from tests.component.golden.order_service.mocks import MockMailTransport, MockOrderRepository


@pytest.fixture
def mock_repo():
    return MockOrderRepository()


@pytest.fixture
def mail_transport():
    return MockMailTransport()


@pytest.fixture
def dispatcher(mail_transport):
    return NotificationDispatcher(mail_transport)


@pytest.fixture
def order_service(mock_repo, dispatcher, order_config):
    return OrderService(
        repository=mock_repo,
        number_generator=CounterOrderNumberGenerator(mock_repo),
        notifier=dispatcher,
        config=order_config,
    )


@pytest_asyncio.fixture
async def client(order_service, dispatcher):
    """HTTP client bound to the app with the order service overridden"""
    app.dependency_overrides[get_order_service] = lambda: order_service
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client
    await dispatcher.drain()
    app.dependency_overrides.clear()

