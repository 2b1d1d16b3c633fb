"""
Root conftest.py - Global fixtures and configuration for all test layers.

Test Layers:
    - api/        : HTTP contract tests (ASGI app, service dependency overridden)
    - component/  : Component tests (mocked dependencies)
    - unit/       : Unit tests (pure functions, no I/O)
"""
import os
import sys

import pytest

# Set testing environment BEFORE any service imports
os.environ.setdefault("ENV", "testing")
os.environ.setdefault("ENVIRONMENT", "testing")

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from core.config import OrderConfig


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def order_config() -> OrderConfig:
    """Order settings with the documented defaults, independent of the environment"""
    return OrderConfig(
        order_number_prefix="TRB",
        order_number_min_digits=4,
        order_number_strategy="counter",
        create_max_attempts=1,
        default_payment_method="credit_card",
        customer_phone_digits=10,
        notifications_enabled=True,
        notification_delay_seconds=0.0,
    )


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "api: API contract tests")
    config.addinivalue_line("markers", "component: Component tests")
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "golden: Characterization tests of current behavior")
