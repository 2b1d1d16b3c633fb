"""
Component Test Mocks

Shared mock implementations for component testing.
These mocks replace real I/O dependencies.
"""

from .db_mock import MockPostgresClient

# Service-specific mocks should be in tests/component/golden/{service}/mocks.py

__all__ = [
    'MockPostgresClient',
]
