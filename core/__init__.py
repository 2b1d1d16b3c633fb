#!/usr/bin/env python3
"""
Core Module

Shared infrastructure for the order service.

COMPONENTS:
    - config/: Dataclass configuration sections loaded from the environment
    - config_manager.py: Per-service configuration entry point
    - logger.py: Logging setup
    - postgres_client.py: asyncpg pool wrapper
    - smtp_client.py: Reusable async SMTP transport

USAGE:
    from core.config_manager import ConfigManager

    config = ConfigManager("order_service")
"""

from .config_manager import ConfigManager, Environment, ServiceConfig

# Export public API
__all__ = [
    "ConfigManager",
    "Environment",
    "ServiceConfig",
]

__version__ = "1.0.0"
