#!/usr/bin/env python3
"""
Configuration Manager

Single entry point services use to read their configuration.

Usage:
    from core.config_manager import ConfigManager

    config_manager = ConfigManager("order_service")
    config = config_manager.get_service_config()
    infra = config_manager.get_infra_config()
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .config import InfraConfig, LoggingConfig, OrderConfig

logger = logging.getLogger(__name__)


def _bool(val: str) -> bool:
    return val.lower() == "true"


def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


class Environment(str, Enum):
    """Deployment environment"""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Environment":
        aliases = {"dev": cls.DEVELOPMENT, "test": cls.TESTING, "prod": cls.PRODUCTION}
        value = (value or "development").lower()
        if value in aliases:
            return aliases[value]
        try:
            return cls(value)
        except ValueError:
            return cls.DEVELOPMENT


@dataclass
class ServiceConfig:
    """Per-service runtime settings"""
    service_name: str
    service_host: str = "0.0.0.0"
    service_port: int = 8210
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = False
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION


class ConfigManager:
    """Loads and caches the configuration sections of one service"""

    def __init__(self, service_name: str):
        self.service_name = service_name
        self._service_config: Optional[ServiceConfig] = None
        self._infra_config: Optional[InfraConfig] = None
        self._order_config: Optional[OrderConfig] = None
        self._logging_config: Optional[LoggingConfig] = None

    def _env_key(self, suffix: str) -> str:
        return f"{self.service_name.upper()}_{suffix}"

    def get_service_config(self) -> ServiceConfig:
        if self._service_config is None:
            environment = Environment.parse(os.getenv("ENV") or os.getenv("ENVIRONMENT"))
            self._service_config = ServiceConfig(
                service_name=os.getenv("SERVICE_NAME", self.service_name),
                service_host=os.getenv(self._env_key("HOST"), os.getenv("HOST", "0.0.0.0")),
                service_port=_int(os.getenv(self._env_key("PORT")) or os.getenv("PORT", "8210"), 8210),
                environment=environment,
                debug=_bool(os.getenv("DEBUG", "false")),
                log_level=os.getenv(
                    "LOG_LEVEL",
                    "DEBUG" if environment == Environment.DEVELOPMENT else "INFO"
                ),
            )
        return self._service_config

    def get_infra_config(self) -> InfraConfig:
        if self._infra_config is None:
            self._infra_config = InfraConfig.from_env()
        return self._infra_config

    def get_order_config(self) -> OrderConfig:
        if self._order_config is None:
            self._order_config = OrderConfig.from_env()
        return self._order_config

    def get_logging_config(self) -> LoggingConfig:
        if self._logging_config is None:
            self._logging_config = LoggingConfig.from_env()
            self._logging_config.service_name = self.service_name
        return self._logging_config

    def print_config_summary(self):
        """Print configuration summary for debugging (secrets masked)"""
        service = self.get_service_config()
        infra = self.get_infra_config()
        order = self.get_order_config()

        print(f"=== {service.service_name} configuration ===")
        print(f"  environment:     {service.environment.value}")
        print(f"  listen:          {service.service_host}:{service.service_port}")
        print(f"  debug:           {service.debug}")
        print(f"  log level:       {service.log_level}")
        print(f"  postgres:        {infra.postgres_host}:{infra.postgres_port}/{infra.postgres_db}"
              if not infra.database_url else "  postgres:        DATABASE_URL set")
        print(f"  smtp:            {infra.smtp_host}:{infra.smtp_port} "
              f"({'configured' if infra.smtp_configured else 'not configured'})")
        print(f"  order prefix:    {order.order_number_prefix}")
        print(f"  numbering:       {order.order_number_strategy}")
        print(f"  notifications:   {'enabled' if order.notifications_enabled else 'disabled'}")
