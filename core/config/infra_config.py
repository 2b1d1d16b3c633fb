#!/usr/bin/env python3
"""Infrastructure configuration

Endpoints and credentials for the collaborators the order service talks to:
PostgreSQL (native asyncpg) and an SMTP relay.
"""
import os
from dataclasses import dataclass
from typing import Optional

def _bool(val: str) -> bool:
    return val.lower() == "true"

def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default

def _float(val: str, default: float) -> float:
    try:
        return float(val) if val else default
    except ValueError:
        return default


@dataclass
class InfraConfig:
    """Infrastructure service endpoints"""

    # ===========================================
    # PostgreSQL (native asyncpg - port 5432)
    # ===========================================
    database_url: Optional[str] = None
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "postgres"
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_pool_min_size: int = 1
    postgres_pool_max_size: int = 10
    postgres_connect_timeout: float = 10.0
    postgres_command_timeout: float = 45.0

    # ===========================================
    # SMTP (mail transport)
    # ===========================================
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = False
    smtp_start_tls: bool = True
    smtp_timeout: float = 30.0
    smtp_pool_size: int = 2
    email_from: str = "noreply@example.com"
    email_admin: str = "admin@example.com"

    @property
    def postgres_dsn(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def smtp_configured(self) -> bool:
        """SMTP is usable only when credentials are present"""
        return bool(self.smtp_username and self.smtp_password)

    @classmethod
    def from_env(cls) -> 'InfraConfig':
        """Load infrastructure config from environment"""
        smtp_port = _int(os.getenv("SMTP_PORT") or os.getenv("EMAIL_PORT", "587"), 587)
        smtp_username = os.getenv("SMTP_USERNAME") or os.getenv("EMAIL_USER", "")
        return cls(
            # PostgreSQL
            database_url=os.getenv("DATABASE_URL"),
            postgres_host=os.getenv("POSTGRES_HOST", "localhost"),
            postgres_port=_int(os.getenv("POSTGRES_PORT", "5432"), 5432),
            postgres_db=os.getenv("POSTGRES_DB", "postgres"),
            postgres_user=os.getenv("POSTGRES_USER", "postgres"),
            postgres_password=os.getenv("POSTGRES_PASSWORD", "postgres"),
            postgres_pool_min_size=_int(os.getenv("POSTGRES_POOL_MIN_SIZE", "1"), 1),
            postgres_pool_max_size=_int(os.getenv("POSTGRES_POOL_MAX_SIZE", "10"), 10),
            postgres_connect_timeout=_float(os.getenv("POSTGRES_CONNECT_TIMEOUT", "10"), 10.0),
            postgres_command_timeout=_float(os.getenv("POSTGRES_COMMAND_TIMEOUT", "45"), 45.0),

            # SMTP (EMAIL_* names kept for older deployments)
            smtp_host=os.getenv("SMTP_HOST") or os.getenv("EMAIL_HOST", "smtp.gmail.com"),
            smtp_port=smtp_port,
            smtp_username=smtp_username,
            smtp_password=os.getenv("SMTP_PASSWORD") or os.getenv("EMAIL_PASS", ""),
            smtp_use_tls=_bool(os.getenv("SMTP_USE_TLS", "true" if smtp_port == 465 else "false")),
            smtp_start_tls=_bool(os.getenv("SMTP_START_TLS", "false" if smtp_port == 465 else "true")),
            smtp_timeout=_float(os.getenv("SMTP_TIMEOUT", "30"), 30.0),
            smtp_pool_size=max(1, _int(os.getenv("SMTP_POOL_SIZE", "2"), 2)),
            email_from=os.getenv("EMAIL_FROM") or smtp_username or "noreply@example.com",
            email_admin=os.getenv("EMAIL_ADMIN") or smtp_username or "admin@example.com",
        )
