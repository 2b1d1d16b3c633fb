#!/usr/bin/env python3
"""Order intake configuration

Business knobs for order numbering, validation and notification dispatch.
"""
import os
from dataclasses import dataclass

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
class OrderConfig:
    """Order intake settings"""

    # ===========================================
    # Order numbering
    # ===========================================
    order_number_prefix: str = "TRB"
    order_number_min_digits: int = 4
    # "counter" = atomic per-day counter row, "count" = count of today's orders
    order_number_strategy: str = "counter"
    # 1 = report a conflict straight away, >1 = regenerate and retry
    create_max_attempts: int = 1

    # ===========================================
    # Validation
    # ===========================================
    default_payment_method: str = "credit_card"
    customer_phone_digits: int = 10

    # ===========================================
    # Notifications
    # ===========================================
    notifications_enabled: bool = True
    notification_delay_seconds: float = 0.0

    @classmethod
    def from_env(cls) -> 'OrderConfig':
        """Load order settings from environment"""
        return cls(
            order_number_prefix=os.getenv("ORDER_NUMBER_PREFIX", "TRB"),
            order_number_min_digits=_int(os.getenv("ORDER_NUMBER_MIN_DIGITS", "4"), 4),
            order_number_strategy=os.getenv("ORDER_NUMBER_STRATEGY", "counter").lower(),
            create_max_attempts=max(1, _int(os.getenv("ORDER_CREATE_MAX_ATTEMPTS", "1"), 1)),
            default_payment_method=os.getenv("DEFAULT_PAYMENT_METHOD", "credit_card"),
            customer_phone_digits=_int(os.getenv("CUSTOMER_PHONE_DIGITS", "10"), 10),
            notifications_enabled=_bool(os.getenv("NOTIFICATIONS_ENABLED", "true")),
            notification_delay_seconds=_float(os.getenv("NOTIFICATION_DELAY_SECONDS", "0"), 0.0),
        )
