"""
Order notifications

Customer confirmation and admin alert emails for new orders.
"""

from .dispatcher import NotificationDispatcher
from .templates import build_admin_email, build_customer_email

__all__ = [
    "NotificationDispatcher",
    "build_admin_email",
    "build_customer_email",
]
