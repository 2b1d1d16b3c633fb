"""
Order Service Factory

Factory functions for creating service instances with real dependencies.
This is the ONLY place that imports I/O-dependent modules.

Usage:
    from .factory import create_order_service
    service, dispatcher = create_order_service(config_manager, db, smtp_client)
"""
from typing import Optional, Tuple

from core.config_manager import ConfigManager

from .notifications import NotificationDispatcher
from .order_number import create_order_number_generator
from .order_service import OrderService


def create_notification_dispatcher(
    config_manager: ConfigManager,
    smtp_client=None,
) -> NotificationDispatcher:
    """
    Create the notification dispatcher over an SMTP transport.

    A missing transport or NOTIFICATIONS_ENABLED=false yields a dispatcher
    that skips sending.
    """
    order_config = config_manager.get_order_config()
    return NotificationDispatcher(
        transport=smtp_client,
        enabled=order_config.notifications_enabled,
        delay_seconds=order_config.notification_delay_seconds,
    )


def create_order_service(
    config_manager: Optional[ConfigManager] = None,
    db=None,
    smtp_client=None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> Tuple[OrderService, NotificationDispatcher]:
    """
    Create OrderService with real dependencies.

    This function imports the real repository (which has I/O dependencies).
    Use this in production, NOT in tests.

    Args:
        config_manager: Configuration manager
        db: PostgresClientWrapper; created from InfraConfig when omitted
        smtp_client: Mail transport for notifications (optional)
        dispatcher: Prebuilt dispatcher (optional)

    Returns:
        Configured OrderService and its notification dispatcher
    """
    # Import real repository here (not at module level)
    from core.postgres_client import PostgresClientWrapper
    from .order_repository import OrderRepository

    config_manager = config_manager or ConfigManager("order_service")
    order_config = config_manager.get_order_config()

    if db is None:
        db = PostgresClientWrapper(
            service_name=config_manager.service_name,
            config=config_manager.get_infra_config(),
        )

    repository = OrderRepository(db)
    number_generator = create_order_number_generator(repository, order_config)
    dispatcher = dispatcher or create_notification_dispatcher(config_manager, smtp_client)

    service = OrderService(
        repository=repository,
        number_generator=number_generator,
        notifier=dispatcher,
        config=order_config,
    )
    return service, dispatcher
