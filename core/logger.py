#!/usr/bin/env python3
"""
Service logger setup

Configures the root logger once per process from LoggingConfig and returns
the service's named logger.
"""

import logging
import sys
from typing import Optional

from .config import LoggingConfig

_configured = False


def setup_service_logger(service_name: str, config: Optional[LoggingConfig] = None) -> logging.Logger:
    """
    Configure logging for a service.

    Args:
        service_name: Logger name, usually the service name
        config: Logging settings (defaults to LoggingConfig.from_env())

    Returns:
        The service logger
    """
    global _configured

    config = config or LoggingConfig.from_env()

    if not _configured:
        root = logging.getLogger()
        root.setLevel(config.log_level.upper())
        formatter = logging.Formatter(config.log_format)

        if config.enable_console:
            console = logging.StreamHandler(sys.stdout)
            console.setFormatter(formatter)
            root.addHandler(console)

        if config.log_file:
            file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

        for name in config.quiet_loggers:
            logging.getLogger(name).setLevel(logging.WARNING)

        _configured = True

    return logging.getLogger(service_name)
