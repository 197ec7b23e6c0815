"""Logging configuration."""

import logging
from typing import Optional

ROOT_LOGGER_NAME = "kube_inventory"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a configured logger instance.

    Handlers are attached once, on the package root logger, so every module
    logger shares one stream and ``set_log_level`` affects them all.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)

    # Only configure if no handlers exist
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        root.setLevel(logging.INFO)

    return logging.getLogger(name or ROOT_LOGGER_NAME)


def set_log_level(level: int) -> None:
    """Change the level of every kube_inventory logger."""
    get_logger().setLevel(level)
