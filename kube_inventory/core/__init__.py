"""Run plumbing: context, errors, configuration and the inventory service."""

from .context import RunContext, install_signal_handlers
from .errors import (
    CancelledError,
    ConfigurationError,
    DeadlineExceededError,
    IdleTimeoutError,
    InventoryError,
    RunAbortedError,
    SinkError,
)

__all__ = [
    "RunContext",
    "install_signal_handlers",
    "CancelledError",
    "ConfigurationError",
    "DeadlineExceededError",
    "IdleTimeoutError",
    "InventoryError",
    "RunAbortedError",
    "SinkError",
]
