"""Exception taxonomy for the inventory engine.

Errors are tagged where they are first observed so the scanner can decide
between "this resource type failed" and "the whole run must stop" from the
exception type alone.
"""

from typing import Optional


class InventoryError(Exception):
    """Base class for all inventory errors."""


class ConfigurationError(InventoryError):
    """Credentials or client construction failed; nothing can be listed."""


class DiscoveryError(InventoryError):
    """The server's discovery endpoint could not be queried."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class DiscoveryNotInitializedError(DiscoveryError):
    """A lookup was attempted before the discovery cache was built."""

    def __init__(self, message: str = "discovery cache not initialized before resolving resource type"):
        super().__init__(message)


class ResolutionError(InventoryError):
    """A kind or resource name is unknown to the cluster."""

    def __init__(self, name: str, kind_error: Exception, resource_error: Exception):
        self.name = name
        self.kind_error = kind_error
        self.resource_error = resource_error
        super().__init__(
            f"failed to find resource type '{name}': "
            f"kind mapping error: {kind_error}, resource mapping error: {resource_error}"
        )


class TypeListingError(InventoryError):
    """Listing a single resource type failed; other types may continue."""

    def __init__(self, operation: str, cause: Optional[BaseException], message: str):
        self.operation = operation
        self.cause = cause
        super().__init__(message)


class OperationFailedError(TypeListingError):
    """The server rejected an operation with a non-retriable error."""

    def __init__(self, operation: str, cause: BaseException):
        super().__init__(operation, cause, f"operation {operation} failed: {cause}")


class RetriesExhaustedError(TypeListingError):
    """Every retry step was used without success."""

    def __init__(self, operation: str, last_error: Optional[BaseException], attempts: int):
        self.attempts = attempts
        if last_error is not None:
            message = f"operation {operation} timed out after {attempts} attempts: {last_error}"
        else:
            message = f"operation {operation} timed out after {attempts} attempts"
        super().__init__(operation, last_error, message)


class RunAbortedError(InventoryError):
    """The shared run context ended; no further enumeration is possible."""

    reason = "run aborted"


class CancelledError(RunAbortedError):
    """The run was cancelled, usually by SIGINT or SIGTERM."""

    reason = "operation cancelled (possibly by signal)"


class DeadlineExceededError(RunAbortedError):
    """The hard wall-clock limit for the run elapsed."""

    def __init__(self, limit_seconds: float, message: Optional[str] = None):
        self.limit_seconds = limit_seconds
        self.reason = f"hard timeout limit reached ({format_duration(limit_seconds)})"
        super().__init__(message or self.reason)


class IdleTimeoutError(RunAbortedError):
    """No page completed within the idle window."""

    reason = "idle timeout reached"

    def __init__(self, idle_seconds: float):
        self.idle_seconds = idle_seconds
        super().__init__(
            f"operation timed out due to inactivity after {format_duration(idle_seconds)}"
        )


class SinkError(RunAbortedError):
    """The stream sink rejected a record; no further records can be delivered."""

    reason = "stream sink failed"

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"stream sink failed: {cause}")


def format_duration(seconds: float) -> str:
    """Render a duration as ``1h2m3s`` / ``3m0s`` / ``30s``."""
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"
