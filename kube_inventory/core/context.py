"""Run context: cancellation and time bounds shared by one inventory run."""

import signal
import threading
import time
from typing import Callable, Iterable, Optional

from ..utils.logger import get_logger
from .errors import CancelledError, DeadlineExceededError, RunAbortedError

logger = get_logger(__name__)

DEFAULT_HARD_TIMEOUT = 30 * 60.0
DEFAULT_IDLE_TIMEOUT = 3 * 60.0


class RunContext:
    """Cancellation signal plus hard deadline for a single run.

    Every blocking step of the engine (page requests, backoff sleeps) consults
    the same context, so cancelling it or letting the deadline pass stops the
    run at the next opportunity. The idle window is carried here as well but
    is measured by the lister, per resource type, against ``now()``.
    """

    def __init__(
        self,
        hard_timeout: Optional[float] = DEFAULT_HARD_TIMEOUT,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._clock = clock
        self._event = threading.Event()
        self._cancelled_at: Optional[float] = None
        self.started_at = clock()
        self.hard_timeout = hard_timeout
        self.idle_timeout = idle_timeout
        self.deadline = self.started_at + hard_timeout if hard_timeout else None

    def now(self) -> float:
        return self._clock()

    def cancel(self) -> None:
        """Cancel the run. Safe to call from a signal handler or another thread."""
        if self._cancelled_at is None:
            self._cancelled_at = self._clock()
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the hard deadline, or None when unbounded."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self._clock())

    def deadline_passed(self) -> bool:
        return self.deadline is not None and self._clock() >= self.deadline

    def done(self) -> bool:
        return self.cancelled or self.deadline_passed()

    def error(self) -> Optional[RunAbortedError]:
        """The error describing why the context is done, whichever fired first."""
        if self.cancelled:
            if self.deadline is not None and self._cancelled_at >= self.deadline:
                return DeadlineExceededError(self.hard_timeout)
            return CancelledError("operation cancelled")
        if self.deadline_passed():
            return DeadlineExceededError(self.hard_timeout)
        return None

    def raise_if_done(self) -> None:
        err = self.error()
        if err is not None:
            raise err

    def call_timeout(self, timeout: float) -> float:
        """Clamp a per-call timeout to what is left of the hard deadline."""
        remaining = self.remaining()
        if remaining is None:
            return timeout
        return max(0.001, min(timeout, remaining))

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return False if the context ended meanwhile."""
        timeout = seconds
        remaining = self.remaining()
        if remaining is not None:
            timeout = min(timeout, remaining)
        if timeout > 0:
            self._event.wait(timeout)
        return not self.done()


def install_signal_handlers(
    ctx: RunContext, signals: Iterable[int] = (signal.SIGINT, signal.SIGTERM)
) -> Callable[[], None]:
    """Cancel ``ctx`` on SIGINT/SIGTERM and return a callable restoring old handlers.

    Python only delivers signals to the main thread; elsewhere this is a no-op.
    """
    if threading.current_thread() is not threading.main_thread():
        logger.debug("Not on the main thread, signal handlers not installed")
        return lambda: None

    def _handler(signum, frame):
        logger.warning(f"Received signal: {signal.Signals(signum).name}. Shutting down...")
        ctx.cancel()

    previous = {}
    for sig in signals:
        previous[sig] = signal.signal(sig, _handler)

    def restore() -> None:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    return restore
