"""Retry policy for Kubernetes API calls.

Retries use exponential backoff with jitter and stop early when the run
context ends. Only rate limiting, server-side failures and transport
timeouts are retried; anything else fails the operation at once.
"""

import json
import random
from typing import Callable, Optional, TypeVar

import urllib3
from kubernetes.client.exceptions import ApiException
from pydantic import BaseModel
from tenacity import RetryCallState, RetryError, Retrying, retry_if_exception, stop_after_attempt
from tenacity.wait import wait_base

from ..core.context import RunContext
from ..core.errors import OperationFailedError, RetriesExhaustedError, RunAbortedError
from ..utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

RETRIABLE_STATUSES = frozenset({500, 502, 503, 504})

TRANSIENT_TRANSPORT_ERRORS = (
    urllib3.exceptions.TimeoutError,
    urllib3.exceptions.ProtocolError,
    urllib3.exceptions.MaxRetryError,
    urllib3.exceptions.NewConnectionError,
    ConnectionError,
    TimeoutError,
)


class RetryPolicy(BaseModel):
    """Backoff parameters: 1s, 2s, 4s, 8s between five attempts by default."""

    initial_interval: float = 1.0
    factor: float = 2.0
    max_interval: float = 15.0
    steps: int = 5
    jitter: float = 0.1


class wait_jittered_exponential(wait_base):
    """Exponential wait capped at ``max_interval``, then scaled by ±``jitter``."""

    def __init__(self, policy: RetryPolicy, rand: Callable[[float, float], float] = random.uniform):
        self.policy = policy
        self.rand = rand

    def __call__(self, retry_state: RetryCallState) -> float:
        exponent = max(0, retry_state.attempt_number - 1)
        delay = min(
            self.policy.initial_interval * self.policy.factor**exponent,
            self.policy.max_interval,
        )
        if self.policy.jitter:
            delay *= 1 + self.rand(-self.policy.jitter, self.policy.jitter)
        return max(0.0, delay)


def suggested_delay(exc: ApiException) -> Optional[float]:
    """Retry delay the server asked for, from the header or the Status body."""
    headers = exc.headers or {}
    retry_after = headers.get("Retry-After") if hasattr(headers, "get") else None
    if retry_after:
        try:
            return float(retry_after)
        except (TypeError, ValueError):
            pass

    if exc.body:
        try:
            body = json.loads(exc.body)
        except (TypeError, ValueError):
            return None
        if isinstance(body, dict):
            seconds = (body.get("details") or {}).get("retryAfterSeconds")
            if seconds:
                return float(seconds)
    return None


def is_retriable(exc: BaseException) -> bool:
    """Whether a failed attempt is worth repeating."""
    if isinstance(exc, ApiException):
        if exc.status == 429 or exc.status in RETRIABLE_STATUSES:
            return True
        return suggested_delay(exc) is not None
    return isinstance(exc, TRANSIENT_TRANSPORT_ERRORS)


class RetryExecutor:
    """Runs single API operations under the retry policy."""

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        rand: Callable[[float, float], float] = random.uniform,
    ):
        self.policy = policy or RetryPolicy()
        self.rand = rand

    def execute(self, ctx: RunContext, operation_name: str, op: Callable[[RunContext], T]) -> T:
        """Run ``op(ctx)`` until it succeeds, fails permanently or the budget is spent.

        Raises the context's ``RunAbortedError`` when the run ends before or
        during retries, ``OperationFailedError`` for a non-retriable error and
        ``RetriesExhaustedError`` once every step failed.
        """
        ctx.raise_if_done()

        def should_retry(exc: BaseException) -> bool:
            if ctx.done() or isinstance(exc, RunAbortedError):
                return False
            return is_retriable(exc)

        def sleep(seconds: float) -> None:
            if not ctx.wait(seconds):
                raise ctx.error()

        def before_sleep(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception()
            self._log_retriable(operation_name, exc, retry_state.attempt_number)

        retrying = Retrying(
            stop=stop_after_attempt(self.policy.steps),
            wait=wait_jittered_exponential(self.policy, self.rand),
            retry=retry_if_exception(should_retry),
            sleep=sleep,
            before_sleep=before_sleep,
            reraise=False,
        )

        try:
            return retrying(op, ctx)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            if ctx.done():
                raise ctx.error() from last_error
            logger.error(
                f"Operation '{operation_name}' timed out after {self.policy.steps} attempts. "
                f"Last error: {last_error}"
            )
            raise RetriesExhaustedError(operation_name, last_error, self.policy.steps) from last_error
        except RunAbortedError:
            raise
        except Exception as e:
            if ctx.done():
                raise ctx.error() from e
            logger.error(f"Non-retriable error during {operation_name}: {e}")
            raise OperationFailedError(operation_name, e) from e

    def _log_retriable(self, operation_name: str, exc: BaseException, attempt: int) -> None:
        if isinstance(exc, ApiException) and exc.status == 429:
            delay = suggested_delay(exc)
            if delay is not None:
                logger.warning(
                    f"Operation '{operation_name}' rate limited (429). Server suggests Retry-After: {delay:g}s"
                )
            else:
                logger.warning(
                    f"Operation '{operation_name}' rate limited (429). No Retry-After suggested."
                )
        logger.warning(
            f"Retriable error during {operation_name} (attempt {attempt}/{self.policy.steps}), "
            f"retrying... Error: {_describe(exc)}"
        )


def _describe(exc: BaseException) -> str:
    if isinstance(exc, ApiException):
        return f"({exc.status}) {exc.reason}"
    return str(exc)
