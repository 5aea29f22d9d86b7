"""Retry pacing with jittered exponential backoff for Admin API calls."""

from __future__ import annotations

import logging
import random
import threading
import time
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from shopware_media.api.client import ShopwareApiError, ShopwareTransportError

if TYPE_CHECKING:
    from shopware_media.config import AppConfig

# Type variable for the wrapped call's return value
T = TypeVar("T")

logger = logging.getLogger(__name__)

DEFAULT_MIN_SLEEP = 0.01
DEFAULT_MAX_SLEEP = 2.0
DEFAULT_DECAY_CONSTANT = 2.0
DEFAULT_MAX_RETRIES = 10

RETRY_STATUS_CODES = frozenset(
    {
        401,  # Unauthorized: the token is dropped and re-acquired on retry
        429,  # Too Many Requests
        500,  # Internal Server Error
        502,  # Bad Gateway
        503,  # Service Unavailable
        504,  # Gateway Timeout
        509,  # Bandwidth Limit Exceeded
    }
)


class OperationCancelledError(Exception):
    """Raised when the cancel event is set while a call is being paced."""


def should_retry(exc: BaseException) -> bool:
    """Decide whether a failed Admin API call is worth repeating.

    Args:
        exc: Exception raised by the call.

    Returns:
        True for transport failures and retryable HTTP statuses.
    """
    if isinstance(exc, ShopwareApiError):
        return exc.status_code in RETRY_STATUS_CODES
    return isinstance(exc, ShopwareTransportError)


class Pacer:
    """Wraps remote calls, retrying transient failures with backoff.

    The backoff level is shared by every call made through one pacer: it
    doubles on each retry up to ``max_sleep`` and decays by
    ``decay_constant`` after each success, down to ``min_sleep``.
    """

    def __init__(
        self,
        min_sleep: float = DEFAULT_MIN_SLEEP,
        max_sleep: float = DEFAULT_MAX_SLEEP,
        decay_constant: float = DEFAULT_DECAY_CONSTANT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        cancel_event: threading.Event | None = None,
        retry_if: Callable[[BaseException], bool] = should_retry,
    ) -> None:
        """Initialise the pacer.

        Args:
            min_sleep: Initial and minimum sleep between attempts, in seconds.
            max_sleep: Ceiling for a single sleep, in seconds.
            decay_constant: Divisor applied to the backoff level on success.
            max_retries: Retries allowed per call before the error is raised.
            cancel_event: Optional event; when set, pending retries stop.
            retry_if: Classifier deciding which exceptions are retried.
        """
        self._min_sleep = min_sleep
        self._max_sleep = max_sleep
        self._decay_constant = decay_constant
        self._max_retries = max_retries
        self._cancel_event = cancel_event
        self._retry_if = retry_if
        self._sleep_time = min_sleep
        self._lock = threading.Lock()

    def call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Invoke fn, retrying while it raises a retryable exception.

        Returns:
            Whatever fn returns.

        Raises:
            OperationCancelledError: If the cancel event is set.
            Exception: The last exception raised by fn, unmodified, when it
                is not retryable or retries are exhausted.
        """
        retry_count = 0
        while True:
            self._check_cancelled()
            try:
                result = fn(*args, **kwargs)
            except Exception as exc:
                if not self._retry_if(exc):
                    raise
                retry_count += 1
                func_name = getattr(fn, "__name__", "call")
                if retry_count > self._max_retries:
                    logger.warning(
                        "[pacer] giving up after %d retries; call:%s;error:%s",
                        self._max_retries,
                        func_name,
                        exc,
                    )
                    raise
                delay = self._next_sleep()
                logger.warning(
                    "[pacer] retrying; call:%s;attempt:%d/%d;delay:%.3f;error:%s",
                    func_name,
                    retry_count,
                    self._max_retries,
                    delay,
                    exc,
                )
                self._sleep(delay)
                continue
            self._decay()
            return result

    def _next_sleep(self) -> float:
        """Return a jittered sleep and raise the backoff level for the next one."""
        with self._lock:
            base = self._sleep_time
            self._sleep_time = min(base * 2, self._max_sleep)
        return min(self._max_sleep, base + random.uniform(0, base))

    def _decay(self) -> None:
        with self._lock:
            self._sleep_time = max(self._sleep_time / self._decay_constant, self._min_sleep)

    def _sleep(self, delay: float) -> None:
        if self._cancel_event is None:
            time.sleep(delay)
        elif self._cancel_event.wait(delay):
            raise OperationCancelledError("Remote call cancelled while backing off")

    def _check_cancelled(self) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise OperationCancelledError("Remote call cancelled")


def pacer_from_config(config: AppConfig, cancel_event: threading.Event | None = None) -> Pacer:
    """Construct a Pacer from application configuration.

    Args:
        config: Application configuration instance.
        cancel_event: Optional cancellation signal owned by the host.

    Returns:
        Configured Pacer instance.
    """
    return Pacer(
        min_sleep=config.min_sleep,
        max_sleep=config.max_sleep,
        decay_constant=config.decay_constant,
        max_retries=config.max_retries,
        cancel_event=cancel_event,
    )
