"""Retry bookkeeping, backoff and cancellation for OpenRouter calls."""

import random
import threading
import time
from dataclasses import dataclass

from .errors import ErrorKind, OpenRouterError

JITTER_RATIO = 0.5


@dataclass
class RetryState:
    """Retry bookkeeping for a single ``chat`` call."""

    max_retries: int
    current_attempt: int = 0
    base_delay_s: float = 1.0

    @property
    def exhausted(self) -> bool:
        return self.current_attempt >= self.max_retries


def compute_backoff(state: RetryState, jitter: bool = False) -> float:
    """Return the delay before the next attempt, in seconds.

    ``base_delay_s * 2**current_attempt``; with ``jitter`` a random extra of
    up to 50% of that value is added.
    """
    delay = state.base_delay_s * (2 ** state.current_attempt)
    if jitter:
        delay += random.random() * delay * JITTER_RATIO
    return delay


class CancelToken:
    """Caller-owned cancellation signal for an in-flight ``chat`` call.

    ``cancel(reason)`` records the exception to raise in the waiting call.
    Without a reason an OpenRouterError of kind CANCELLED is used.
    """

    def __init__(self):
        self._event = threading.Event()
        self._reason: BaseException | None = None

    def cancel(self, reason: BaseException | None = None) -> None:
        if self._event.is_set():
            return
        self._reason = reason or OpenRouterError(
            ErrorKind.CANCELLED, "Request cancelled by caller"
        )
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> BaseException | None:
        return self._reason

    def wait(self, timeout: float | None = None) -> bool:
        """Block up to ``timeout`` seconds; True once the token is cancelled."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise self._reason


def sleep(delay_s: float, cancel: CancelToken | None = None) -> None:
    """Sleep for ``delay_s`` seconds, waking early if ``cancel`` fires."""
    if cancel is None:
        if delay_s > 0:
            time.sleep(delay_s)
        return

    if cancel.wait(max(delay_s, 0)):
        raise cancel.reason
