"""Bounded retry with exponential backoff."""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, TypeVar

from .config import MAX_ATTEMPTS, RETRY_DELAY, RETRY_MULTIPLIER
from .errors import FetchCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try and how long to wait in between."""

    max_attempts: int = MAX_ATTEMPTS
    delay: float = RETRY_DELAY
    multiplier: float = RETRY_MULTIPLIER

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.delay < 0 or self.multiplier < 1:
            raise ValueError("delay must be >= 0 and multiplier >= 1")

    def delays(self) -> Iterator[float]:
        """
        Yield the wait before each attempt after the first.

        The default policy yields 2, 4, 8, 16.
        """
        wait = self.delay
        for _ in range(self.max_attempts - 1):
            yield wait
            wait *= self.multiplier


def call_with_retry(
    func: Callable[[], T],
    policy: RetryPolicy,
    retry_on: tuple[type[BaseException], ...],
    sleep: Optional[Callable[[float], None]] = None,
    cancel: Optional[threading.Event] = None,
    description: str = "",
) -> T:
    """
    Call func until it succeeds or the policy's attempts are used up.

    Exceptions listed in retry_on trigger another attempt; the last one is
    re-raised once attempts are exhausted. Anything else propagates at once.

    Args:
        func: Zero-argument callable performing one attempt.
        policy: Attempt ceiling and backoff.
        retry_on: Exception types that count as a failed attempt.
        sleep: Wait function, injectable for tests. Defaults to waiting on
            the cancel event when one is given, else time.sleep.
        cancel: When set, remaining attempts are skipped and
            FetchCancelledError is raised.
        description: Label used in log messages.
    """
    delays = policy.delays()
    attempt = 1
    while True:
        if cancel is not None and cancel.is_set():
            raise FetchCancelledError(f"{description or 'operation'} cancelled")
        try:
            return func()
        except retry_on as e:
            wait = next(delays, None)
            if wait is None:
                logger.warning(
                    "%s failed after %d attempts: %s",
                    description or "operation", attempt, e,
                )
                raise
            logger.warning(
                "Retry %d/%d of %s in %gs: %s",
                attempt, policy.max_attempts - 1, description or "operation", wait, e,
            )
        _wait(wait, sleep, cancel, description)
        attempt += 1


def _wait(
    seconds: float,
    sleep: Optional[Callable[[float], None]],
    cancel: Optional[threading.Event],
    description: str,
) -> None:
    if sleep is not None:
        sleep(seconds)
    elif cancel is not None:
        if cancel.wait(seconds):
            raise FetchCancelledError(f"{description or 'operation'} cancelled")
    else:
        time.sleep(seconds)
