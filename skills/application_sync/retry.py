"""Bounded exponential-backoff retry for source, store and LLM calls."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from skills.application_sync.errors import TransientError

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    retries: int = 3
    backoff_seconds: float = 1.0
    factor: float = 2.0

    def delay_for(self, attempt: int) -> float:
        return self.backoff_seconds * (self.factor ** (attempt - 1))


NO_RETRY = RetryPolicy(retries=0)


def with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy = RetryPolicy(),
    context: str = "operation",
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``fn`` and retry on ``TransientError`` up to ``policy.retries`` times.

    Permanent failures propagate on the first attempt. When retries are
    exhausted the last transient error is re-raised.
    """
    attempt = 0
    while True:
        try:
            return fn()
        except TransientError as exc:
            attempt += 1
            if attempt > policy.retries:
                raise
            delay = policy.delay_for(attempt)
            print(
                f"[RETRY] context={context} attempt={attempt}/{policy.retries} "
                f"delay_s={delay:.2f} error={exc}",
                flush=True,
            )
            sleep(delay)
