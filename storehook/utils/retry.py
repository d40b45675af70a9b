from __future__ import annotations

import random
import time


def compute_backoff(attempt: int, base: float = 0.5, jitter: float = 0.1) -> float:
    """Compute exponential backoff with jitter."""
    if base <= 0:
        return 0.0
    delay = base * (2 ** attempt)
    return delay + random.uniform(0, jitter)


def sleep_before_retry(attempt: int, base: float = 0.5) -> None:
    """Sleep for computed backoff delay before retrying."""
    delay = compute_backoff(attempt, base=base)
    if delay > 0:
        time.sleep(delay)
