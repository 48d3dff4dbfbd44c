"""Timing for candidate generators and recommendation requests."""
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional
import logging

logger = logging.getLogger(__name__)


def now_ms() -> float:
    return time.perf_counter() * 1000


@dataclass
class Timer:
    label: str
    start_ms: float
    elapsed_ms: Optional[float] = None


@contextmanager
def time_operation(
    label: str,
    log_fn: Optional[Callable[[str], None]] = None,
    min_ms: float = 0.0,
) -> Iterator[Timer]:
    """
    Time the enclosed block. The yielded Timer has `elapsed_ms` set on exit, so
    callers can attach the duration to analytics events as well as the log.

    Nothing is logged for blocks faster than `min_ms`. Logs at DEBUG unless
    `log_fn` is given.

        with time_operation(f"generator=trending user={user_id}") as timer:
            candidates = trending_candidates(db, user_id, 5, now)
        timer.elapsed_ms
    """
    timer = Timer(label=label, start_ms=now_ms())
    try:
        yield timer
    finally:
        timer.elapsed_ms = round(now_ms() - timer.start_ms, 2)
        if timer.elapsed_ms >= min_ms:
            (log_fn or logger.debug)(f"{label}: {timer.elapsed_ms:.2f}ms")
