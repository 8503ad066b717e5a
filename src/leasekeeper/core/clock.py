"""Clock and timer used by the elector.

Wall-clock time (now) is written into lease records and compared against
other replicas' renew_time. Monotonic time drives local deadlines so a wall
clock step never extends a tenure.
"""

import asyncio
import time
from datetime import UTC, datetime


class Clock:
    """System clock. Subclass to skew or freeze time in tests."""

    def now(self) -> datetime:
        return datetime.now(UTC)

    def monotonic(self) -> float:
        return time.monotonic()


class Timer:
    """Resettable deadline on a monotonic clock.

    Usage:
        deadline = Timer(clock)
        deadline.reset(renew_deadline)
        if deadline.expired:
            ...
    """

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._deadline: float | None = None

    def reset(self, delay: float, since: float | None = None) -> None:
        """Arm the timer to fire delay seconds after since (default: now)."""
        start = since if since is not None else self._clock.monotonic()
        self._deadline = start + delay

    def clear(self) -> None:
        self._deadline = None

    @property
    def armed(self) -> bool:
        return self._deadline is not None

    def remaining(self) -> float:
        """Seconds until the deadline (0.0 if passed, inf if not armed)."""
        if self._deadline is None:
            return float("inf")
        return max(0.0, self._deadline - self._clock.monotonic())

    @property
    def expired(self) -> bool:
        return self._deadline is not None and self._clock.monotonic() >= self._deadline


async def sleep_or_stop(stop: asyncio.Event, seconds: float) -> bool:
    """Sleep for seconds, waking early if stop is set.

    Returns:
        True if stop was set (caller should exit its loop).
    """
    if stop.is_set():
        return True
    if seconds <= 0:
        return stop.is_set()
    try:
        async with asyncio.timeout(seconds):
            await stop.wait()
    except TimeoutError:
        return False
    return True
