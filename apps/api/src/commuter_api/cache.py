"""In-memory time-boxed cache shared by the timetable store and feed clients."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Generic, TypeVar

T = TypeVar("T")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TtlCache(Generic[T]):
    """Holds a single ``(value, fetched_at)`` pair with a fixed TTL.

    Last writer wins. There is no request coalescing: concurrent callers
    that find the cache cold each fetch independently.
    """

    def __init__(self, ttl_sec: float, clock: Callable[[], datetime] = utc_now) -> None:
        self.ttl = timedelta(seconds=ttl_sec)
        self._clock = clock
        self._value: T | None = None
        self._fetched_at: datetime | None = None

    @property
    def fetched_at(self) -> datetime | None:
        return self._fetched_at

    def now(self) -> datetime:
        return self._clock()

    def is_fresh(self, now: datetime | None = None) -> bool:
        """Return True if a value is held and is younger than the TTL."""
        if self._fetched_at is None:
            return False
        now = now or self._clock()
        return now - self._fetched_at < self.ttl

    def get(self, now: datetime | None = None) -> T | None:
        """Return the cached value if fresh, else None."""
        if self.is_fresh(now):
            return self._value
        return None

    def peek(self) -> T | None:
        """Return the last stored value regardless of age."""
        return self._value

    def set(self, value: T, now: datetime | None = None) -> None:
        self._value = value
        self._fetched_at = now or self._clock()

    def clear(self) -> None:
        self._value = None
        self._fetched_at = None
