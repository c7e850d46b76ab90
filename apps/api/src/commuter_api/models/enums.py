"""Enumerations shared across the timetable, feed and reconciliation layers."""

from __future__ import annotations

from enum import Enum, IntEnum


class Direction(IntEnum):
    """GTFS ``direction_id`` for the Caltrain line."""

    NORTHBOUND = 0
    SOUTHBOUND = 1

    @property
    def label(self) -> str:
        return "Northbound" if self is Direction.NORTHBOUND else "Southbound"

    @property
    def alert_name(self) -> str:
        """Lower-case name as it appears in alert text."""
        return self.label.lower()

    @classmethod
    def from_gtfs(cls, value: str | int) -> Direction:
        return cls(int(value))


class TrainStatus(str, Enum):
    ON_TIME = "on-time"
    DELAYED = "delayed"
    CANCELLED = "cancelled"


class ServiceTier(str, Enum):
    LOCAL = "Local"
    LIMITED = "Limited"
    EXPRESS = "Express"


class DelaySourceTag(str, Enum):
    """Which source a resolved delay came from."""

    GTFS_RT = "gtfs-rt"
    TEXT_ALERT = "text-alert"
    SYSTEM_WIDE_ALERT = "system-wide-alert"
    SOCIAL_FEED = "social-feed"
    SYNTHETIC = "synthetic"
