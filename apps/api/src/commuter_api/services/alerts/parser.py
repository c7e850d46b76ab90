"""Pattern-based parsing of Caltrain.com alert text.

Everything here is pure: text in, structured alerts and delays out.

Example input::

    Train 167 Will Run Ahead of Train 165.
    Please Expect Up To 40-45 Minute Delay for Train 165.
    Elevator: Bayshore Northbound is out of service.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Literal

from commuter_api.models.delays import AlertDirection

AlertType = Literal["delay", "running-ahead", "cancellation", "general", "elevator"]
Severity = Literal["info", "warning", "critical"]

MIN_SENTENCE_LENGTH = 10
CRITICAL_DELAY_MINUTES = 30

_SENTENCE_SPLIT = re.compile(r"[.\n]")
_TRAIN_NUMBER = re.compile(r"train\s+(\d+)", re.IGNORECASE)

# "Please Expect Up To 40-45 Minute Delay for Train 165"
_EXPECT_DELAY_FOR_TRAIN = re.compile(
    r"(?:expect|up to)\s+(?:up to\s+)?(\d+)(?:-(\d+))?\s*minute\s*delay\s+for\s+train\s+(\d+)",
    re.IGNORECASE,
)
# "Train 123 is delayed by 15 minutes"
_TRAIN_DELAYED_BY = re.compile(
    r"train\s+(\d+)\s+is\s+delayed\s+by\s+(\d+)\s*minutes?", re.IGNORECASE
)
# "Train 123: 15 minute delay"
_TRAIN_COLON_DELAY = re.compile(r"train\s+(\d+):\s*(\d+)\s*minute\s*delay", re.IGNORECASE)

_RANGE_MINUTE_DELAY = re.compile(r"(\d+)(?:-(\d+))?\s*minute\s*delay", re.IGNORECASE)
_RANGE_MINUTE = re.compile(r"(\d+)(?:-(\d+))?\s*minute", re.IGNORECASE)
_LOCATION = re.compile(r"\b(?:near|at|around)\s+([A-Za-z\s]+?)(?:\.|$|,)", re.IGNORECASE)

_SYSTEM_WIDE_MARKERS = ("all trains", "all northbound", "all southbound")


@dataclass(frozen=True)
class TrainDelay:
    train_number: str
    delay_minutes: int
    source: str = "caltrain-alerts"


@dataclass(frozen=True)
class SystemWideDelay:
    delay_minutes: int
    direction: AlertDirection = "both"
    location: str | None = None


@dataclass(frozen=True)
class CaltrainAlert:
    alert_text: str
    alert_type: AlertType
    severity: Severity
    train_number: str | None = None
    delay_minutes: int | None = None
    is_system_wide: bool = False
    affected_location: str | None = None
    affected_direction: AlertDirection | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "trainNumber": self.train_number,
            "delayMinutes": self.delay_minutes,
            "alertText": self.alert_text,
            "type": self.alert_type,
            "severity": self.severity,
            "isSystemWide": self.is_system_wide,
            "affectedLocation": self.affected_location,
            "affectedDirection": self.affected_direction,
        }


def _max_of_range(match: re.Match[str], low: int = 1, high: int = 2) -> int:
    """Upper bound of an ``A`` or ``A-B`` match; ranges are read conservatively."""
    return int(match.group(high)) if match.group(high) else int(match.group(low))


def parse_train_delay(alert_text: str) -> TrainDelay | None:
    """Extract a train-specific delay, or None if no pattern matches."""
    match = _EXPECT_DELAY_FOR_TRAIN.search(alert_text)
    if match:
        return TrainDelay(train_number=match.group(3), delay_minutes=_max_of_range(match))

    match = _TRAIN_DELAYED_BY.search(alert_text)
    if match:
        return TrainDelay(train_number=match.group(1), delay_minutes=int(match.group(2)))

    match = _TRAIN_COLON_DELAY.search(alert_text)
    if match:
        return TrainDelay(train_number=match.group(1), delay_minutes=int(match.group(2)))

    return None


def parse_system_wide_delay(alert_text: str) -> SystemWideDelay | None:
    """Extract a delay that applies to all trains.

    Examples:
        "Expect 30-60 Minute Delay For All Trains Near San Jose Diridon"
        "All northbound trains: 45 minute delay"
    """
    lower = alert_text.lower()
    if not any(marker in lower for marker in _SYSTEM_WIDE_MARKERS):
        return None

    match = _RANGE_MINUTE_DELAY.search(alert_text)
    if not match:
        return None

    location_match = _LOCATION.search(alert_text)
    location = location_match.group(1).strip() if location_match else None

    direction: AlertDirection = "both"
    if "northbound" in lower:
        direction = "northbound"
    elif "southbound" in lower:
        direction = "southbound"

    return SystemWideDelay(
        delay_minutes=_max_of_range(match),
        direction=direction,
        location=location or None,
    )


def categorize_alert(alert_text: str) -> AlertType:
    lower = alert_text.lower()

    if "elevator" in lower:
        return "elevator"
    if "cancel" in lower:
        return "cancellation"
    if "run ahead" in lower or "running ahead" in lower:
        return "running-ahead"
    if "delay" in lower:
        return "delay"
    return "general"


def determine_severity(alert_text: str, alert_type: AlertType) -> Severity:
    if alert_type == "cancellation":
        return "critical"
    if alert_type == "delay":
        match = _RANGE_MINUTE.search(alert_text)
        if match and _max_of_range(match) >= CRITICAL_DELAY_MINUTES:
            return "critical"
        return "warning"
    return "info"


def parse_alert(alert_text: str) -> CaltrainAlert:
    """Classify one alert sentence and pull out any delay it states.

    A sentence that names a specific train is never system-wide, even if it
    also mentions all trains.
    """
    alert_type = categorize_alert(alert_text)
    severity = determine_severity(alert_text, alert_type)

    train_match = _TRAIN_NUMBER.search(alert_text)
    train_number = train_match.group(1) if train_match else None

    train_delay = parse_train_delay(alert_text)
    system_wide = parse_system_wide_delay(alert_text)
    is_system_wide = system_wide is not None and train_number is None

    delay_minutes: int | None = None
    if train_delay is not None:
        delay_minutes = train_delay.delay_minutes
    elif system_wide is not None:
        delay_minutes = system_wide.delay_minutes

    return CaltrainAlert(
        alert_text=alert_text.strip(),
        alert_type=alert_type,
        severity=severity,
        train_number=train_number,
        delay_minutes=delay_minutes,
        is_system_wide=is_system_wide,
        affected_location=system_wide.location if is_system_wide and system_wide else None,
        affected_direction=system_wide.direction if is_system_wide and system_wide else None,
    )


def split_sentences(text: str) -> list[str]:
    """Split raw alert text on periods and newlines, dropping short fragments."""
    fragments = (fragment.strip() for fragment in _SENTENCE_SPLIT.split(text))
    return [fragment for fragment in fragments if len(fragment) >= MIN_SENTENCE_LENGTH]


def parse_alerts_from_text(text: str) -> list[CaltrainAlert]:
    return [parse_alert(sentence) for sentence in split_sentences(text)]


def extract_train_delays(alerts: Iterable[CaltrainAlert]) -> dict[str, TrainDelay]:
    """Map train number to the largest delay stated for it across all alerts."""
    delays: dict[str, TrainDelay] = {}
    for alert in alerts:
        delay = parse_train_delay(alert.alert_text)
        if delay is None:
            continue
        existing = delays.get(delay.train_number)
        if existing is None or delay.delay_minutes > existing.delay_minutes:
            delays[delay.train_number] = delay
    return delays


def get_system_wide_delays(alerts: Iterable[CaltrainAlert]) -> list[CaltrainAlert]:
    """System-wide alerts that carry a delay, in their original order."""
    return [alert for alert in alerts if alert.is_system_wide and alert.delay_minutes]
