"""Delay extraction from short social-feed posts.

Typical posts::

    Train 166 southbound is running about 14 minutes late approaching San Carlos
    Train 425 southbound delayed 9 minutes
    NB Train 153 on time
    SB 429 delayed by 12 minutes
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from commuter_api.models.enums import Direction

_TRAIN_NUMBER = re.compile(
    r"(?:Train\s+|NB\s+Train\s+|SB\s+Train\s+|NB\s+|SB\s+)?(?<!\d)(\d{3})(?!\d)",
    re.IGNORECASE,
)
_NORTHBOUND = re.compile(r"northbound|NB\s+Train|NB\s+\d", re.IGNORECASE)
_SOUTHBOUND = re.compile(r"southbound|SB\s+Train|SB\s+\d", re.IGNORECASE)
_ON_TIME = re.compile(r"on time|on-time", re.IGNORECASE)

# First match wins
_DELAY_PATTERNS = (
    re.compile(r"(\d+)\s+min(?:ute)?s?\s+late", re.IGNORECASE),
    re.compile(r"delayed?\s+(?:by\s+)?(\d+)\s+min(?:ute)?s?", re.IGNORECASE),
    re.compile(
        r"running\s+(?:about\s+|approximately\s+)?(\d+)\s+min(?:ute)?s?\s+late", re.IGNORECASE
    ),
    re.compile(r"approximately\s+(\d+)\s+min(?:ute)?s?\s+late", re.IGNORECASE),
    re.compile(r"about\s+(\d+)\s+min(?:ute)?s?\s+late", re.IGNORECASE),
)


@dataclass(frozen=True)
class SocialTrainDelay:
    train_number: str
    delay_minutes: int
    posted_at: datetime
    text: str
    direction: Direction | None = None


def parse_direction(text: str) -> Direction | None:
    if _NORTHBOUND.search(text):
        return Direction.NORTHBOUND
    if _SOUTHBOUND.search(text):
        return Direction.SOUTHBOUND
    return None


def parse_post(text: str, posted_at: datetime) -> SocialTrainDelay | None:
    """Extract a train delay from one post.

    Args:
        text: Post body.
        posted_at: When the post was published.

    Returns:
        The delay, or None when the post names no train or states no
        delay. A post that names a train but says nothing about timing is
        not read as on time.
    """
    train_match = _TRAIN_NUMBER.search(text)
    if not train_match:
        return None

    delay_minutes: int | None = None
    if _ON_TIME.search(text):
        delay_minutes = 0
    else:
        for pattern in _DELAY_PATTERNS:
            match = pattern.search(text)
            if match:
                delay_minutes = int(match.group(1))
                break

    if delay_minutes is None:
        return None

    return SocialTrainDelay(
        train_number=train_match.group(1),
        delay_minutes=delay_minutes,
        posted_at=posted_at,
        text=text,
        direction=parse_direction(text),
    )


def latest_delays_by_train(delays: Iterable[SocialTrainDelay]) -> dict[str, SocialTrainDelay]:
    """Keep the first delay seen per train.

    Input is expected newest first, as a timeline renders.
    """
    latest: dict[str, SocialTrainDelay] = {}
    for delay in delays:
        latest.setdefault(delay.train_number, delay)
    return latest
