"""Tests for social-feed post parsing."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from commuter_api.models.enums import Direction
from commuter_api.services.social.parser import (
    latest_delays_by_train,
    parse_direction,
    parse_post,
)

POSTED = datetime(2025, 6, 4, 15, 30, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    ("text", "train", "minutes"),
    [
        ("Train 166 southbound is running about 14 minutes late approaching San Carlos", "166", 14),
        ("Train 425 southbound delayed 9 minutes", "425", 9),
        ("SB 429 delayed by 12 minutes", "429", 12),
        ("NB Train 153 on time", "153", 0),
        ("Train 231 is on-time departing Millbrae", "231", 0),
        ("Train 512 running approximately 7 mins late", "512", 7),
        ("Train 104 is 20 min late", "104", 20),
    ],
)
def test_parse_post_delays(text: str, train: str, minutes: int) -> None:
    delay = parse_post(text, POSTED)
    assert delay is not None
    assert delay.train_number == train
    assert delay.delay_minutes == minutes
    assert delay.posted_at == POSTED
    assert delay.text == text


@pytest.mark.parametrize(
    "text",
    [
        "Train 310 is experiencing mechanical issues",
        "Delays of 10 minutes expected systemwide",
        "Track work 1234 delayed 5 minutes",
        "",
    ],
)
def test_parse_post_without_delay(text: str) -> None:
    assert parse_post(text, POSTED) is None


@pytest.mark.parametrize(
    ("text", "direction"),
    [
        ("Train 166 southbound is running late", Direction.SOUTHBOUND),
        ("NB Train 153 on time", Direction.NORTHBOUND),
        ("SB 429 delayed by 12 minutes", Direction.SOUTHBOUND),
        ("Northbound 151 delayed", Direction.NORTHBOUND),
        ("Train 101 delayed 5 minutes", None),
    ],
)
def test_parse_direction(text: str, direction: Direction | None) -> None:
    assert parse_direction(text) is direction


def test_latest_delay_per_train_keeps_first_seen() -> None:
    newer = parse_post("Train 166 running 14 minutes late", POSTED)
    older = parse_post("Train 166 delayed 5 minutes", POSTED - timedelta(minutes=30))
    other = parse_post("NB Train 153 on time", POSTED - timedelta(hours=1))
    assert newer and older and other

    latest = latest_delays_by_train([newer, older, other])

    assert set(latest) == {"166", "153"}
    assert latest["166"].delay_minutes == 14
