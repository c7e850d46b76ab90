"""511.org service alerts (SIRI situation exchange, JSON)."""

from __future__ import annotations

import json
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

import httpx

from commuter_api.cache import TtlCache, utc_now
from commuter_api.config import get_settings
from commuter_api.logging import get_logger

logger = get_logger(__name__)

AlertSeverity = Literal["info", "warning", "critical"]


@dataclass(frozen=True)
class ServiceAlert:
    id: str
    severity: AlertSeverity
    title: str
    description: str
    timestamp: str
    url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "severity": self.severity,
            "title": self.title,
            "description": self.description,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ServiceAlertsResult:
    alerts: list[ServiceAlert]
    is_mock_data: bool


def map_severity(severity: str | None) -> AlertSeverity:
    if not severity:
        return "info"
    lowered = severity.lower()
    if "severe" in lowered or "critical" in lowered:
        return "critical"
    if "warning" in lowered or "moderate" in lowered:
        return "warning"
    return "info"


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def _text_value(value: Any) -> str:
    """First text of a SIRI natural-language field (``[{"_": "..."}]`` or plain)."""
    for item in _as_list(value):
        if isinstance(item, dict):
            text = item.get("_") or item.get("value")
            if text:
                return str(text)
        elif item:
            return str(item)
    return ""


def parse_situations(payload: dict[str, Any], now: datetime) -> list[ServiceAlert]:
    """Convert a SIRI ``ServiceDelivery`` payload into service alerts."""
    delivery = payload.get("ServiceDelivery") or {}
    situations = (
        (delivery.get("SituationExchangeDelivery") or {}).get("Situations") or {}
    ).get("PtSituationElement")

    alerts: list[ServiceAlert] = []
    for situation in _as_list(situations):
        if not isinstance(situation, dict):
            continue
        links = _as_list((situation.get("InfoLinks") or {}).get("InfoLink"))
        url = links[0].get("Uri") if links and isinstance(links[0], dict) else None
        alerts.append(
            ServiceAlert(
                id=str(situation.get("SituationNumber") or uuid.uuid4()),
                severity=map_severity(situation.get("Severity")),
                title=_text_value(situation.get("Summary")) or "Service Alert",
                description=_text_value(situation.get("Description")),
                timestamp=now.isoformat(),
                url=url,
            )
        )
    return alerts


def demo_alerts(now: datetime) -> list[ServiceAlert]:
    timestamp = now.isoformat()
    return [
        ServiceAlert(
            id="mock-1",
            severity="info",
            title="Weekend Schedule in Effect",
            description=(
                "Caltrain is operating on a weekend schedule. "
                "Trains run less frequently on weekends."
            ),
            timestamp=timestamp,
        ),
        ServiceAlert(
            id="mock-2",
            severity="warning",
            title="Demo Service Alert",
            description=(
                "This is sample alert data. Configure TRANSIT_API_KEY for real service alerts."
            ),
            timestamp=timestamp,
        ),
    ]


class ServiceAlertsClient:
    """Fetches operator service alerts.

    Without an API key demo alerts are returned and flagged as mock data.
    Fetch failures yield no alerts, not an error.
    """

    def __init__(
        self,
        *,
        url: str | None = None,
        api_key: str | None = None,
        timeout_sec: int | None = None,
        cache: TtlCache[list[ServiceAlert]] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        settings = get_settings()
        self._url = url if url is not None else settings.service_alerts_full_url
        self._api_key = api_key if api_key is not None else settings.transit_api_key
        self._timeout_sec = timeout_sec or settings.service_alerts_timeout_sec
        self._cache: TtlCache[list[ServiceAlert]] = cache or TtlCache(
            settings.service_alerts_ttl_sec, clock=clock
        )
        self._clock = clock

    async def fetch_alerts(self) -> ServiceAlertsResult:
        if not self._api_key:
            logger.info("Using demo service alerts, TRANSIT_API_KEY not configured")
            return ServiceAlertsResult(demo_alerts(self._clock()), is_mock_data=True)

        cached = self._cache.get()
        if cached is not None:
            return ServiceAlertsResult(cached, is_mock_data=False)

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout_sec),
                follow_redirects=True,
            ) as client:
                response = await client.get(self._url)
                response.raise_for_status()
            # 511.org prefixes its JSON with a byte order mark
            payload = json.loads(response.content.decode("utf-8-sig"))
        except (httpx.HTTPStatusError, httpx.RequestError, ValueError) as exc:
            logger.error("Service alerts unavailable", error=str(exc))
            return ServiceAlertsResult([], is_mock_data=False)

        alerts = parse_situations(payload if isinstance(payload, dict) else {}, self._clock())
        self._cache.set(alerts)
        logger.info("Service alerts refreshed", alert_count=len(alerts))
        return ServiceAlertsResult(alerts, is_mock_data=False)


_client_instance: ServiceAlertsClient | None = None


def get_service_alerts_client() -> ServiceAlertsClient:
    """Get or create the singleton service alerts client."""
    global _client_instance
    if _client_instance is None:
        _client_instance = ServiceAlertsClient()
    return _client_instance


def reset_service_alerts_client() -> None:
    """Reset the singleton (for testing)."""
    global _client_instance
    _client_instance = None
