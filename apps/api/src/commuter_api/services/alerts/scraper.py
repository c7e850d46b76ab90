"""Caltrain.com alert page scraping and the cached text-alert client."""

from __future__ import annotations

from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Protocol

import httpx

from commuter_api.cache import TtlCache
from commuter_api.config import get_settings
from commuter_api.logging import get_logger
from commuter_api.models.delays import DelayObservation
from commuter_api.models.enums import DelaySourceTag, TrainStatus
from commuter_api.services.alerts.parser import (
    CaltrainAlert,
    extract_train_delays,
    get_system_wide_delays,
    parse_alerts_from_text,
)
from commuter_api.services.browser import BrowserError, PageOpener, open_page

logger = get_logger(__name__)

# Container class -> boilerplate markers whose elements are skipped
ALERT_CONTAINERS: dict[str, tuple[str, ...]] = {
    "pads_service_alerts": ("Tip:", "These are official"),
    "gtfs_rt_service_alerts": ("Tip:", "These alerts"),
}
MIN_ELEMENT_TEXT_LENGTH = 10

_ALERT_ELEMENTS = frozenset({"div", "p", "li"})
_VOID_TAGS = frozenset(
    {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "wbr"}
)


class AlertScrapeError(Exception):
    """Raised when the alert page cannot be fetched."""


@dataclass
class _Frame:
    tag: str
    container: str | None
    slot: int | None = None
    chunks: list[str] = field(default_factory=list)


class _AlertContainerParser(HTMLParser):
    """Collects the text of every div/p/li inside the known alert containers.

    Texts are kept in document order of their opening tags. Nested elements
    each contribute their own full text.
    """

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._stack: list[_Frame] = []
        self._slots: list[tuple[str, str]] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag in _VOID_TAGS:
            return

        enclosing = self._stack[-1].container if self._stack else None
        classes = (dict(attrs).get("class") or "").split()
        own = next((name for name in classes if name in ALERT_CONTAINERS), None)

        frame = _Frame(tag=tag, container=own or enclosing)
        if enclosing is not None and tag in _ALERT_ELEMENTS:
            frame.slot = len(self._slots)
            self._slots.append((enclosing, ""))
        self._stack.append(frame)

    def handle_endtag(self, tag: str) -> None:
        for index in range(len(self._stack) - 1, -1, -1):
            if self._stack[index].tag == tag:
                while len(self._stack) > index:
                    self._finish(self._stack.pop())
                return

    def handle_data(self, data: str) -> None:
        for frame in self._stack:
            if frame.slot is not None:
                frame.chunks.append(data)

    def close(self) -> None:
        super().close()
        while self._stack:
            self._finish(self._stack.pop())

    def _finish(self, frame: _Frame) -> None:
        if frame.slot is None:
            return
        container, _ = self._slots[frame.slot]
        self._slots[frame.slot] = (container, "".join(frame.chunks).strip())

    def texts(self) -> list[str]:
        results: list[str] = []
        for container, text in self._slots:
            if len(text) <= MIN_ELEMENT_TEXT_LENGTH:
                continue
            if any(marker in text for marker in ALERT_CONTAINERS[container]):
                continue
            results.append(text)
        return results


def extract_alert_texts(html: str) -> list[str]:
    """Pull alert texts out of the Caltrain.com alerts page markup."""
    parser = _AlertContainerParser()
    parser.feed(html)
    parser.close()
    return parser.texts()


class AlertTextFetcher(Protocol):
    async def fetch_text(self) -> str:
        """Return the raw alert text, one alert element per line."""
        ...


class HttpAlertPageFetcher:
    """Downloads the alerts page over HTTP and extracts the alert containers."""

    def __init__(self, url: str | None = None, timeout_sec: int | None = None) -> None:
        settings = get_settings()
        self.url = url or settings.alerts_page_url
        self.timeout_sec = timeout_sec or settings.alerts_scrape_timeout_sec

    async def fetch_text(self) -> str:
        """Fetch the page and join its alert texts with newlines.

        Raises:
            AlertScrapeError: If the request fails or returns an error status.
        """
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_sec),
                follow_redirects=True,
            ) as client:
                response = await client.get(self.url)
                response.raise_for_status()
                html = response.text
        except (httpx.HTTPStatusError, httpx.RequestError) as exc:
            msg = f"Failed to fetch alert page {self.url}"
            raise AlertScrapeError(msg) from exc

        texts = extract_alert_texts(html)
        logger.info("Scraped alert page", url=self.url, element_count=len(texts))
        return "\n".join(texts)


class BrowserAlertPageFetcher:
    """Renders the alerts page in headless Chromium before extracting alerts.

    The alert containers are filled by page scripts, so the fetcher waits
    for the first container to attach and then for ``render_wait_ms`` more
    before reading the DOM.
    """

    ready_selector = ".pads_service_alerts"

    def __init__(
        self,
        url: str | None = None,
        timeout_sec: int | None = None,
        *,
        render_wait_ms: int | None = None,
        selector_timeout_sec: int | None = None,
        open_page: PageOpener = open_page,
    ) -> None:
        settings = get_settings()
        self.url = url or settings.alerts_page_url
        self.timeout_sec = timeout_sec or settings.alerts_scrape_timeout_sec
        self.render_wait_ms = (
            settings.alerts_render_wait_ms if render_wait_ms is None else render_wait_ms
        )
        self.selector_timeout_sec = selector_timeout_sec or settings.scraper_selector_timeout_sec
        self._open_page = open_page

    async def fetch_text(self) -> str:
        """Render the page and join its alert texts with newlines.

        Raises:
            AlertScrapeError: If rendering fails or the alert container never
                appears.
        """
        try:
            async with self._open_page(timeout_sec=self.timeout_sec) as page:
                await page.goto(self.url, wait_until="networkidle")
                await page.wait_for_selector(
                    self.ready_selector, state="attached", timeout=self.selector_timeout_sec * 1000
                )
                await page.wait_for_timeout(self.render_wait_ms)
                html = await page.content()
        except BrowserError as exc:
            msg = f"Failed to render alert page {self.url}"
            raise AlertScrapeError(msg) from exc

        texts = extract_alert_texts(html)
        logger.info("Rendered alert page", url=self.url, element_count=len(texts))
        return "\n".join(texts)


def default_alert_fetcher() -> AlertTextFetcher:
    """The page fetcher selected by the ``scraper_backend`` setting."""
    if get_settings().scraper_backend == "http":
        return HttpAlertPageFetcher()
    return BrowserAlertPageFetcher()


class StaticAlertTextFetcher:
    """Serves a fixed alert text. Used for offline runs and tests."""

    def __init__(self, text: str) -> None:
        self.text = text

    async def fetch_text(self) -> str:
        return self.text


class TextAlertsClient:
    """Parses the alert page into structured alerts, cached for a few minutes.

    Never raises: scrape failures are logged and yield no alerts.
    """

    def __init__(
        self,
        *,
        fetcher: AlertTextFetcher | None = None,
        cache: TtlCache[list[CaltrainAlert]] | None = None,
    ) -> None:
        settings = get_settings()
        self._fetcher: AlertTextFetcher = fetcher or default_alert_fetcher()
        self._cache: TtlCache[list[CaltrainAlert]] = cache or TtlCache(settings.text_alerts_ttl_sec)

    async def fetch_alerts(self) -> list[CaltrainAlert]:
        cached = self._cache.get()
        if cached is not None:
            return cached

        try:
            text = await self._fetcher.fetch_text()
        except AlertScrapeError as exc:
            logger.error("Text alerts unavailable", error=str(exc), cause=str(exc.__cause__))
            return []

        alerts = parse_alerts_from_text(text)
        if not alerts:
            logger.warning("No alerts found on alert page")

        self._cache.set(alerts)
        logger.info("Text alerts refreshed", alert_count=len(alerts))
        return alerts

    async def fetch_delays(self) -> list[DelayObservation]:
        alerts = await self.fetch_alerts()
        return alerts_to_observations(alerts)


def alerts_to_observations(alerts: list[CaltrainAlert]) -> list[DelayObservation]:
    """Train-specific delays first, then system-wide delays in alert order."""
    observations = [
        DelayObservation(
            source=DelaySourceTag.TEXT_ALERT,
            delay_minutes=delay.delay_minutes,
            status=TrainStatus.DELAYED if delay.delay_minutes > 0 else TrainStatus.ON_TIME,
            train_number=delay.train_number,
        )
        for delay in extract_train_delays(alerts).values()
    ]

    for alert in get_system_wide_delays(alerts):
        observations.append(
            DelayObservation(
                source=DelaySourceTag.SYSTEM_WIDE_ALERT,
                delay_minutes=alert.delay_minutes or 0,
                system_wide=True,
                direction=alert.affected_direction or "both",
                location=alert.affected_location,
            )
        )

    return observations
