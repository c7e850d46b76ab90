"""Social timeline fetching and the cached social-feed delay client."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from html.parser import HTMLParser
from typing import Protocol

import httpx

from commuter_api.cache import TtlCache, utc_now
from commuter_api.config import get_settings
from commuter_api.logging import get_logger
from commuter_api.models.delays import DelayObservation
from commuter_api.models.enums import DelaySourceTag, TrainStatus
from commuter_api.services.browser import BrowserError, PageOpener, open_page
from commuter_api.services.social.parser import latest_delays_by_train, parse_post

logger = get_logger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class SocialScrapeError(Exception):
    """Raised when the timeline cannot be fetched."""


@dataclass(frozen=True)
class SocialPost:
    text: str
    posted_at: datetime


def parse_post_timestamp(value: str) -> datetime | None:
    """Parse an ISO-8601 ``datetime`` attribute; naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class _Article:
    depth: int
    chunks: list[str] = field(default_factory=list)
    body_chunks: list[str] = field(default_factory=list)
    body_depth: int | None = None
    posted_at: str | None = None


class _TimelineParser(HTMLParser):
    """Extracts posts from timeline markup.

    A post is an ``<article>``; its text is the ``data-testid="tweetText"``
    block when present, else the whole article. The first ``<time
    datetime=...>`` inside the article is its timestamp. A ``rel="next"``
    link, if any, points at the following page.
    """

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._depth = 0
        self._article: _Article | None = None
        self.posts: list[SocialPost] = []
        self.next_href: str | None = None

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        attributes = dict(attrs)

        rel = (attributes.get("rel") or "").split()
        if tag == "a" and self.next_href is None and "next" in rel:
            self.next_href = attributes.get("href")

        if tag in ("br", "img", "hr", "meta", "link", "input"):
            return

        self._depth += 1
        if tag == "article" and self._article is None:
            self._article = _Article(depth=self._depth)
            return

        article = self._article
        if article is None:
            return
        if tag == "time" and article.posted_at is None:
            article.posted_at = attributes.get("datetime")
        if attributes.get("data-testid") == "tweetText" and article.body_depth is None:
            article.body_depth = self._depth

    def handle_endtag(self, tag: str) -> None:
        if tag in ("br", "img", "hr", "meta", "link", "input"):
            return

        article = self._article
        if article is not None:
            if article.body_depth == self._depth:
                article.body_depth = -1
            if tag == "article" and article.depth == self._depth:
                self._finish(article)
                self._article = None
        self._depth = max(self._depth - 1, 0)

    def handle_data(self, data: str) -> None:
        article = self._article
        if article is None:
            return
        article.chunks.append(data)
        if article.body_depth is not None and article.body_depth > 0:
            article.body_chunks.append(data)

    def _finish(self, article: _Article) -> None:
        if not article.posted_at:
            return
        posted_at = parse_post_timestamp(article.posted_at)
        if posted_at is None:
            return
        text = "".join(article.body_chunks or article.chunks).strip()
        if text:
            self.posts.append(SocialPost(text=text, posted_at=posted_at))


def extract_posts(html: str) -> tuple[list[SocialPost], str | None]:
    """Return the posts on a timeline page and the next-page link, if any."""
    parser = _TimelineParser()
    parser.feed(html)
    parser.close()
    return parser.posts, parser.next_href


class SocialTimelineFetcher(Protocol):
    async def fetch_posts(self) -> list[SocialPost]:
        """Return timeline posts, newest first."""
        ...


class HttpTimelineFetcher:
    """Walks up to ``scroll_passes`` pages of a timeline over HTTP."""

    def __init__(
        self,
        url: str | None = None,
        timeout_sec: int | None = None,
        scroll_passes: int | None = None,
    ) -> None:
        settings = get_settings()
        self.url = url or settings.social_timeline_url
        self.timeout_sec = timeout_sec or settings.social_scrape_timeout_sec
        self.scroll_passes = scroll_passes or settings.social_scroll_passes

    async def fetch_posts(self) -> list[SocialPost]:
        """Fetch timeline pages and return de-duplicated posts in page order.

        Raises:
            SocialScrapeError: If the first page cannot be fetched.
        """
        posts: list[SocialPost] = []
        seen: set[tuple[str, datetime]] = set()
        url: str | None = self.url

        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_sec),
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        ) as client:
            for page in range(self.scroll_passes):
                if url is None:
                    break
                try:
                    response = await client.get(url)
                    response.raise_for_status()
                except (httpx.HTTPStatusError, httpx.RequestError) as exc:
                    if page == 0:
                        msg = f"Failed to fetch timeline {self.url}"
                        raise SocialScrapeError(msg) from exc
                    logger.warning("Timeline page failed, stopping", page=page + 1, error=str(exc))
                    break

                next_href = _collect(posts, seen, response.text)
                url = str(response.url.join(next_href)) if next_href else None

        logger.info("Scraped social timeline", post_count=len(posts))
        return posts


class BrowserTimelineFetcher:
    """Renders the timeline in headless Chromium and scrolls for older posts.

    Posts are collected after the first render and again after each of
    ``scroll_passes`` wheel scrolls. Only articles near the viewport are
    mounted at any time.
    """

    ready_selector = 'article[data-testid="tweet"]'

    def __init__(
        self,
        url: str | None = None,
        timeout_sec: int | None = None,
        scroll_passes: int | None = None,
        *,
        scroll_step_px: int | None = None,
        render_wait_ms: int | None = None,
        selector_timeout_sec: int | None = None,
        open_page: PageOpener = open_page,
    ) -> None:
        settings = get_settings()
        self.url = url or settings.social_timeline_url
        self.timeout_sec = timeout_sec or settings.social_scrape_timeout_sec
        self.scroll_passes = scroll_passes or settings.social_scroll_passes
        self.scroll_step_px = scroll_step_px or settings.social_scroll_step_px
        self.render_wait_ms = (
            settings.social_render_wait_ms if render_wait_ms is None else render_wait_ms
        )
        self.selector_timeout_sec = selector_timeout_sec or settings.scraper_selector_timeout_sec
        self._open_page = open_page

    async def fetch_posts(self) -> list[SocialPost]:
        """Render, scroll and return de-duplicated posts in page order.

        Raises:
            SocialScrapeError: If the timeline cannot be rendered.
        """
        posts: list[SocialPost] = []
        seen: set[tuple[str, datetime]] = set()

        try:
            async with self._open_page(
                timeout_sec=self.timeout_sec, user_agent=USER_AGENT
            ) as page:
                await page.goto(self.url, wait_until="domcontentloaded")
                await page.wait_for_selector(
                    self.ready_selector, timeout=self.selector_timeout_sec * 1000
                )
                await page.wait_for_timeout(self.render_wait_ms)
                _collect(posts, seen, await page.content())

                for _ in range(self.scroll_passes):
                    await page.mouse.wheel(0, self.scroll_step_px)
                    await page.wait_for_timeout(self.render_wait_ms)
                    _collect(posts, seen, await page.content())
        except BrowserError as exc:
            msg = f"Failed to render timeline {self.url}"
            raise SocialScrapeError(msg) from exc

        logger.info("Rendered social timeline", post_count=len(posts), scrolls=self.scroll_passes)
        return posts


def _collect(posts: list[SocialPost], seen: set[tuple[str, datetime]], html: str) -> str | None:
    """Append unseen posts from ``html`` and return its next-page link."""
    page_posts, next_href = extract_posts(html)
    for post in page_posts:
        key = (post.text, post.posted_at)
        if key not in seen:
            seen.add(key)
            posts.append(post)
    return next_href


def default_timeline_fetcher() -> SocialTimelineFetcher:
    """The timeline fetcher selected by the ``scraper_backend`` setting."""
    if get_settings().scraper_backend == "http":
        return HttpTimelineFetcher()
    return BrowserTimelineFetcher()


class StaticTimelineFetcher:
    """Serves a fixed list of posts. Used for offline runs and tests."""

    def __init__(self, posts: list[SocialPost]) -> None:
        self.posts = posts

    async def fetch_posts(self) -> list[SocialPost]:
        return list(self.posts)


class SocialFeedClient:
    """Recent per-train delays from the social timeline.

    Never raises. When disabled, or when the timeline is unreachable,
    returns no observations.
    """

    def __init__(
        self,
        *,
        fetcher: SocialTimelineFetcher | None = None,
        enabled: bool | None = None,
        lookback_hours: int | None = None,
        cache: TtlCache[list[SocialPost]] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        settings = get_settings()
        self._fetcher: SocialTimelineFetcher = fetcher or default_timeline_fetcher()
        self._enabled = settings.social_feed_enabled if enabled is None else enabled
        self._lookback = timedelta(
            hours=lookback_hours if lookback_hours is not None else settings.social_lookback_hours
        )
        self._cache: TtlCache[list[SocialPost]] = cache or TtlCache(
            settings.social_feed_ttl_sec, clock=clock
        )
        self._clock = clock

    async def fetch_posts(self) -> list[SocialPost]:
        if not self._enabled:
            return []

        cached = self._cache.get()
        if cached is not None:
            return cached

        try:
            posts = await self._fetcher.fetch_posts()
        except SocialScrapeError as exc:
            logger.error("Social feed unavailable", error=str(exc), cause=str(exc.__cause__))
            return []

        self._cache.set(posts)
        return posts

    async def fetch_delays(self) -> list[DelayObservation]:
        """Delays from posts within the lookback window, newest post per train."""
        posts = await self.fetch_posts()
        cutoff = self._clock() - self._lookback
        recent = sorted(
            (post for post in posts if post.posted_at >= cutoff),
            key=lambda post: post.posted_at,
            reverse=True,
        )

        parsed = (parse_post(post.text, post.posted_at) for post in recent)
        latest = latest_delays_by_train(delay for delay in parsed if delay is not None)

        logger.debug("Social feed delays", recent_posts=len(recent), trains=len(latest))
        return [
            DelayObservation(
                source=DelaySourceTag.SOCIAL_FEED,
                delay_minutes=delay.delay_minutes,
                status=TrainStatus.DELAYED if delay.delay_minutes > 0 else TrainStatus.ON_TIME,
                train_number=delay.train_number,
            )
            for delay in latest.values()
        ]
