"""Headless Chromium pages for the script-rendered scrape targets."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Protocol

from playwright.async_api import Error as BrowserError
from playwright.async_api import async_playwright

from commuter_api.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from contextlib import AbstractAsyncContextManager

    from playwright.async_api import Page

logger = get_logger(__name__)

CHROMIUM_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
)

__all__ = ["BrowserError", "PageOpener", "open_page"]


class PageOpener(Protocol):
    def __call__(
        self, *, timeout_sec: float, user_agent: str | None = None
    ) -> AbstractAsyncContextManager[Page]: ...


@asynccontextmanager
async def open_page(*, timeout_sec: float, user_agent: str | None = None) -> AsyncIterator[Page]:
    """Launch a throwaway headless browser and yield one page in it.

    ``timeout_sec`` becomes the page's default timeout for navigation and
    selector waits. The browser is closed on exit.

    Raises:
        BrowserError: If the browser cannot be launched.
    """
    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(headless=True, args=list(CHROMIUM_ARGS))
        logger.debug("Headless browser launched", version=browser.version)
        try:
            context = await browser.new_context(user_agent=user_agent)
            page = await context.new_page()
            page.set_default_timeout(timeout_sec * 1000)
            yield page
        finally:
            await browser.close()
