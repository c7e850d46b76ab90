"""Stand-in headless pages for the rendered-page fetchers."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any
from unittest.mock import AsyncMock


def build_page(*snapshots: str) -> AsyncMock:
    """A page whose ``content()`` returns each DOM snapshot in turn."""
    page = AsyncMock()
    page.content = AsyncMock(side_effect=list(snapshots))
    return page


def call_names(page: AsyncMock) -> list[str]:
    """Names of the page methods awaited so far, in order."""
    return [name for name, _, _ in page.mock_calls]


class RecordingOpener:
    """Page opener that hands out ``page`` and records how it was opened."""

    def __init__(self, page: AsyncMock) -> None:
        self.page = page
        self.calls: list[dict[str, Any]] = []

    @asynccontextmanager
    async def __call__(self, **kwargs: Any) -> AsyncIterator[AsyncMock]:
        self.calls.append(kwargs)
        yield self.page
