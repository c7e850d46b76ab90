"""Byte downloads with bounded retries, shared by the feed fetchers."""

from __future__ import annotations

import asyncio

import httpx

from commuter_api.logging import get_logger

logger = get_logger(__name__)


class DownloadError(Exception):
    """Raised when a download fails on every attempt."""


class EmptyBodyError(DownloadError):
    """Raised when a server answers 2xx with no content."""


def backoff_delay(backoff_base: float, attempt: int) -> float:
    """Seconds to wait after the given 1-based failed attempt."""
    return backoff_base**attempt


async def download(
    url: str,
    *,
    label: str,
    timeout_sec: float,
    max_retries: int,
    backoff_base: float,
    require_content: bool = False,
    error_cls: type[DownloadError] = DownloadError,
) -> bytes:
    """GET ``url`` and return the body, retrying transport and HTTP errors.

    Args:
        url: Absolute URL, credentials included.
        label: Feed name used in log events and the final error message.
        timeout_sec: Per-attempt timeout.
        max_retries: Total number of attempts.
        backoff_base: Base of the exponential delay between attempts.
        require_content: Treat an empty 2xx body as a failed attempt.
        error_cls: Exception type raised once attempts are exhausted.

    Raises:
        DownloadError: ``error_cls``, chained to the last underlying error.
    """
    last_error: Exception | None = None

    for attempt in range(1, max_retries + 1):
        logger.info("Downloading feed", feed=label, attempt=attempt, max_retries=max_retries)
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(timeout_sec),
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
                data = response.content

            if require_content and not data:
                msg = f"Empty response body for {label}"
                raise EmptyBodyError(msg)
        except (httpx.HTTPStatusError, httpx.RequestError, EmptyBodyError) as exc:
            last_error = exc
            if attempt < max_retries:
                delay = backoff_delay(backoff_base, attempt)
                logger.warning(
                    "Feed download failed, retrying",
                    feed=label,
                    attempt=attempt,
                    delay_sec=delay,
                    error=str(exc),
                )
                await asyncio.sleep(delay)
            continue

        logger.info("Feed downloaded", feed=label, size_bytes=len(data))
        return data

    msg = f"Failed to fetch {label} after {max_retries} attempts"
    logger.error(msg, feed=label, error=str(last_error))
    raise error_cls(msg) from last_error
