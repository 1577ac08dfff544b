"""
HTTP fetching of article detail pages.

The fetcher owns retry and backoff; the ingestion pipeline calls it once
per link and treats a failed result as the end of that item.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

import httpx

from .config import FetchConfig


@dataclass
class FetchResult:
    """Result of an HTTP fetch operation.

    Either text will be populated (success) or error will be populated (failure),
    but never both. status_code may be None for network-level failures.

    Attributes:
        url: The URL that was fetched
        status_code: HTTP status code, or None if request failed before getting response
        text: The response body text, or None on error
        error: Error message if fetch failed, None on success
    """
    url: str
    status_code: int | None
    text: str | None
    error: str | None


Fetcher = Callable[[str], Awaitable[FetchResult]]


async def fetch_url(
    url: str,
    timeout: float,
    retries: int,
    user_agent: str,
    trust_env: bool,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FetchResult:
    """Fetch a URL using httpx with retry logic.

    Follows redirects and respects system proxy settings when trust_env is
    enabled. Responses with a 4xx/5xx status count as failures and are
    retried like network errors.

    Args:
        url: The URL to fetch
        timeout: Request timeout in seconds
        retries: Number of retry attempts after initial failure
        user_agent: User-Agent header string
        trust_env: Whether to respect system proxy settings from environment
        transport: Optional transport override

    Returns:
        FetchResult with text on success or error message on failure
    """
    headers = {"User-Agent": user_agent}
    last_error: str | None = None
    status_code: int | None = None

    for attempt in range(retries + 1):
        try:
            async with httpx.AsyncClient(
                timeout=timeout,
                headers=headers,
                follow_redirects=True,
                trust_env=trust_env,
                transport=transport,
            ) as client:
                resp = await client.get(url)
            status_code = resp.status_code
            if resp.status_code < 400:
                return FetchResult(url=url, status_code=resp.status_code, text=resp.text, error=None)
            last_error = f"HTTPStatusError: {resp.status_code}"
        except httpx.HTTPError as exc:
            status_code = None
            last_error = f"{type(exc).__name__}: {exc}"
        if attempt < retries:
            # Linear backoff: 0.5s, 1.0s, 1.5s...
            await asyncio.sleep(0.5 * (attempt + 1))

    return FetchResult(url=url, status_code=status_code, text=None, error=last_error)


def build_fetcher(cfg: FetchConfig) -> Fetcher:
    """Bind fetch settings into a single-argument fetcher."""

    async def _fetch(url: str) -> FetchResult:
        return await fetch_url(
            url,
            timeout=cfg.timeout_seconds,
            retries=cfg.retries,
            user_agent=cfg.user_agent,
            trust_env=cfg.trust_env,
        )

    return _fetch
