"""Generic page loader backed by a "read this page" HTTP service."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from src.research.errors import ExtractionError, NetworkError

from .models import ScrapedPage

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "No title found"
DEFAULT_DESCRIPTION = "No description found"


class PageLoader(Protocol):
    """Protocol for page loaders."""

    async def load(self, url: str) -> ScrapedPage: ...


class ReaderLoader:
    """Loads any URL through the reader service (``GET {reader_url}/{url}``)."""

    def __init__(
        self,
        api_key: str,
        reader_url: str = "https://r.jina.ai",
        *,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._reader_url = reader_url.rstrip("/")
        self._timeout = timeout
        self._http_client = http_client

    async def _get(self, url: str) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Accept": "application/json",
        }
        target = f"{self._reader_url}/{url}"
        if self._http_client is not None:
            return await self._http_client.get(target, headers=headers)
        async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
            return await client.get(target, headers=headers)

    async def load(self, url: str) -> ScrapedPage:
        """Fetch *url* via the reader and normalize its ``data`` envelope."""
        logger.debug("reader loading", extra={"url": url})
        try:
            resp = await self._get(url)
        except httpx.TransportError as exc:
            raise NetworkError(f"Reader request failed: {exc}") from exc

        if not resp.is_success:
            raise ExtractionError(
                f"Failed to fetch data from reader: HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            envelope: Any = resp.json()
        except ValueError as exc:
            raise ExtractionError("Reader returned invalid JSON") from exc

        data = envelope.get("data") if isinstance(envelope, dict) else None
        if not isinstance(data, dict):
            raise ExtractionError("Invalid response from reader: missing data")

        page = ScrapedPage(
            url=url,
            title=data.get("title") or DEFAULT_TITLE,
            content=data.get("content") or "",
            description=data.get("description") or DEFAULT_DESCRIPTION,
        )
        logger.debug(
            "reader loaded",
            extra={"url": url, "content_length": len(page.content), "title": page.title[:80]},
        )
        return page
