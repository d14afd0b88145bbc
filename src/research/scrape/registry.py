"""URL loader registry keyed by URL kind, and the per-URL dispatch."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from src.api.schemas import ScrapedMetadata, ScrapedResult
from src.research.errors import ScrapeError

if TYPE_CHECKING:
    from .models import ScrapedPage
    from .reader_loader import PageLoader

logger = logging.getLogger(__name__)

ERROR_TITLE = "Error loading page"
ERROR_CONTENT = "Unable to scrape content from this URL"


def url_match_key(url: str) -> str:
    """Return ``host + path`` (host lowercased), the string patterns match against."""
    parsed = urlparse(url)
    return f"{(parsed.hostname or '').lower()}{parsed.path}"


def url_domain(url: str) -> str:
    return urlparse(url).hostname or ""


def build_result(page: ScrapedPage) -> ScrapedResult:
    """Turn a loader's page into a successful result."""
    return ScrapedResult(
        url=page.url,
        title=page.title or "No title extracted",
        content=page.content or "No content extracted",
        description=page.description or None,
        metadata=ScrapedMetadata(
            word_count=len(page.content.split()),
            domain=url_domain(page.url),
        ),
    )


def error_result(url: str, reason: str | None = None) -> ScrapedResult:
    """Build the error-flagged result that stands in for a failed URL."""
    content = f"{ERROR_CONTENT}: {reason}" if reason else ERROR_CONTENT
    return ScrapedResult(
        url=url,
        title=ERROR_TITLE,
        content=content,
        metadata=ScrapedMetadata(word_count=0, domain=url_domain(url), error=True),
    )


class ScraperRegistry:
    """Maps URL kinds to loader instances, with a default for everything else."""

    def __init__(self, classify: Callable[[str], str] | None = None) -> None:
        self._classify = classify
        self._loaders: dict[str, PageLoader] = {}
        self._default_loader: PageLoader | None = None

    def register(self, kind: str, loader: PageLoader) -> None:
        """Register the loader for URLs the classifier labels *kind*."""
        self._loaders[kind] = loader

    def set_default(self, loader: PageLoader) -> None:
        """Set the default loader for unmatched URLs."""
        self._default_loader = loader

    def get_loader(self, url: str) -> PageLoader | None:
        """Find the loader instance for a given URL."""
        if self._classify is not None:
            loader = self._loaders.get(self._classify(url))
            if loader is not None:
                return loader
        return self._default_loader

    async def route(self, url: str) -> ScrapedResult:
        """Scrape *url* with its loader. Loader errors propagate unchanged."""
        loader = self.get_loader(url)
        if loader is None:
            raise ScrapeError(f"No loader registered for {url}")

        logger.debug("loader selected", extra={"url": url, "loader": type(loader).__name__})
        page = await loader.load(url)
        return build_result(page)
