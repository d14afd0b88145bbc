"""Web scraping submodule with pluggable loader registry."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import httpx

from src.api.schemas import ProgressEvent, ScrapedResult
from src.research.events import EventCallback, emit_event

from .dataset_client import PollPolicy, PostsDatasetClient, ProfileDatasetClient
from .linkedin import PROFILE_KIND, classify_url, is_linkedin_url
from .linkedin_loader import LinkedInLoader
from .models import ScrapedPage
from .reader_loader import PageLoader, ReaderLoader
from .registry import ScraperRegistry, build_result, error_result

if TYPE_CHECKING:
    from src.config import Settings

__all__ = [
    "LinkedInLoader",
    "PageLoader",
    "ReaderLoader",
    "ScrapedPage",
    "ScraperRegistry",
    "build_default_registry",
    "build_result",
    "classify_url",
    "error_result",
    "is_linkedin_url",
    "scrape_all",
]

logger = logging.getLogger(__name__)


def build_default_registry(
    settings: Settings,
    http_client: httpx.AsyncClient | None = None,
) -> ScraperRegistry:
    """Build the default scraper registry with configured loader instances."""
    common = dict(
        api_url=settings.dataset_api_url,
        failure_statuses=settings.dataset_failure_statuses,
        timeout=settings.http_timeout_seconds,
        http_client=http_client,
    )
    profile_client = ProfileDatasetClient(
        token=settings.linkedin_profile_token,
        dataset_id=settings.linkedin_profile_dataset_id,
        poll_policy=PollPolicy(
            interval=settings.profile_poll_interval_seconds,
            backoff_factor=settings.poll_backoff_factor,
            max_interval=settings.poll_max_interval_seconds,
            deadline=settings.poll_deadline_seconds,
        ),
        **common,
    )
    posts_client = PostsDatasetClient(
        token=settings.linkedin_posts_token,
        dataset_id=settings.linkedin_posts_dataset_id,
        poll_policy=PollPolicy(
            interval=settings.posts_poll_interval_seconds,
            backoff_factor=settings.poll_backoff_factor,
            max_interval=settings.poll_max_interval_seconds,
            deadline=settings.poll_deadline_seconds,
        ),
        trigger_params={"type": "discover_new", "discover_by": "profile_url"},
        **common,
    )
    reader = ReaderLoader(
        api_key=settings.reader_api_key,
        reader_url=settings.reader_url,
        timeout=settings.http_timeout_seconds,
        http_client=http_client,
    )

    registry = ScraperRegistry(classify=classify_url)

    registry.register(PROFILE_KIND, LinkedInLoader(profile_client, posts_client))

    # Default catch-all: use the reader for any unmatched URL
    registry.set_default(reader)

    return registry


async def scrape_all(
    urls: list[str],
    registry: ScraperRegistry,
    on_event: EventCallback | None = None,
    concurrency: int = 5,
) -> list[ScrapedResult]:
    """Scrape every URL concurrently and return results in input order.

    Emits one ``scraping`` status per index up front, one ``completed`` or
    ``error`` status per index as each URL settles (in completion order), and
    a final ``complete`` event carrying every result.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")

    logger.info("scraping urls", extra={"url_count": len(urls), "concurrency": concurrency})
    for index, url in enumerate(urls):
        await emit_event(
            on_event,
            "status",
            ProgressEvent(type="status", index=index, status="scraping", url=url).to_wire(),
        )

    semaphore = asyncio.Semaphore(concurrency)

    async def _scrape_one(index: int, url: str) -> ScrapedResult:
        async with semaphore:
            try:
                result = await registry.route(url)
            except Exception as exc:
                reason = str(exc) or "Scraping failed"
                logger.warning(
                    "scrape failed",
                    extra={"url": url, "index": index, "error": reason},
                    exc_info=True,
                )
                await emit_event(
                    on_event,
                    "status",
                    ProgressEvent(
                        type="status", index=index, status="error", url=url, error=reason
                    ).to_wire(),
                )
                return error_result(url, reason)

        await emit_event(
            on_event,
            "status",
            ProgressEvent(
                type="status",
                index=index,
                status="completed",
                url=url,
                title=result.title,
                word_count=result.metadata.word_count,
            ).to_wire(),
        )
        return result

    results = list(
        await asyncio.gather(*(_scrape_one(i, url) for i, url in enumerate(urls)))
    )

    failed = sum(1 for r in results if r.metadata.error)
    logger.info(
        "scrape batch complete",
        extra={"urls_attempted": len(urls), "failed": failed},
    )
    await emit_event(
        on_event,
        "complete",
        ProgressEvent(
            type="complete",
            data={"scrapedData": [r.to_wire() for r in results]},
        ).to_wire(),
    )
    return results
