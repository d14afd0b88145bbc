"""Service layer: orchestrates scrape operations for the API routes."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import uuid
from typing import Any, AsyncGenerator

from src.api.schemas import (
    CreateJobRequest,
    ProgressEvent,
    ResearchSession,
    ScrapeJob,
    SearchHit,
    SearchResponse,
)
from src.config import Settings
from src.research.scrape import ScraperRegistry, scrape_all
from src.research.search import search
from src.store.redis import JobStore, SessionStore

logger = logging.getLogger(__name__)


def _generate_id() -> str:
    return uuid.uuid4().hex[:12]


async def stream_scrape(
    registry: ScraperRegistry,
    settings: Settings,
    urls: list[str],
) -> AsyncGenerator[dict[str, str], None]:
    """Yield SSE-formatted progress events for a parallel scrape.

    If the client disconnects, the generator is closed and the scrape task is
    cancelled along with every in-flight provider call.
    """
    logger.info("streaming scrape started", extra={"url_count": len(urls)})

    queue: asyncio.Queue[tuple[str, dict[str, Any]] | None] = asyncio.Queue()

    async def on_event(event: str, data: dict[str, Any]) -> None:
        await queue.put((event, data))

    async def run_and_signal_done() -> None:
        try:
            await scrape_all(
                urls,
                registry=registry,
                on_event=on_event,
                concurrency=settings.scrape_concurrency,
            )
        except Exception as exc:
            logger.exception("streaming scrape failed", extra={"url_count": len(urls)})
            await queue.put(
                ("error", ProgressEvent(type="error", error=str(exc) or "Unknown error").to_wire())
            )
        finally:
            await queue.put(None)  # sentinel

    task = asyncio.create_task(run_and_signal_done())

    try:
        while True:
            item = await queue.get()
            if item is None:
                break
            event, data = item
            yield {"event": event, "data": json.dumps(data)}
    finally:
        if not task.done():
            logger.info("client disconnected, cancelling scrape", extra={"url_count": len(urls)})
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task


async def create_job(
    jobs: JobStore,
    sessions: SessionStore,
    body: CreateJobRequest,
) -> ScrapeJob:
    """Queue a background scrape job, creating its session when none is given."""
    session_id = body.session_id
    if session_id is None:
        session = await sessions.insert(
            ResearchSession(
                id=_generate_id(),
                user_id=body.user_id,
                query=body.query,
                current_step="scraping",
            )
        )
        session_id = session.id

    job = ScrapeJob(id=_generate_id(), session_id=session_id, urls=body.urls)
    await jobs.insert(job)
    logger.info(
        "scrape job queued",
        extra={"job_id": job.id, "session_id": session_id, "url_count": len(job.urls)},
    )
    return job


async def run_search(settings: Settings, query: str) -> SearchResponse:
    results = await search(
        query,
        api_key=settings.tavily_api_key,
        max_results=settings.search_max_results,
    )
    hits = [SearchHit(url=r.url, title=r.title, snippet=r.snippet, rank=r.rank) for r in results]
    return SearchResponse(query=query, results=hits, urls=[h.url for h in hits])
