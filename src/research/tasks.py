"""Background scrape worker: drains persisted jobs one at a time.

Each job's URLs are scraped sequentially with a pause between requests
(longer after LinkedIn URLs) so third-party providers do not flag the
traffic. Progress is written after every URL, so readers may see a running
job with partial results. A job interrupted by ``stop()`` goes back on the
pending queue and restarts from its first URL.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from src.api.schemas import JobStatus, ScrapeJob, utcnow
from src.research.scrape import ScraperRegistry, error_result, is_linkedin_url
from src.research.summary import SummaryGenerator
from src.store.redis import JobStore, SessionStore

logger = logging.getLogger(__name__)

SUMMARY_STEP = "summary-review"


class BackgroundScraper:
    """Polls the job store on a fixed interval and processes one job at a time."""

    def __init__(
        self,
        *,
        registry: ScraperRegistry,
        jobs: JobStore,
        sessions: SessionStore,
        summarizer: SummaryGenerator,
        interval: float = 10.0,
        linkedin_delay: float = 10.0,
        default_delay: float = 3.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._registry = registry
        self._jobs = jobs
        self._sessions = sessions
        self._summarizer = summarizer
        self._interval = interval
        self._linkedin_delay = linkedin_delay
        self._default_delay = default_delay
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="background-scraper")
        logger.info("background scraper started", extra={"interval": self._interval})

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("background scraper stopped")

    async def _run(self) -> None:
        while True:
            try:
                await self.process_next_job()
            except Exception:
                logger.exception("background scraper tick failed")
            await asyncio.sleep(self._interval)

    def delay_after(self, url: str) -> float:
        return self._linkedin_delay if is_linkedin_url(url) else self._default_delay

    async def process_next_job(self) -> ScrapeJob | None:
        """Claim and run the oldest pending job. Returns it, or ``None`` if idle."""
        if self._lock.locked():
            return None

        async with self._lock:
            job = await self._jobs.claim_next()
            if job is None:
                return None

            logger.info(
                "processing scrape job",
                extra={"job_id": job.id, "url_count": len(job.urls)},
            )
            try:
                await self._scrape_job(job)
            except asyncio.CancelledError:
                logger.warning("worker stopped mid-job, requeueing", extra={"job_id": job.id})
                await self._jobs.requeue(job)
                raise
            except Exception as exc:
                logger.exception("scrape job failed", extra={"job_id": job.id})
                job.status = JobStatus.FAILED
                job.error_message = str(exc) or type(exc).__name__
                await self._jobs.update(job)
                return job

            await self._update_session(job)
            logger.info("scrape job completed", extra={"job_id": job.id})
            return job

    async def _scrape_job(self, job: ScrapeJob) -> None:
        job.results = []
        job.progress = 0
        last = len(job.urls) - 1

        for i, url in enumerate(job.urls):
            logger.info(
                "scraping job url",
                extra={"job_id": job.id, "position": i + 1, "total": len(job.urls), "url": url},
            )
            try:
                result = await self._registry.route(url)
            except Exception as exc:
                logger.warning(
                    "job url failed",
                    extra={"job_id": job.id, "url": url, "error": str(exc)},
                    exc_info=True,
                )
                result = error_result(url, str(exc) or "Unknown error")

            job.results.append(result)
            job.progress = i + 1
            await self._jobs.update(job)

            if i < last:
                delay = self.delay_after(url)
                logger.debug("waiting before next request", extra={"job_id": job.id, "delay": delay})
                await self._sleep(delay)

        job.status = JobStatus.COMPLETED
        job.completed_at = utcnow()
        await self._jobs.update(job)

    async def _update_session(self, job: ScrapeJob) -> None:
        if job.session_id is None:
            return

        session = await self._sessions.get(job.session_id)
        query = session.query if session is not None and session.query else "Unknown"

        summary: str | None = None
        try:
            summary = await self._summarizer.generate_summary(query, job.results)
        except Exception:
            logger.exception(
                "summary generation failed",
                extra={"job_id": job.id, "session_id": job.session_id},
            )

        await self._sessions.update(
            job.session_id,
            scraped_content={"scrapedData": [r.to_wire() for r in job.results]},
            user_summary=summary,
            current_step=SUMMARY_STEP,
        )
