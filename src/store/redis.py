"""Redis-backed persistence for scrape jobs and research sessions.

Jobs live as JSON under ``job:<id>``. Pending jobs are also indexed in the
``jobs:pending`` sorted set, scored by creation time, so the oldest one can
be claimed with a single atomic ``ZPOPMIN``: two workers sharing the same
Redis can never claim the same job.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import redis.asyncio as redis
from redis.backoff import ExponentialBackoff
from redis.retry import Retry

from src.api.schemas import JobStatus, ResearchSession, ScrapeJob, utcnow

logger = logging.getLogger(__name__)

JOB_PREFIX = "job:"
PENDING_JOBS_KEY = "jobs:pending"
SESSION_PREFIX = "session:"


class JobStore:
    """Row-level access to the scrape job table."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    async def insert(self, job: ScrapeJob) -> ScrapeJob:
        """Persist a new job and, when pending, add it to the claim queue."""
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.set(f"{JOB_PREFIX}{job.id}", job.model_dump_json())
            if job.status == JobStatus.PENDING:
                pipe.zadd(PENDING_JOBS_KEY, {job.id: job.created_at.timestamp()})
            await pipe.execute()
        logger.info("job inserted", extra={"job_id": job.id, "url_count": len(job.urls)})
        return job

    async def read(self, job_id: str) -> ScrapeJob | None:
        """Return the job, or ``None`` on miss. Redis errors propagate."""
        raw = await self._client.get(f"{JOB_PREFIX}{job_id}")
        if raw is None:
            return None
        return ScrapeJob.model_validate_json(raw)

    async def get(self, job_id: str) -> ScrapeJob | None:
        """Return the job, or ``None`` on miss / error."""
        try:
            return await self.read(job_id)
        except redis.RedisError:
            logger.warning("job get failed", extra={"job_id": job_id}, exc_info=True)
            return None

    async def update(self, job: ScrapeJob) -> ScrapeJob:
        """Overwrite the stored job, bumping ``updated_at``."""
        job.updated_at = utcnow()
        await self._client.set(f"{JOB_PREFIX}{job.id}", job.model_dump_json())
        return job

    async def requeue(self, job: ScrapeJob) -> ScrapeJob:
        """Reset a claimed job to pending and put it back on the claim queue."""
        job.status = JobStatus.PENDING
        job.progress = 0
        job.results = []
        job.updated_at = utcnow()
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.set(f"{JOB_PREFIX}{job.id}", job.model_dump_json())
            pipe.zadd(PENDING_JOBS_KEY, {job.id: job.created_at.timestamp()})
            await pipe.execute()
        logger.info("job requeued", extra={"job_id": job.id})
        return job

    async def claim_next(self) -> ScrapeJob | None:
        """Atomically take the oldest pending job and mark it running.

        If reading or marking the popped job fails, its id goes back on the
        queue with the original score and the error propagates.
        """
        while True:
            popped = await self._client.zpopmin(PENDING_JOBS_KEY, 1)
            if not popped:
                return None
            job_id, score = popped[0]
            try:
                job = await self.read(job_id)
                if job is None or job.status != JobStatus.PENDING:
                    logger.warning("skipping stale pending entry", extra={"job_id": job_id})
                    continue

                job.status = JobStatus.RUNNING
                await self.update(job)
            except (redis.RedisError, asyncio.CancelledError):
                logger.warning("claim interrupted, restoring pending entry", extra={"job_id": job_id})
                await self._client.zadd(PENDING_JOBS_KEY, {job_id: score})
                raise

            logger.info("job claimed", extra={"job_id": job.id})
            return job


class SessionStore:
    """Row-level access to the research session table."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    async def insert(self, session: ResearchSession) -> ResearchSession:
        await self._client.set(f"{SESSION_PREFIX}{session.id}", session.model_dump_json())
        logger.info("session inserted", extra={"session_id": session.id})
        return session

    async def read(self, session_id: str) -> ResearchSession | None:
        """Return the session, or ``None`` on miss. Redis errors propagate."""
        raw = await self._client.get(f"{SESSION_PREFIX}{session_id}")
        if raw is None:
            return None
        return ResearchSession.model_validate_json(raw)

    async def get(self, session_id: str) -> ResearchSession | None:
        """Return the session, or ``None`` on miss / error."""
        try:
            return await self.read(session_id)
        except redis.RedisError:
            logger.warning("session get failed", extra={"session_id": session_id}, exc_info=True)
            return None

    async def update(self, session_id: str, **fields: Any) -> ResearchSession | None:
        """Apply *fields* to a stored session. Returns ``None`` if it does not exist.

        Redis errors propagate so a failed write-back is never mistaken for a
        missing session.
        """
        session = await self.read(session_id)
        if session is None:
            logger.warning("session update skipped, not found", extra={"session_id": session_id})
            return None
        session = session.model_copy(update={**fields, "updated_at": utcnow()})
        await self._client.set(f"{SESSION_PREFIX}{session.id}", session.model_dump_json())
        return session


async def create_redis_client(redis_url: str) -> redis.Redis:
    # Strip credentials for logging (everything before @ if present)
    safe_url = redis_url.split("@")[-1] if "@" in redis_url else redis_url
    logger.info("connecting to redis", extra={"redis_url": safe_url})
    retry = Retry(ExponentialBackoff(), retries=3)
    return redis.from_url(
        redis_url,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        health_check_interval=30,
        retry=retry,
        retry_on_error=[redis.ConnectionError, redis.TimeoutError],
    )
