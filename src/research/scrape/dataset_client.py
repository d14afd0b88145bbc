"""Dataset collection API client: trigger a snapshot, poll it, fetch it.

The provider has no push notification, so each call polls the snapshot
progress endpoint with exponential backoff until it reports ``ready``, hits a
configured failure status, or the poll deadline runs out.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable, Collection, Iterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from typing import Any

import httpx

from src.research.errors import (
    DatasetJobFailedError,
    FetchError,
    NetworkError,
    PollTimeoutError,
    TriggerError,
)

from .linkedin import parse_posts, parse_profile, profile_name
from .models import ScrapedPage

logger = logging.getLogger(__name__)

READY_STATUS = "ready"

SleepFunc = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class PollPolicy:
    """Backoff schedule for snapshot polling."""

    interval: float
    backoff_factor: float = 1.5
    max_interval: float = 30.0
    deadline: float = 300.0

    def delays(self) -> Iterator[float]:
        """Yield successive waits between polls, growing up to ``max_interval``."""
        delay = self.interval
        while True:
            yield min(delay, self.max_interval)
            delay *= self.backoff_factor


@dataclass(frozen=True)
class DatasetJob:
    """One asynchronous collection run on the provider side."""

    snapshot_id: str
    dataset_id: str
    status: str = "pending"


class DatasetClient:
    """Runs the trigger -> poll -> fetch protocol for one dataset."""

    def __init__(
        self,
        *,
        api_url: str,
        token: str,
        dataset_id: str,
        poll_policy: PollPolicy,
        failure_statuses: Collection[str],
        trigger_params: dict[str, str] | None = None,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
        sleep: SleepFunc = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._token = token
        self._dataset_id = dataset_id
        self._poll_policy = poll_policy
        self._failure_statuses = frozenset(s.lower() for s in failure_statuses)
        self._trigger_params = trigger_params or {}
        self._timeout = timeout
        self._http_client = http_client
        self._sleep = sleep
        self._clock = clock

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"}

    async def _send(
        self,
        client: httpx.AsyncClient,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            return await client.request(
                method, f"{self._api_url}{path}", headers=self._headers(), **kwargs
            )
        except httpx.TransportError as exc:
            raise NetworkError(f"{method} {path} failed: {exc}") from exc

    async def collect(self, url: str) -> Any:
        """Run all three phases for *url* and return the raw snapshot payload."""
        async with self._client() as client:
            job = await self.trigger(client, url)
            job = await self.wait_until_ready(client, job)
            return await self.fetch_snapshot(client, job)

    async def trigger(self, client: httpx.AsyncClient, url: str) -> DatasetJob:
        params = {
            "dataset_id": self._dataset_id,
            "include_errors": "true",
            **self._trigger_params,
        }
        resp = await self._send(client, "POST", "/trigger", params=params, json=[{"url": url}])
        if not resp.is_success:
            raise TriggerError(
                f"Trigger rejected with HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        try:
            snapshot_id = resp.json().get("snapshot_id")
        except (ValueError, AttributeError) as exc:
            raise TriggerError("Trigger response is not a JSON object") from exc
        if not snapshot_id:
            raise TriggerError("Snapshot ID not found in response")

        logger.info(
            "dataset snapshot triggered",
            extra={"url": url, "dataset_id": self._dataset_id, "snapshot_id": snapshot_id},
        )
        return DatasetJob(snapshot_id=snapshot_id, dataset_id=self._dataset_id)

    async def wait_until_ready(self, client: httpx.AsyncClient, job: DatasetJob) -> DatasetJob:
        started = self._clock()
        delays = self._poll_policy.delays()
        while True:
            resp = await self._send(client, "GET", f"/progress/{job.snapshot_id}")
            if not resp.is_success:
                raise FetchError(
                    f"Failed to fetch snapshot status: HTTP {resp.status_code}",
                    snapshot_id=job.snapshot_id,
                )
            try:
                status = str(resp.json().get("status", ""))
            except (ValueError, AttributeError) as exc:
                raise FetchError("Snapshot status is not a JSON object") from exc

            job = replace(job, status=status)
            logger.debug(
                "snapshot status",
                extra={"snapshot_id": job.snapshot_id, "status": status},
            )
            if status == READY_STATUS:
                return job
            if status.lower() in self._failure_statuses:
                raise DatasetJobFailedError(
                    f"Snapshot {job.snapshot_id} ended with status {status!r}",
                    snapshot_id=job.snapshot_id,
                    status=status,
                )

            delay = next(delays)
            elapsed = self._clock() - started
            if elapsed + delay > self._poll_policy.deadline:
                raise PollTimeoutError(
                    f"Snapshot {job.snapshot_id} not ready after {elapsed:.0f}s "
                    f"(last status {status!r})",
                    snapshot_id=job.snapshot_id,
                    status=status,
                )
            await self._sleep(delay)

    async def fetch_snapshot(self, client: httpx.AsyncClient, job: DatasetJob) -> Any:
        resp = await self._send(
            client, "GET", f"/snapshot/{job.snapshot_id}", params={"format": "json"}
        )
        if not resp.is_success:
            raise FetchError(
                f"Failed to fetch snapshot data: HTTP {resp.status_code}",
                snapshot_id=job.snapshot_id,
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise FetchError("Snapshot payload is not valid JSON") from exc


class ProfileDatasetClient(DatasetClient):
    """Collects a single LinkedIn profile."""

    async def fetch_profile(self, url: str) -> ScrapedPage:
        payload = await self.collect(url)
        return ScrapedPage(
            url=url,
            title=f"LinkedIn Profile: {profile_name(payload)}",
            content=parse_profile(payload),
            description="Scraped LinkedIn profile data",
        )


class PostsDatasetClient(DatasetClient):
    """Discovers the posts of a LinkedIn profile."""

    async def fetch_posts(self, url: str) -> str:
        payload = await self.collect(url)
        return parse_posts(payload)
