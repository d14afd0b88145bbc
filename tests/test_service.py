"""Service layer and route tests."""

import json
from types import SimpleNamespace

import httpx
import pytest
from fastapi import FastAPI

from src.api.routes import router
from src.api.schemas import CreateJobRequest, JobStatus, ResearchSession
from src.api.service import create_job, stream_scrape
from src.research.scrape import ScrapedPage, ScraperRegistry


class EchoLoader:
    async def load(self, url: str) -> ScrapedPage:
        return ScrapedPage(url=url, title="Echo", content="one two three")


def _registry() -> ScraperRegistry:
    registry = ScraperRegistry()
    registry.set_default(EchoLoader())
    return registry


async def _collect(stream) -> list[tuple[str, dict]]:
    return [(item["event"], json.loads(item["data"])) async for item in stream]


# --- stream_scrape ---


@pytest.mark.asyncio
async def test_stream_scrape_yields_progress_then_complete(settings_factory):
    urls = ["https://a.test", "https://b.test"]

    events = await _collect(stream_scrape(_registry(), settings_factory(), urls))

    assert [e for e, _ in events] == ["status"] * 4 + ["complete"]
    assert events[0][1] == {"type": "status", "index": 0, "status": "scraping", "url": urls[0]}
    final = events[-1][1]["data"]["scrapedData"]
    assert [r["url"] for r in final] == urls
    assert final[0]["metadata"]["wordCount"] == 3


@pytest.mark.asyncio
async def test_stream_scrape_reports_orchestration_failure():
    settings = SimpleNamespace(scrape_concurrency=0)

    events = await _collect(stream_scrape(_registry(), settings, ["https://a.test"]))

    assert len(events) == 1
    event, data = events[0]
    assert event == "error"
    assert data["type"] == "error"
    assert "concurrency" in data["error"]


# --- create_job ---


@pytest.mark.asyncio
async def test_create_job_creates_session_when_missing(job_store, session_store):
    body = CreateJobRequest(urls=["https://a.test"], query="Jane Doe", user_id="u1")

    job = await create_job(job_store, session_store, body)

    assert job.status == JobStatus.PENDING
    assert job.total_urls == 1
    session = await session_store.get(job.session_id)
    assert session.query == "Jane Doe"
    assert session.user_id == "u1"
    assert session.current_step == "scraping"
    assert (await job_store.get(job.id)).session_id == job.session_id


@pytest.mark.asyncio
async def test_create_job_reuses_given_session(job_store, session_store):
    await session_store.insert(ResearchSession(id="existing", query="acme"))
    body = CreateJobRequest(urls=["https://a.test"], session_id="existing")

    job = await create_job(job_store, session_store, body)

    assert job.session_id == "existing"


# --- Routes ---


@pytest.fixture
def app(job_store, session_store, settings_factory) -> FastAPI:
    app = FastAPI()
    app.include_router(router)
    app.state.jobs = job_store
    app.state.sessions = session_store
    app.state.registry = _registry()
    app.state.settings = settings_factory()
    return app


def _client(app: FastAPI) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_submit_and_fetch_job(app):
    async with _client(app) as client:
        resp = await client.post("/jobs", json={"urls": ["https://a.test"], "query": "acme"})
        assert resp.status_code == 202
        job = resp.json()
        assert job["status"] == "pending"
        assert job["total_urls"] == 1

        fetched = await client.get(f"/jobs/{job['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["id"] == job["id"]

        session = await client.get(f"/sessions/{job['session_id']}")
        assert session.status_code == 200
        assert session.json()["query"] == "acme"


@pytest.mark.asyncio
async def test_submit_job_requires_urls(app):
    async with _client(app) as client:
        resp = await client.post("/jobs", json={"urls": []})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_unknown_job_and_session_return_404(app):
    async with _client(app) as client:
        job = await client.get("/jobs/missing")
        session = await client.get("/sessions/missing")

    assert job.status_code == 404
    assert job.json()["detail"] == "Job not found"
    assert session.status_code == 404
    assert session.json()["detail"] == "Session not found"


@pytest.mark.asyncio
async def test_search_without_api_key_returns_500(app):
    async with _client(app) as client:
        resp = await client.post("/search", json={"query": "jane doe"})

    assert resp.status_code == 500
    assert resp.json()["detail"] == "Search API not configured"
