"""POST /scrape, /jobs, /search and GET /jobs/{id}, /sessions/{id} handlers."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sse_starlette.sse import EventSourceResponse

from src.api.schemas import (
    CreateJobRequest,
    ResearchSession,
    ScrapeJob,
    ScrapeRequest,
    SearchRequest,
    SearchResponse,
)
from src.api.service import create_job, run_search, stream_scrape
from src.config import Settings
from src.research.scrape import ScraperRegistry
from src.research.search import SearchError
from src.store.redis import JobStore, SessionStore

router = APIRouter()


def _get_registry(request: Request) -> ScraperRegistry:
    return request.app.state.registry


def _get_jobs(request: Request) -> JobStore:
    return request.app.state.jobs


def _get_sessions(request: Request) -> SessionStore:
    return request.app.state.sessions


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


@router.post("/scrape")
async def scrape_urls(
    body: ScrapeRequest,
    registry: ScraperRegistry = Depends(_get_registry),
    settings: Settings = Depends(_get_settings),
):
    return EventSourceResponse(stream_scrape(registry, settings, body.urls))


@router.post("/jobs", status_code=status.HTTP_202_ACCEPTED, response_model=ScrapeJob)
async def submit_job(
    body: CreateJobRequest,
    jobs: JobStore = Depends(_get_jobs),
    sessions: SessionStore = Depends(_get_sessions),
):
    return await create_job(jobs, sessions, body)


@router.get("/jobs/{job_id}", response_model=ScrapeJob)
async def get_job(
    job_id: str,
    jobs: JobStore = Depends(_get_jobs),
):
    job = await jobs.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.get("/sessions/{session_id}", response_model=ResearchSession)
async def get_session(
    session_id: str,
    sessions: SessionStore = Depends(_get_sessions),
):
    session = await sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


@router.post("/search", response_model=SearchResponse)
async def search_links(
    body: SearchRequest,
    settings: Settings = Depends(_get_settings),
):
    try:
        return await run_search(settings, body.query)
    except SearchError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
