"""FastAPI app entrypoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.api.routes import router
from src.config import get_settings
from src.logging_config import setup_logging
from src.research.scrape import build_default_registry
from src.research.summary import AgentSummaryGenerator
from src.research.tasks import BackgroundScraper
from src.store.redis import JobStore, SessionStore, create_redis_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # Initialize logging FIRST so all subsequent operations produce JSON logs
    setup_logging(settings.log_level)
    logger.info("starting prospect research service")

    redis_client = await create_redis_client(settings.redis_url)
    jobs = JobStore(redis_client)
    sessions = SessionStore(redis_client)

    registry = build_default_registry(settings)
    worker = BackgroundScraper(
        registry=registry,
        jobs=jobs,
        sessions=sessions,
        summarizer=AgentSummaryGenerator(settings),
        interval=settings.scheduler_interval_seconds,
        linkedin_delay=settings.linkedin_delay_seconds,
        default_delay=settings.default_delay_seconds,
    )

    # Attach to app state for dependency injection
    app.state.settings = settings
    app.state.jobs = jobs
    app.state.sessions = sessions
    app.state.registry = registry
    app.state.worker = worker

    if settings.background_worker_enabled:
        worker.start()

    logger.info(
        "prospect research service ready",
        extra={
            "scrape_concurrency": settings.scrape_concurrency,
            "poll_deadline_seconds": settings.poll_deadline_seconds,
            "background_worker": settings.background_worker_enabled,
            "llm_provider": settings.llm_provider,
        },
    )

    yield

    logger.info("shutting down prospect research service")
    await worker.stop()
    await redis_client.aclose()


app = FastAPI(title="Prospect Research Service", lifespan=lifespan)
app.include_router(router)


@app.get("/health")
async def health():
    return {"status": "ok"}
