"""Fixtures: fake Redis stores, settings factory, fake clock."""

import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis

from src.config import Settings
from src.store.redis import JobStore, SessionStore


@pytest_asyncio.fixture
async def redis_client():
    """In-memory FakeRedis instance shared by the stores in one test."""
    client = FakeRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def job_store(redis_client) -> JobStore:
    return JobStore(redis_client)


@pytest_asyncio.fixture
async def session_store(redis_client) -> SessionStore:
    return SessionStore(redis_client)


def _make_settings(**overrides) -> Settings:
    defaults = dict(
        reader_api_key="reader-key",
        reader_url="https://reader.test",
        dataset_api_url="https://datasets.test/v3",
        linkedin_profile_token="profile-token",
        linkedin_posts_token="posts-token",
        dataset_failure_statuses=["failed"],
        profile_poll_interval_seconds=5.0,
        posts_poll_interval_seconds=3.0,
        tavily_api_key="",
        openai_api_key="",
        anthropic_api_key="",
    )
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)  # type: ignore[call-arg]


@pytest.fixture
def settings_factory():
    """Build Settings with test defaults; keyword overrides win."""
    return _make_settings


class FakeClock:
    """Monotonic clock whose ``sleep`` advances time instantly and records waits."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
