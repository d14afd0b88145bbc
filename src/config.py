"""Pydantic Settings: loads configuration from environment variables."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "extra": "ignore"}

    # Generic page reader
    reader_api_key: str = ""
    reader_url: str = "https://r.jina.ai"

    # Dataset collection API (LinkedIn profile + posts)
    dataset_api_url: str = "https://api.brightdata.com/datasets/v3"
    linkedin_profile_token: str = ""
    linkedin_posts_token: str = ""
    linkedin_profile_dataset_id: str = "gd_l1viktl72bvl7bjuj0"
    linkedin_posts_dataset_id: str = "gd_lyy3tktm25m4avu764"
    # Provider statuses that mean a snapshot will never become ready.
    # JSON list in the environment, e.g. DATASET_FAILURE_STATUSES='["failed"]'
    dataset_failure_statuses: list[str]

    profile_poll_interval_seconds: float = Field(default=5.0, gt=0)
    posts_poll_interval_seconds: float = Field(default=3.0, gt=0)
    poll_backoff_factor: float = Field(default=1.5, ge=1.0)
    poll_max_interval_seconds: float = Field(default=30.0, gt=0)
    poll_deadline_seconds: float = Field(default=300.0, gt=0)
    http_timeout_seconds: float = Field(default=30.0, gt=0)

    # Parallel scraping
    scrape_concurrency: int = Field(default=5, ge=1)

    # Background job worker
    scheduler_interval_seconds: float = Field(default=10.0, gt=0)
    linkedin_delay_seconds: float = Field(default=10.0, ge=0)
    default_delay_seconds: float = Field(default=3.0, ge=0)
    background_worker_enabled: bool = True

    # Search
    tavily_api_key: str = ""
    search_max_results: int = Field(default=10, ge=1)

    # Summary generation
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    llm_provider: str = "openai"
    fast_llm: str = "gpt-4o-mini"

    redis_url: str = "redis://localhost:6379"
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
