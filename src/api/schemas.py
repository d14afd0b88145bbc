"""Request/response Pydantic models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScrapeRequest(BaseModel):
    urls: list[str]


class CreateJobRequest(BaseModel):
    urls: list[str] = Field(min_length=1)
    session_id: str | None = None
    query: str = ""
    user_id: str | None = None


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)


class SearchHit(BaseModel):
    url: str
    title: str
    snippet: str
    rank: int = 0


class SearchResponse(BaseModel):
    query: str
    results: list[SearchHit] = []
    urls: list[str] = []


class ScrapedMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    scraped_at: datetime = Field(default_factory=utcnow, alias="scrapedAt")
    word_count: int = Field(default=0, alias="wordCount")
    domain: str = ""
    error: bool | None = None


class ScrapedResult(BaseModel):
    url: str
    title: str
    content: str
    description: str | None = None
    metadata: ScrapedMetadata = Field(default_factory=ScrapedMetadata)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ProgressEvent(BaseModel):
    """One message on the scrape progress stream."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["status", "complete", "error"]
    index: int | None = None
    status: Literal["scraping", "completed", "error"] | None = None
    url: str | None = None
    title: str | None = None
    word_count: int | None = Field(default=None, alias="wordCount")
    error: str | None = None
    data: dict[str, Any] | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ScrapeJob(BaseModel):
    id: str
    session_id: str | None = None
    urls: list[str]
    status: JobStatus = JobStatus.PENDING
    progress: int = 0
    total_urls: int = 0
    results: list[ScrapedResult] = []
    error_message: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None

    @model_validator(mode="after")
    def _check_progress(self) -> ScrapeJob:
        if not self.total_urls:
            self.total_urls = len(self.urls)
        if not 0 <= self.progress <= len(self.urls):
            raise ValueError(
                f"progress {self.progress} outside 0..{len(self.urls)}"
            )
        return self


class ResearchSession(BaseModel):
    id: str
    user_id: str | None = None
    query: str = ""
    current_step: str = "input"
    scraped_content: dict[str, Any] | None = None
    user_summary: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
