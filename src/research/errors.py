"""Error hierarchy for the scrape pipeline.

Leaf loaders raise these; the orchestrators turn them into error-flagged
results rather than letting them escape a single URL.
"""

from __future__ import annotations


class ScrapeError(Exception):
    """Base error for all scrape failures."""

    message: str = "Scraping failed"

    def __init__(self, message: str | None = None, **details: object) -> None:
        self.message = message or self.__class__.message
        self.details = details
        super().__init__(self.message)


class TriggerError(ScrapeError):
    """Dataset provider rejected the trigger or returned no snapshot id."""

    message = "Dataset trigger failed"


class PollTimeoutError(ScrapeError):
    """Snapshot did not become ready before the poll deadline."""

    message = "Snapshot polling timed out"


class DatasetJobFailedError(ScrapeError):
    """Snapshot reached a configured terminal failure status."""

    message = "Snapshot failed"


class FetchError(ScrapeError):
    """Snapshot status or payload could not be retrieved."""

    message = "Snapshot fetch failed"


class ExtractionError(ScrapeError):
    """Reader service returned an error or a malformed payload."""

    message = "Content extraction failed"


class NetworkError(ScrapeError):
    """Underlying transport failure (connect, timeout, protocol)."""

    message = "Network error"
