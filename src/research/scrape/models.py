"""Data models for the scrape submodule."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ScrapedPage:
    """Normalized output of a single loader call."""

    url: str
    title: str = ""
    content: str = ""
    description: str = ""
