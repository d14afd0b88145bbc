"""Prompt templates for summary generation."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from src.api.schemas import ScrapedResult

SUMMARY_PROMPT = """\
You are preparing a briefing for someone about to write personalised outreach.

Research query: "{query}"
Current date: {date}

Scraped sources:
{sources}

Write a concise summary (3-6 short paragraphs) of who or what the query is \
about: role, organisation, background, notable work and recent activity. \
Only use facts present in the sources. If the sources disagree or are thin, \
say so briefly.
"""

# Per-source cap so one long page cannot crowd out the rest.
MAX_SOURCE_CHARS = 6000


def format_sources(results: Sequence[ScrapedResult]) -> str:
    blocks: list[str] = []
    for result in results:
        if result.metadata.error:
            continue
        blocks.append(
            f"Source: {result.url}\nTitle: {result.title}\n\n"
            f"{result.content[:MAX_SOURCE_CHARS]}"
        )
    return "\n\n---\n\n".join(blocks) or "(no sources could be scraped)"


def format_summary_prompt(query: str, results: Sequence[ScrapedResult]) -> str:
    return SUMMARY_PROMPT.format(
        query=query,
        date=date.today().isoformat(),
        sources=format_sources(results),
    )
