"""Tavily web search wrapper used to propose links for scraping."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tavily import AsyncTavilyClient

logger = logging.getLogger(__name__)


class SearchError(Exception):
    """Search could not run (no API key) or the provider call failed."""


@dataclass(frozen=True)
class SearchResult:
    url: str
    title: str
    snippet: str
    rank: int


def _to_results(items: list[dict]) -> list[SearchResult]:
    results: list[SearchResult] = []
    seen: set[str] = set()
    for item in items:
        url = item.get("url") or ""
        if not url or url in seen:
            continue
        seen.add(url)
        rank = len(results) + 1
        results.append(
            SearchResult(
                url=url,
                title=item.get("title") or f"Result {rank}",
                snippet=item.get("content") or "No description available",
                rank=rank,
            )
        )
    return results


async def search(
    query: str,
    api_key: str,
    max_results: int = 10,
) -> list[SearchResult]:
    """Search the web and return ranked, URL-deduplicated results."""
    if not api_key:
        raise SearchError("Search API not configured")

    logger.debug("searching", extra={"query": query[:100], "max_results": max_results})
    client = AsyncTavilyClient(api_key=api_key)
    try:
        response = await client.search(
            query=query,
            max_results=max_results,
            include_answer=False,
        )
    except Exception as exc:
        logger.warning("search failed", extra={"query": query[:100]}, exc_info=True)
        raise SearchError("Search API failed") from exc

    results = _to_results(response.get("results", []))
    logger.info("search complete", extra={"query": query[:100], "result_count": len(results)})
    return results
