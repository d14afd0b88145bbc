"""User summary generation from scraped results."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from pydantic_ai import Agent
from pydantic_ai.models import Model
from pydantic_ai.models.anthropic import AnthropicModel
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.anthropic import AnthropicProvider
from pydantic_ai.providers.openai import OpenAIProvider

from src.api.schemas import ScrapedResult
from src.config import Settings
from src.research.prompts import format_summary_prompt

logger = logging.getLogger(__name__)

_API_KEY_MAP = {
    "openai": "openai_api_key",
    "anthropic": "anthropic_api_key",
}


def build_model(settings: Settings) -> Model | str:
    """Model for the configured provider, using the key from settings when set.

    Without a configured key the ``provider:model`` string is returned and
    pydantic-ai reads the key from the process environment.
    """
    attr = _API_KEY_MAP.get(settings.llm_provider)
    api_key = getattr(settings, attr) if attr else ""
    if not api_key:
        return f"{settings.llm_provider}:{settings.fast_llm}"
    if settings.llm_provider == "anthropic":
        return AnthropicModel(settings.fast_llm, provider=AnthropicProvider(api_key=api_key))
    return OpenAIChatModel(settings.fast_llm, provider=OpenAIProvider(api_key=api_key))


class SummaryGenerator(Protocol):
    async def generate_summary(self, query: str, results: Sequence[ScrapedResult]) -> str: ...


class AgentSummaryGenerator:
    """Writes the session summary with a single LLM call."""

    def __init__(self, settings: Settings) -> None:
        self._model_name = f"{settings.llm_provider}:{settings.fast_llm}"
        self._model = build_model(settings)

    async def generate_summary(self, query: str, results: Sequence[ScrapedResult]) -> str:
        usable = [r for r in results if not r.metadata.error]
        logger.info(
            "generating summary",
            extra={"query": query[:100], "sources": len(usable), "model": self._model_name},
        )
        agent = Agent(self._model)
        result = await agent.run(format_summary_prompt(query, results))
        summary = result.output
        logger.info("summary generated", extra={"query": query[:100], "summary_words": len(summary.split())})
        return summary
