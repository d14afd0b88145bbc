"""Progress event plumbing shared by the scrape orchestrators and the SSE layer."""

from __future__ import annotations

import logging
from typing import Any, Callable, Coroutine

logger = logging.getLogger(__name__)

# Receives (event type, wire payload); the SSE route forwards both to the client.
EventCallback = Callable[[str, dict[str, Any]], Coroutine[Any, Any, None]]


async def emit_event(
    on_event: EventCallback | None,
    event: str,
    data: dict[str, Any] | None = None,
) -> None:
    """Forward a progress event to *on_event*, if one is registered."""
    if on_event is None:
        return
    payload = data or {}
    logger.debug(
        "progress event emitted",
        extra={"event": event, "index": payload.get("index"), "status": payload.get("status")},
    )
    await on_event(event, payload)
