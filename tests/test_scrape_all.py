"""Parallel scrape tests: event sequence, ordering, concurrency, failures."""

import asyncio

import httpx
import pytest

from src.research.scrape import ScrapedPage, ScraperRegistry, build_default_registry, scrape_all


class ScriptedLoader:
    """Loader whose pages (or errors) are keyed by URL, with optional gates."""

    def __init__(self, pages: dict, gates: dict | None = None) -> None:
        self.pages = pages
        self.gates = gates or {}
        self.active = 0
        self.peak = 0
        self.cancelled: list[str] = []

    async def load(self, url: str) -> ScrapedPage:
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            gate = self.gates.get(url)
            if gate is not None:
                await gate.wait()
            else:
                await asyncio.sleep(0)
            outcome = self.pages[url]
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        except asyncio.CancelledError:
            self.cancelled.append(url)
            raise
        finally:
            self.active -= 1


def _registry(loader) -> ScraperRegistry:
    registry = ScraperRegistry()
    registry.set_default(loader)
    return registry


def _page(url: str, words: int) -> ScrapedPage:
    return ScrapedPage(url=url, title=f"Title {url}", content=" ".join(["word"] * words))


class Recorder:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict]] = []

    async def __call__(self, event: str, data: dict) -> None:
        self.events.append((event, data))

    def statuses(self, status: str) -> list[dict]:
        return [d for e, d in self.events if e == "status" and d["status"] == status]


@pytest.mark.asyncio
async def test_event_sequence_and_result_order():
    urls = ["https://a.test/1", "https://b.test/2", "https://c.test/3"]
    loader = ScriptedLoader(
        {
            urls[0]: _page(urls[0], 4),
            urls[1]: RuntimeError("upstream down"),
            urls[2]: _page(urls[2], 2),
        }
    )
    recorder = Recorder()

    results = await scrape_all(urls, _registry(loader), on_event=recorder)

    assert [r.url for r in results] == urls
    assert len(recorder.events) == 2 * len(urls) + 1

    # all "scraping" events come first, in input order
    assert [d["index"] for _, d in recorder.events[:3]] == [0, 1, 2]
    assert all(d["status"] == "scraping" for _, d in recorder.events[:3])

    completed = {d["index"]: d for d in recorder.statuses("completed")}
    assert set(completed) == {0, 2}
    assert completed[0]["wordCount"] == 4
    assert completed[0]["title"] == f"Title {urls[0]}"

    errors = recorder.statuses("error")
    assert [d["index"] for d in errors] == [1]
    assert errors[0]["error"] == "upstream down"

    final_event, final_data = recorder.events[-1]
    assert final_event == "complete"
    scraped = final_data["data"]["scrapedData"]
    assert [s["url"] for s in scraped] == urls
    assert scraped[1]["title"] == "Error loading page"
    assert scraped[1]["metadata"]["error"] is True
    assert "error" not in scraped[0]["metadata"]


@pytest.mark.asyncio
async def test_results_keep_input_order_when_completion_order_differs():
    urls = ["https://slow.test", "https://fast.test"]
    slow_gate = asyncio.Event()
    loader = ScriptedLoader(
        {urls[0]: _page(urls[0], 1), urls[1]: _page(urls[1], 2)},
        gates={urls[0]: slow_gate},
    )
    recorder = Recorder()

    task = asyncio.create_task(scrape_all(urls, _registry(loader), on_event=recorder))
    while not recorder.statuses("completed"):
        await asyncio.sleep(0)
    slow_gate.set()
    results = await task

    assert [d["index"] for d in recorder.statuses("completed")] == [1, 0]
    assert [r.url for r in results] == urls


@pytest.mark.asyncio
async def test_concurrency_cap_is_respected():
    urls = [f"https://site{i}.test" for i in range(7)]
    loader = ScriptedLoader({u: _page(u, 1) for u in urls})

    results = await scrape_all(urls, _registry(loader), concurrency=2)

    assert len(results) == 7
    assert loader.peak == 2


@pytest.mark.asyncio
async def test_invalid_concurrency_rejected():
    with pytest.raises(ValueError):
        await scrape_all(["https://a.test"], _registry(ScriptedLoader({})), concurrency=0)


@pytest.mark.asyncio
async def test_empty_url_list_emits_only_complete():
    recorder = Recorder()

    results = await scrape_all([], _registry(ScriptedLoader({})), on_event=recorder)

    assert results == []
    assert recorder.events == [("complete", {"type": "complete", "data": {"scrapedData": []}})]


@pytest.mark.asyncio
async def test_no_loader_becomes_error_result():
    results = await scrape_all(["https://a.test"], ScraperRegistry())

    assert results[0].metadata.error is True
    assert results[0].metadata.word_count == 0


@pytest.mark.asyncio
async def test_cancellation_stops_in_flight_loads():
    urls = ["https://a.test", "https://b.test"]
    never = asyncio.Event()
    loader = ScriptedLoader({}, gates={urls[0]: never, urls[1]: never})

    task = asyncio.create_task(scrape_all(urls, _registry(loader)))
    while loader.active < 2:
        await asyncio.sleep(0)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert sorted(loader.cancelled) == urls


@pytest.mark.asyncio
async def test_generic_page_and_failed_profile(settings_factory):
    """A reader page succeeds while a profile whose trigger has no snapshot id fails."""
    page_url = "https://example.com/a"
    profile_url = "https://linkedin.com/in/jdoe"

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "reader.test":
            body = " ".join(f"w{i}" for i in range(120))
            return httpx.Response(200, json={"data": {"title": "Example A", "content": body}})
        if request.url.path.endswith("/trigger"):
            return httpx.Response(200, json={"message": "accepted"})
        return httpx.Response(404)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    registry = build_default_registry(settings_factory(), http_client=http_client)
    recorder = Recorder()

    results = await scrape_all([page_url, profile_url], registry, on_event=recorder)
    await http_client.aclose()

    first, second = (r.to_wire() for r in results)
    assert first["url"] == page_url
    assert first["metadata"]["wordCount"] == 120
    assert "error" not in first["metadata"]

    assert second["url"] == profile_url
    assert second["title"] == "Error loading page"
    assert second["metadata"]["wordCount"] == 0
    assert second["metadata"]["error"] is True

    assert [d["index"] for d in recorder.statuses("error")] == [1]
    assert recorder.events[-1][0] == "complete"
