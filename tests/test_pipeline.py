from __future__ import annotations

import asyncio
import urllib.request

import pytest

from telefeed.adapters.feed_fetcher import FeedFetcher
from telefeed.adapters.sqlite_storage import SQLiteSeenStore
from telefeed.core.config import DeliveryConfig, FetchConfig
from telefeed.core.delivery import DeliveryOrchestrator
from telefeed.core.errors import FetchFailure
from telefeed.core.models import Entry, FeedSource
from telefeed.core.selection import select_new_entries
from telefeed.pipeline import FAILED, FeedPipeline


ENTRIES = [
    Entry(title="A", link="a", body="<b>first</b>", published_at="Mon, 01 Jan 2024 10:00:00 +0000"),
    Entry(title="B", link="b", body="second", published_at="Mon, 01 Jan 2024 09:00:00 +0000"),
]


class SimulatedCrash(Exception):
    pass


class FakeFetcher:
    def __init__(self, feeds: dict[str, list[Entry]]) -> None:
        self._feeds = feeds
        self.calls: list[str] = []

    def fetch(self, url: str) -> list[Entry]:
        self.calls.append(url)
        if url not in self._feeds:
            raise FetchFailure(f"Failed to fetch feed: {url}")
        return list(self._feeds[url])


class FakeNotifier:
    def __init__(self) -> None:
        self.links: list[str] = []

    async def send(self, chat_id: str, text: str, parse_mode: str) -> None:
        self.links.append(text.rsplit("\n", 1)[-1])


async def _no_sleep(seconds: float) -> None:
    return None


async def _crash_sleep(seconds: float) -> None:
    raise SimulatedCrash("process killed after send")


def _store(tmp_path) -> SQLiteSeenStore:
    store = SQLiteSeenStore(str(tmp_path / "telefeed.db"))
    store.init_db()
    return store


def _pipeline(store, fetcher, notifier, sleep=_no_sleep, on_feed_error: str = "abort") -> FeedPipeline:
    orchestrator = DeliveryOrchestrator(
        storage=store,
        notifier=notifier,
        config=DeliveryConfig(chat_id="1", interval_seconds=10),
        sleep=sleep,
    )
    return FeedPipeline(store, fetcher, orchestrator, on_feed_error=on_feed_error)


def test_end_to_end_scenario(tmp_path) -> None:
    store = _store(tmp_path)
    store.ensure_namespace("Test")
    assert [entry.link for entry in select_new_entries(ENTRIES, "Test", store)] == ["a", "b"]

    notifier = FakeNotifier()
    fetcher = FakeFetcher({"https://example.com/rss": ENTRIES})
    pipeline = _pipeline(store, fetcher, notifier)

    delivered = asyncio.run(pipeline.run_feed(FeedSource("Test", "https://example.com/rss")))

    assert delivered == 2
    assert notifier.links == ["b", "a"]
    assert store.contains("Test", "a")
    assert store.contains("Test", "b")
    assert select_new_entries(ENTRIES, "Test", store) == []


def test_second_run_sends_nothing(tmp_path) -> None:
    store = _store(tmp_path)
    notifier = FakeNotifier()
    fetcher = FakeFetcher({"https://example.com/rss": ENTRIES})
    pipeline = _pipeline(store, fetcher, notifier)
    source = FeedSource("Test", "https://example.com/rss")

    asyncio.run(pipeline.run_feed(source))
    assert asyncio.run(pipeline.run_feed(source)) == 0
    assert notifier.links == ["b", "a"]


def test_crash_after_send_redelivers_on_next_run(tmp_path) -> None:
    store = _store(tmp_path)
    fetcher = FakeFetcher({"https://example.com/rss": ENTRIES})
    source = FeedSource("Test", "https://example.com/rss")

    crashed = FakeNotifier()
    with pytest.raises(SimulatedCrash):
        asyncio.run(_pipeline(store, fetcher, crashed, sleep=_crash_sleep).run_feed(source))
    assert crashed.links == ["b"]
    assert not store.contains("Test", "b")

    restarted = FakeNotifier()
    asyncio.run(_pipeline(store, fetcher, restarted).run_feed(source))
    assert restarted.links == ["b", "a"]


def test_abort_policy_stops_at_first_failing_feed(tmp_path) -> None:
    store = _store(tmp_path)
    notifier = FakeNotifier()
    fetcher = FakeFetcher({"https://good.example/rss": ENTRIES})
    pipeline = _pipeline(store, fetcher, notifier)

    sources = [
        FeedSource("Broken", "https://broken.example/rss"),
        FeedSource("Good", "https://good.example/rss"),
    ]
    with pytest.raises(FetchFailure):
        asyncio.run(pipeline.run_all(sources))
    assert notifier.links == []
    assert fetcher.calls == ["https://broken.example/rss"]


def test_continue_policy_isolates_failing_feed(tmp_path) -> None:
    store = _store(tmp_path)
    notifier = FakeNotifier()
    fetcher = FakeFetcher({"https://good.example/rss": ENTRIES})
    pipeline = _pipeline(store, fetcher, notifier, on_feed_error="continue")

    results = asyncio.run(
        pipeline.run_all(
            [
                FeedSource("Broken", "https://broken.example/rss"),
                FeedSource("Good", "https://good.example/rss"),
            ]
        )
    )
    assert results == {"Broken": FAILED, "Good": 2}
    assert notifier.links == ["b", "a"]


def test_same_links_in_different_feeds_are_delivered_separately(tmp_path) -> None:
    store = _store(tmp_path)
    notifier = FakeNotifier()
    fetcher = FakeFetcher({"https://one.example/rss": ENTRIES, "https://two.example/rss": ENTRIES})
    pipeline = _pipeline(store, fetcher, notifier)

    results = asyncio.run(
        pipeline.run_all(
            [FeedSource("One", "https://one.example/rss"), FeedSource("Two", "https://two.example/rss")]
        )
    )
    assert results == {"One": 2, "Two": 2}


def test_unknown_policy_is_rejected(tmp_path) -> None:
    with pytest.raises(ValueError):
        _pipeline(_store(tmp_path), FakeFetcher({}), FakeNotifier(), on_feed_error="retry")


GOOD_RSS = b"""<?xml version="1.0"?>
<rss version="2.0"><channel><title>Good</title>
<item><title>A</title><link>a</link><pubDate>Mon, 01 Jan 2024 10:00:00 +0000</pubDate></item>
</channel></rss>
"""


class FakeResponse:
    def __init__(self, body: bytes) -> None:
        self._body = body

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc) -> None:
        return None

    def read(self) -> bytes:
        return self._body


def test_continue_policy_survives_url_without_scheme(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(
        urllib.request, "urlopen", lambda request, timeout=None, context=None: FakeResponse(GOOD_RSS)
    )
    store = _store(tmp_path)
    notifier = FakeNotifier()
    pipeline = _pipeline(store, FeedFetcher(FetchConfig()), notifier, on_feed_error="continue")

    results = asyncio.run(
        pipeline.run_all(
            [
                FeedSource("Typo", "good.example/rss"),
                FeedSource("Good", "https://good.example/rss"),
            ]
        )
    )
    assert results == {"Typo": FAILED, "Good": 1}
    assert notifier.links == ["a"]
