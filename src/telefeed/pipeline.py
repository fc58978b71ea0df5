"""Per-feed processing pipeline.

The pipeline enforces a strict order for each configured feed:
1) Fetch and parse the feed
2) Make sure the feed's seen-entries namespace exists
3) Drop entries already delivered, sort the rest newest first
4) Deliver oldest first, recording each entry only after it was sent

Feeds run one after another. By default the first failure aborts the whole
run; on_feed_error="continue" logs it and moves on to the next feed.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable

from telefeed.core.delivery import DeliveryOrchestrator
from telefeed.core.errors import TelefeedError
from telefeed.core.models import FeedSource
from telefeed.core.ports import FeedFetcherPort, SeenStorePort
from telefeed.core.selection import select_new_entries

LOGGER = logging.getLogger(__name__)

# Reported in run_all results for feeds skipped after an error.
FAILED = -1


class FeedPipeline:
    """Runs fetch, selection, and delivery for configured feeds."""

    def __init__(
        self,
        storage: SeenStorePort,
        fetcher: FeedFetcherPort,
        orchestrator: DeliveryOrchestrator,
        on_feed_error: str = "abort",
    ) -> None:
        if on_feed_error not in {"abort", "continue"}:
            raise ValueError(f"Unsupported on_feed_error policy: {on_feed_error}")
        self._storage = storage
        self._fetcher = fetcher
        self._orchestrator = orchestrator
        self._on_feed_error = on_feed_error

    async def run_feed(self, source: FeedSource) -> int:
        """Process one feed and return the number of delivered entries."""

        LOGGER.info("Feed: %s, URL: %s", source.name, source.url)
        entries = self._fetcher.fetch(source.url)
        self._storage.ensure_namespace(source.name)

        selected = select_new_entries(entries, source.name, self._storage)
        if not selected:
            LOGGER.info("Nothing to send for %s", source.name)
            return 0

        LOGGER.info("%s new entries for %s", len(selected), source.name)
        return await self._orchestrator.run(selected, source.name)

    async def run_all(self, sources: Iterable[FeedSource]) -> Dict[str, int]:
        """Process every feed in order and return delivered counts by name."""

        results: Dict[str, int] = {}
        for source in sources:
            try:
                results[source.name] = await self.run_feed(source)
            except TelefeedError:
                if self._on_feed_error == "abort":
                    raise
                LOGGER.exception("Feed %s failed, continuing with the next feed", source.name)
                results[source.name] = FAILED
        return results
