"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for storage, fetching, and notification
adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import List, Protocol

from telefeed.core.models import Entry


class SeenStorePort(Protocol):
    """Durable per-feed record of delivered entry links."""

    def ensure_namespace(self, feed_name: str) -> None:
        ...

    def contains(self, feed_name: str, link: str) -> bool:
        ...

    def record(self, feed_name: str, link: str, snapshot: str) -> None:
        ...


class FeedFetcherPort(Protocol):
    """Feed retrieval required by the pipeline."""

    def fetch(self, url: str) -> List[Entry]:
        ...


class NotifierPort(Protocol):
    """Message delivery required by the orchestrator."""

    async def send(self, chat_id: str, text: str, parse_mode: str) -> None:
        ...
