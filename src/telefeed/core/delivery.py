"""Core delivery orchestration.

This module is integration-agnostic. It only relies on ports for storage and
notifications, enabling other delivery surfaces without changes here.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Sequence

from telefeed.core.config import DeliveryConfig
from telefeed.core.formatting import format_entry_message
from telefeed.core.models import Entry
from telefeed.core.ports import NotifierPort, SeenStorePort

LOGGER = logging.getLogger(__name__)


class DeliveryOrchestrator:
    """Formats, delivers, throttles, and records selected entries."""

    def __init__(
        self,
        storage: SeenStorePort,
        notifier: NotifierPort,
        config: DeliveryConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._storage = storage
        self._notifier = notifier
        self._config = config
        self._sleep = sleep

    async def run(self, entries: Sequence[Entry], feed_name: str) -> int:
        """Deliver ``entries`` oldest first and return how many were sent.

        ``entries`` is expected newest first, as produced by selection, so it
        is walked in reverse to keep the chat timeline chronological.
        """

        delivered = 0
        for entry in reversed(entries):
            LOGGER.info("Send to telegram post: %s", entry.title)
            message = format_entry_message(feed_name, entry)

            # Delivery errors propagate; nothing is recorded for this entry.
            await self._notifier.send(self._config.chat_id, message, self._config.parse_mode)

            # Throttle to stay under the Bot API per-chat rate limit.
            await self._sleep(self._config.interval_seconds)

            # Record only after a successful send. A crash before this line
            # means a duplicate on the next run, never a silently dropped entry.
            self._storage.record(feed_name, entry.link, entry.snapshot())
            delivered += 1
        return delivered
