from __future__ import annotations

import asyncio

import pytest

from telefeed.adapters.telegram_notifier import TelethonNotifier
from telefeed.core.errors import DeliveryFailure


class DummyClient:
    def __init__(self, error: "Exception | None" = None) -> None:
        self.error = error
        self.calls: list[tuple] = []

    async def send_message(self, entity, message, parse_mode=None, link_preview=True):
        if self.error is not None:
            raise self.error
        self.calls.append((entity, message, parse_mode, link_preview))


def test_numeric_chat_id_is_sent_as_int() -> None:
    client = DummyClient()
    notifier = TelethonNotifier(client, link_preview=False)

    asyncio.run(notifier.send("-100123", "<b>hi</b>", "HTML"))

    assert client.calls == [(-100123, "<b>hi</b>", "html", False)]


def test_username_chat_id_is_kept() -> None:
    client = DummyClient()
    asyncio.run(TelethonNotifier(client).send("@channel", "text", "HTML"))
    assert client.calls[0][0] == "@channel"


def test_unresolvable_peer_is_delivery_failure() -> None:
    client = DummyClient(error=ValueError("Cannot find any entity corresponding to @nobody"))
    with pytest.raises(DeliveryFailure):
        asyncio.run(TelethonNotifier(client).send("@nobody", "text", "HTML"))
