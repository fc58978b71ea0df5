"""Telegram notification adapter backed by a Telethon client.

Sends the formatted HTML message over MTProto instead of the HTTP Bot API.
"""

from __future__ import annotations

from telethon import errors

from telefeed.core.errors import DeliveryFailure


def _resolve_peer(chat_id: str):
    # Numeric ids must reach Telethon as ints; usernames stay strings.
    try:
        return int(chat_id)
    except ValueError:
        return chat_id


class TelethonNotifier:
    """Notifier adapter that sends messages through a connected TelegramClient."""

    def __init__(self, client, link_preview: bool = True) -> None:
        self._client = client
        self._link_preview = link_preview

    async def send(self, chat_id: str, text: str, parse_mode: str) -> None:
        """Send one message, raising DeliveryFailure on Telegram errors."""

        try:
            await self._client.send_message(
                _resolve_peer(chat_id),
                text,
                parse_mode=parse_mode.lower(),
                link_preview=self._link_preview,
            )
        except (errors.RPCError, ValueError) as e:
            raise DeliveryFailure(f"Telegram rejected message for {chat_id}: {e}") from e
