"""Telethon client for delivering as a bot over MTProto.

The client signs in with the same bot token the HTTP Bot API uses, so there
is no interactive login and no user account. Without an explicit session
path the session lives in memory and is re-authorized on every run.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncIterator, Optional

from telethon import TelegramClient
from telethon.sessions import StringSession

LOGGER = logging.getLogger(__name__)


def build_client(api_id: int, api_hash: str, session_path: Optional[str] = None) -> TelegramClient:
    """Create a Telethon client for the bot account.

    ``session_path`` keeps the authorization in a local .session file so
    repeated runs skip the bot login round trip.
    """

    session = session_path if session_path else StringSession()
    LOGGER.info("Initializing Telegram client (%s session)", "file" if session_path else "in-memory")
    return TelegramClient(session, api_id, api_hash)


@asynccontextmanager
async def bot_session(client: TelegramClient, bot_token: str) -> AsyncIterator[TelegramClient]:
    """Sign ``client`` in with ``bot_token`` and disconnect it on exit."""

    await client.start(bot_token=bot_token)
    try:
        yield client
    finally:
        await client.disconnect()
