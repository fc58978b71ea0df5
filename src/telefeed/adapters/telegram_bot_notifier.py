"""Telegram Bot API notification adapter.

Uses the Bot API for delivery so feed posts can be routed to any chat the bot
is a member of.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request

from telefeed.core.errors import DeliveryFailure

LOGGER = logging.getLogger(__name__)


class TelegramBotNotifier:
    """Notifier adapter that sends messages via the Telegram Bot API."""

    def __init__(
        self,
        bot_token: str,
        disable_web_page_preview: bool = False,
        debug: bool = False,
        timeout: float = 10.0,
    ) -> None:
        self._bot_token = bot_token
        self._disable_web_page_preview = disable_web_page_preview
        self._debug = debug
        self._timeout = timeout

    def _endpoint(self) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"https://api.telegram.org/bot{self._bot_token}/sendMessage"

    async def send(self, chat_id: str, text: str, parse_mode: str) -> None:
        """Send one message via the Bot API, raising DeliveryFailure on error."""

        payload = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": parse_mode,
            "disable_web_page_preview": self._disable_web_page_preview,
        }
        data = json.dumps(payload).encode("utf-8")
        request = urllib.request.Request(self._endpoint(), data=data, method="POST")
        request.add_header("Content-Type", "application/json")
        if self._debug:
            LOGGER.debug("Bot API request: %s", data.decode("utf-8"))

        # We use a blocking HTTP call because delivery is strictly sequential
        # and throttled anyway; the adapter boundary keeps it swappable.
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                body = response.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace")
            raise DeliveryFailure(f"Bot API error {e.code}: {body}") from e
        except urllib.error.URLError as e:
            raise DeliveryFailure(f"Bot API unreachable: {e.reason}") from e

        if self._debug:
            LOGGER.debug("Bot API response: %s", body)

        try:
            result = json.loads(body)
        except ValueError as e:
            raise DeliveryFailure(f"Bot API returned invalid JSON: {body[:200]}") from e
        if not isinstance(result, dict):
            raise DeliveryFailure(f"Bot API returned unexpected response: {body[:200]}")
        if not result.get("ok", False):
            raise DeliveryFailure(f"Bot API rejected message: {result.get('description', body)}")
