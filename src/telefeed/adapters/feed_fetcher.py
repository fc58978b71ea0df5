"""RSS/Atom fetch adapter.

Downloads a feed over HTTP and maps feedparser entries onto core Entry
objects, so the core never sees parser-specific types.
"""

from __future__ import annotations

import logging
import ssl
from typing import Any, List, Mapping
import urllib.error
import urllib.request

import feedparser

from telefeed.core.config import FetchConfig
from telefeed.core.errors import FetchFailure
from telefeed.core.models import Entry

LOGGER = logging.getLogger(__name__)


def _to_entry(raw: Mapping[str, Any]) -> Entry:
    # "summary" is feedparser's name for the RSS <description> element; the
    # raw "published" string is kept so selection applies its own parsing.
    return Entry(
        title=(raw.get("title") or "").strip(),
        link=(raw.get("link") or "").strip(),
        body=raw.get("summary"),
        published_at=raw.get("published") or "",
    )


def parse_feed(content: bytes, url: str = "") -> List[Entry]:
    """Parse a feed document into entries.

    A document feedparser flags as malformed is accepted as long as it still
    yielded entries; otherwise FetchFailure is raised.
    """

    feed = feedparser.parse(content)
    entries = getattr(feed, "entries", None) or []
    if getattr(feed, "bozo", 0) and not entries:
        exc = getattr(feed, "bozo_exception", None)
        msg = f"Invalid RSS/Atom feed: {url}"
        if exc:
            msg += f" ({exc})"
        raise FetchFailure(msg)
    return [_to_entry(raw) for raw in entries]


class FeedFetcher:
    """Fetches feeds with a browser User-Agent and a long timeout."""

    def __init__(self, config: FetchConfig) -> None:
        self._config = config

    def _ssl_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        if not self._config.verify_tls:
            # Many small feeds run on self-signed or expired certificates.
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def _download(self, url: str) -> bytes:
        try:
            # Request() itself rejects URLs without a scheme.
            request = urllib.request.Request(url, method="GET")
            request.add_header("User-Agent", self._config.user_agent)
            with urllib.request.urlopen(
                request,
                timeout=self._config.timeout_seconds,
                context=self._ssl_context(),
            ) as response:
                return response.read()
        except urllib.error.HTTPError as e:
            raise FetchFailure(f"Failed to fetch feed: {url} (HTTP {e.code})") from e
        except (urllib.error.URLError, OSError, ValueError) as e:
            raise FetchFailure(f"Failed to fetch feed: {url} ({e})") from e

    def fetch(self, url: str) -> List[Entry]:
        """Download and parse one feed URL."""

        content = self._download(url)
        entries = parse_feed(content, url)
        LOGGER.debug("Fetched %s entries from %s", len(entries), url)
        return entries
