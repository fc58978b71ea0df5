"""Selection of undelivered entries (core domain)."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Iterable, List

from telefeed.core.models import Entry
from telefeed.core.ports import SeenStorePort

LOGGER = logging.getLogger(__name__)

# RSS 2.0 pubDate layout, e.g. "Mon, 02 Jan 2006 15:04:05 -0700".
PUBLISHED_FORMAT = "%a, %d %b %Y %H:%M:%S %z"

# Unparseable timestamps sort below anything a feed can realistically carry.
OLDEST_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)


def parse_published(value: str) -> datetime:
    """Parse a pubDate string, falling back to the oldest possible time."""

    try:
        return datetime.strptime(value.strip(), PUBLISHED_FORMAT)
    except (AttributeError, ValueError):
        LOGGER.debug("Unparseable publish date %r, sorting it last", value)
        return OLDEST_TIMESTAMP


def select_new_entries(
    entries: Iterable[Entry], feed_name: str, storage: SeenStorePort
) -> List[Entry]:
    """Return entries not yet recorded for ``feed_name``, newest first.

    Only an exact stored-link match filters an entry out. The sort is stable,
    so entries with equal (or equally unparseable) timestamps keep feed order.
    An empty result means there is nothing to deliver.
    """

    fresh = [entry for entry in entries if not storage.contains(feed_name, entry.link)]
    return sorted(fresh, key=lambda entry: parse_published(entry.published_at), reverse=True)
