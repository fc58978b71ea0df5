"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any feed-parser or Telegram-specific types.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
import json
from typing import Optional


@dataclass(frozen=True)
class Entry:
    """One feed item as handed over by the fetch adapter."""

    title: str
    link: str
    body: Optional[str]
    published_at: str

    def snapshot(self) -> str:
        """Serialize the entry for the seen-entries audit column."""

        return json.dumps(asdict(self), ensure_ascii=False)


@dataclass(frozen=True)
class FeedSource:
    """A named feed URL from the configuration."""

    name: str
    url: str
