"""Message formatting for delivered entries.

Keeping the template here prevents drift between notifier adapters and keeps
messages consistent regardless of delivery channel.
"""

from __future__ import annotations

import html

from telefeed.core.markup import normalize_html
from telefeed.core.models import Entry


def format_entry_message(feed_name: str, entry: Entry) -> str:
    """Create the HTML message body for one feed entry.

    Layout: italic feed name, bold title, normalized body, bare link (so
    Telegram can build a preview from it).
    """

    label = html.escape(feed_name)
    title = html.escape(entry.title)
    link = html.escape(entry.link)
    # Feeds frequently escape their description HTML twice; one unescape pass
    # turns "&lt;b&gt;" back into markup the normalizer can see.
    body = normalize_html(html.unescape(entry.body or ""))

    parts = [
        f"<i>{label}</i>",
        "",
        f"<b>{title}</b>",
        "",
        body,
        "",
        link,
    ]
    return "\n".join(parts)
