"""Streaming HTML to Telegram-HTML normalizer (core domain).

Telegram only renders a handful of tags and rejects messages with unbalanced
markup, so feed bodies are rewritten token by token into that subset and cut
off at a fixed length.
"""

from __future__ import annotations

from html.parser import HTMLParser
from typing import List, Optional

MAX_BODY_CHARS = 2500
ELLIPSIS = " ..."

ALLOWED_TAGS = frozenset(
    {"br", "img", "b", "strong", "i", "em", "code", "pre", "s", "strike", "del", "u"}
)
# Tags that never get a closing marker.
VOID_TAGS = frozenset({"br", "img"})
# Text directly after these start tags is never rendered.
NON_RENDERING_TAGS = frozenset({"script", "style"})

_CHUNK_CHARS = 1024


class TelegramHTMLNormalizer(HTMLParser):
    """HTMLParser that writes the Telegram-safe rendition of what it is fed.

    Output is accumulated until it would exceed ``limit`` characters. At that
    point text is clipped, the most recently opened allowed tag is closed (a
    single level only, not the full nesting stack), an ellipsis is appended,
    and every later token is ignored.
    """

    def __init__(self, limit: int = MAX_BODY_CHARS) -> None:
        super().__init__(convert_charrefs=True)
        self._limit = limit
        self._parts: List[str] = []
        self._length = 0
        self._last_start_tag = ""
        # HTMLParser may split one text run across several handle_data calls
        # when fed in chunks; the run is only stripped once a tag ends it.
        self._pending_text: List[str] = []
        self.truncated = False

    def getvalue(self) -> str:
        return "".join(self._parts)

    def close(self) -> None:
        super().close()
        self._flush_text()

    def _write(self, text: str, clip: bool = False) -> bool:
        """Append ``text`` if it fits; otherwise truncate and return False."""

        if self._length + len(text) <= self._limit:
            self._parts.append(text)
            self._length += len(text)
            return True
        if clip:
            self._parts.append(text[: self._limit - self._length])
        self._truncate()
        return False

    def _truncate(self) -> None:
        tag = self._last_start_tag
        if tag in ALLOWED_TAGS and tag not in VOID_TAGS:
            self._parts.append(f"</{tag}>{ELLIPSIS}")
        else:
            self._parts.append(ELLIPSIS)
        self.truncated = True

    def _flush_text(self) -> None:
        if not self._pending_text:
            return
        text = "".join(self._pending_text).strip()
        self._pending_text = []
        if self.truncated or self._last_start_tag in NON_RENDERING_TAGS:
            return
        if text:
            self._write(text, clip=True)

    def handle_starttag(self, tag: str, attrs: List[tuple]) -> None:
        self._flush_text()
        if self.truncated:
            return
        if tag not in ALLOWED_TAGS:
            self._last_start_tag = tag
            return

        if tag == "br":
            marker = "\n"
        elif tag == "img":
            src: Optional[str] = dict(attrs).get("src")
            marker = f"{src} " if src else ""
        else:
            marker = f" <{tag}>"

        # A marker that does not fit is dropped, so the truncation suffix must
        # close the previous tag rather than this one.
        if self._write(marker):
            self._last_start_tag = tag

    def handle_startendtag(self, tag: str, attrs: List[tuple]) -> None:
        self._flush_text()
        if self.truncated:
            return
        if tag == "br":
            self._write("\n")

    def handle_endtag(self, tag: str) -> None:
        self._flush_text()
        if self.truncated:
            return
        if tag in ALLOWED_TAGS:
            self._write(f"</{tag}> ")

    def handle_data(self, data: str) -> None:
        if self.truncated:
            return
        self._pending_text.append(data)
        if self._last_start_tag in NON_RENDERING_TAGS:
            return
        # A run that already overflows will only grow, so cut it now.
        if len("".join(self._pending_text).strip()) > self._limit - self._length:
            self._flush_text()

    def handle_comment(self, data: str) -> None:
        self._flush_text()

    def handle_decl(self, decl: str) -> None:
        self._flush_text()

    def handle_pi(self, data: str) -> None:
        self._flush_text()

    def unknown_decl(self, data: str) -> None:
        self._flush_text()


def normalize_html(fragment: Optional[str], limit: int = MAX_BODY_CHARS) -> str:
    """Return ``fragment`` rewritten into the Telegram HTML subset.

    The fragment is fed in chunks and feeding stops once the output is
    truncated, so oversized bodies are never parsed to the end.
    """

    if not fragment:
        return ""

    normalizer = TelegramHTMLNormalizer(limit)
    for start in range(0, len(fragment), _CHUNK_CHARS):
        normalizer.feed(fragment[start : start + _CHUNK_CHARS])
        if normalizer.truncated:
            break
    normalizer.close()
    return normalizer.getvalue()
