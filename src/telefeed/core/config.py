"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64; rv:97.0) Gecko/20100101 Firefox/97.0"


@dataclass(frozen=True)
class DeliveryConfig:
    """Delivery settings consumed by the orchestrator."""

    chat_id: str
    interval_seconds: float = 10.0
    parse_mode: str = "HTML"


@dataclass(frozen=True)
class FetchConfig:
    """HTTP settings consumed by the feed fetch adapter."""

    timeout_seconds: float = 240.0
    user_agent: str = DEFAULT_USER_AGENT
    verify_tls: bool = False
