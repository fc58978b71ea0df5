"""Configuration loading for telefeed.

All user-editable settings (feeds, Telegram target, pacing, logging) live in
a single JSON file. The path is passed in explicitly by the CLI; nothing here
is loaded at import time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import os
from typing import Any, List, Optional

from dotenv import load_dotenv

from telefeed.core.config import DEFAULT_USER_AGENT, DeliveryConfig, FetchConfig
from telefeed.core.errors import ConfigError
from telefeed.core.models import FeedSource

DEFAULT_CONFIG_PATH = "./config.json"
DEFAULT_DB_NAME = "telefeed.db"

DELIVERY_METHODS = {"bot", "telethon"}
FEED_ERROR_POLICIES = {"abort", "continue"}


@dataclass(frozen=True)
class Settings:
    """Everything the app layer needs, resolved from one config file."""

    config_dir: str
    db_path: str
    bot_token: str
    delivery_method: str
    debug: bool
    disable_web_page_preview: bool
    on_feed_error: str
    delivery: DeliveryConfig
    fetch: FetchConfig
    feeds: List[FeedSource]
    logging: dict = field(default_factory=dict)
    # Telethon delivery only.
    api_id: Optional[int] = None
    api_hash: str = ""
    session_path: Optional[str] = None

    def resolve_path(self, path: str) -> str:
        """Resolve a config-relative path against the config file directory."""

        if os.path.isabs(path):
            return path
        return os.path.join(self.config_dir, path)


def _load_json_config(config_path: str) -> dict:
    """Load the JSON config file with a flat, user-friendly schema."""

    if not os.path.exists(config_path):
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as handle:
            config = json.load(handle)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file is not valid JSON: {config_path} ({e})") from e
    except OSError as e:
        raise ConfigError(f"Config file cannot be read: {config_path} ({e})") from e

    if not isinstance(config, dict):
        raise ConfigError(f"Config file must contain a JSON object: {config_path}")
    return config


def _section(config: dict, key: str) -> dict:
    value = config.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{key} must be a JSON object")
    return value


def _normalize_feeds(raw_feeds: Any) -> List[FeedSource]:
    """Keep enabled feeds that have both a name and a URL.

    The feed name doubles as the seen-entries namespace, so two feeds with the
    same name would silently share delivery history; that is rejected.
    """

    if not isinstance(raw_feeds, list):
        raise ConfigError("rsslist must be a JSON array")

    feeds: List[FeedSource] = []
    names: set[str] = set()
    for index, entry in enumerate(raw_feeds):
        if not isinstance(entry, dict):
            raise ConfigError(f"rsslist[{index}] must be a JSON object, got {entry!r}")
        name = (entry.get("name") or "").strip()
        url = (entry.get("url") or "").strip()
        if not name or not url:
            continue
        if not entry.get("enabled", True):
            continue
        if name in names:
            raise ConfigError(f"Duplicate feed name in rsslist: {name}")
        names.add(name)
        feeds.append(FeedSource(name=name, url=url))
    return feeds


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    return bool(value)


def _as_float(section: dict, key: str, default: float, label: str) -> float:
    value = section.get(key, default)
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{label}.{key} must be a number, got {value!r}") from e


def _telethon_credentials(telegram: dict) -> tuple[int, str]:
    # Telethon talks MTProto, which needs an application id on top of the
    # bot token; the Bot API path never reads these.
    api_id = telegram.get("api_id") or os.getenv("API_ID")
    api_hash = telegram.get("api_hash") or os.getenv("API_HASH") or ""
    if not api_id or not api_hash:
        raise ConfigError(
            "telegram.api_id and telegram.api_hash (or API_ID/API_HASH) are required for method 'telethon'"
        )
    try:
        return int(api_id), str(api_hash)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"telegram.api_id must be an integer, got {api_id!r}") from e


def load_settings(config_path: str = DEFAULT_CONFIG_PATH) -> Settings:
    """Load and validate settings from ``config_path``.

    The bot token may be omitted from the file and supplied as BOT_API in the
    environment (or a .env file) instead. Every problem with the file itself
    or its values is reported as ConfigError.
    """

    load_dotenv()
    config = _load_json_config(config_path)
    config_dir = os.path.dirname(os.path.abspath(config_path))

    telegram = _section(config, "telegram")
    bot_token = telegram.get("token") or os.getenv("BOT_API") or ""
    if not bot_token:
        raise ConfigError("telegram.token (or BOT_API) is required")

    chat_id = telegram.get("chatid")
    if chat_id in (None, ""):
        raise ConfigError("telegram.chatid is required")

    method = str(telegram.get("method", "bot")).lower()
    if method not in DELIVERY_METHODS:
        raise ConfigError("telegram.method must be 'bot' or 'telethon'")

    api_id: Optional[int] = None
    api_hash = ""
    session_path: Optional[str] = None
    if method == "telethon":
        api_id, api_hash = _telethon_credentials(telegram)
        session = telegram.get("session")
        if session:
            session_path = session if os.path.isabs(session) else os.path.join(config_dir, session)

    # Delivery pacing and failure policy. on_feed_error="continue" isolates a
    # failing feed instead of aborting the whole run.
    _delivery = _section(config, "delivery")
    on_feed_error = str(_delivery.get("on_feed_error", "abort")).lower()
    if on_feed_error not in FEED_ERROR_POLICIES:
        raise ConfigError("delivery.on_feed_error must be 'abort' or 'continue'")
    delivery = DeliveryConfig(
        chat_id=str(chat_id),
        interval_seconds=_as_float(_delivery, "interval_seconds", 10, "delivery"),
    )

    _fetch = _section(config, "fetch")
    fetch = FetchConfig(
        timeout_seconds=_as_float(_fetch, "timeout_seconds", 240, "fetch"),
        user_agent=_fetch.get("user_agent") or DEFAULT_USER_AGENT,
        verify_tls=_as_bool(_fetch.get("verify_tls"), False),
    )

    db_path = config.get("dbpath") or DEFAULT_DB_NAME
    if not os.path.isabs(db_path):
        db_path = os.path.join(config_dir, db_path)

    return Settings(
        config_dir=config_dir,
        db_path=db_path,
        bot_token=bot_token,
        delivery_method=method,
        debug=_as_bool(telegram.get("senddebug"), False),
        disable_web_page_preview=_as_bool(telegram.get("disable_web_page_preview"), False),
        on_feed_error=on_feed_error,
        delivery=delivery,
        fetch=fetch,
        feeds=_normalize_feeds(config.get("rsslist") or []),
        logging=_section(config, "logging"),
        api_id=api_id,
        api_hash=api_hash,
        session_path=session_path,
    )
