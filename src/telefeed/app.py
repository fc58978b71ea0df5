"""Application entry point for telefeed."""

from __future__ import annotations

import argparse
import asyncio
from contextlib import asynccontextmanager
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import AsyncIterator, Optional

from art import tprint

from telefeed.adapters.feed_fetcher import FeedFetcher
from telefeed.adapters.sqlite_storage import SQLiteSeenStore
from telefeed.adapters.telegram_bot_notifier import TelegramBotNotifier
from telefeed.adapters.telegram_notifier import TelethonNotifier
from telefeed.client import bot_session, build_client
from telefeed.core.delivery import DeliveryOrchestrator
from telefeed.core.errors import ConfigError, TelefeedError
from telefeed.core.ports import NotifierPort
from telefeed.pipeline import FeedPipeline
from telefeed.settings import DEFAULT_CONFIG_PATH, Settings, load_settings

NAME = "TELEFEED"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(settings: Settings) -> list[str]:
    # The bot token ends up in Bot API URLs and error messages, so it is
    # always masked, as is the Telethon api_hash; extra env values are
    # masked when configured.
    values = [settings.bot_token, settings.api_hash]
    redact_cfg = settings.logging.get("redact", {})
    if redact_cfg.get("enabled", True):
        for name in redact_cfg.get("patterns", []):
            value = os.getenv(name)
            if value:
                values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging(settings: Settings) -> None:
    config = settings.logging or {}
    if not config.get("enabled", True):
        return

    level_name = "DEBUG" if settings.debug else str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = _RedactingFormatter(_collect_redaction_values(settings), fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = settings.resolve_path(file_cfg.get("path", "logs/telefeed.log"))
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers, force=True)


@asynccontextmanager
async def _open_notifier(settings: Settings) -> AsyncIterator[NotifierPort]:
    """Yield the configured notifier, managing the Telethon session if used."""

    if settings.delivery_method == "bot":
        yield TelegramBotNotifier(
            bot_token=settings.bot_token,
            disable_web_page_preview=settings.disable_web_page_preview,
            debug=settings.debug,
        )
        return

    client = build_client(settings.api_id, settings.api_hash, settings.session_path)
    async with bot_session(client, settings.bot_token):
        yield TelethonNotifier(client, link_preview=not settings.disable_web_page_preview)


async def _run_feeds(settings: Settings, storage: SQLiteSeenStore) -> dict[str, int]:
    async with _open_notifier(settings) as notifier:
        logger = logging.getLogger(__name__)
        logger.info("Selected delivery method - %s", settings.delivery_method)
        orchestrator = DeliveryOrchestrator(storage, notifier, settings.delivery)
        pipeline = FeedPipeline(
            storage=storage,
            fetcher=FeedFetcher(settings.fetch),
            orchestrator=orchestrator,
            on_feed_error=settings.on_feed_error,
        )
        return await pipeline.run_all(settings.feeds)


def _run(settings: Settings) -> None:
    logger = logging.getLogger(__name__)
    logger.info("Database: %s", settings.db_path)

    storage = SQLiteSeenStore(settings.db_path)
    storage.init_db()
    logger.info("%s feeds are loaded", len(settings.feeds))

    logger.info("Start to send")
    results = asyncio.run(_run_feeds(settings, storage))
    delivered = sum(count for count in results.values() if count > 0)
    logger.info("Stop to send: %s entries delivered across %s feeds", delivered, len(results))


def _status(settings: Settings) -> None:
    storage = SQLiteSeenStore(settings.db_path)
    storage.init_db()
    if not settings.feeds:
        print("No feeds configured.")
        return
    for index, feed in enumerate(settings.feeds, start=1):
        print(f"{index}. {feed.name} | {storage.count(feed.name)} sent | {feed.url}")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="telefeed")
    parser.add_argument(
        "-c",
        "--configpath",
        default=DEFAULT_CONFIG_PATH,
        help="Config file path",
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Fetch all feeds and send new entries")
    subparsers.add_parser("status", help="Show how many entries were sent per feed")

    args = parser.parse_args(argv)
    _print_banner()

    try:
        settings = load_settings(args.configpath)
    except ConfigError as e:
        logging.getLogger(__name__).error("Invalid config %s: %s", args.configpath, e)
        sys.exit(1)
    _configure_logging(settings)
    logging.getLogger(__name__).info("Config file: %s", args.configpath)

    try:
        if args.command == "status":
            _status(settings)
            return
        _run(settings)
    except TelefeedError:
        logging.getLogger(__name__).exception("Run aborted")
        sys.exit(1)


if __name__ == "__main__":
    main()
