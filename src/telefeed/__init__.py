"""Deliver new RSS feed entries to a Telegram chat."""

__version__ = "0.1.0"
