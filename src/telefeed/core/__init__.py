"""Core domain package for telefeed.

Core contains selection, markup normalization, and delivery ordering without
any Telegram, HTTP, or storage-specific code, keeping the business logic
portable.
"""
