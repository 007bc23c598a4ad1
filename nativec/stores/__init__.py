"""Persistent stores used across compiler runs."""

from .source_cache import CACHE_FILENAME, CacheEntry, SourceCache

__all__ = ["CACHE_FILENAME", "CacheEntry", "SourceCache"]
