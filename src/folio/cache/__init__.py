"""Process-local caching."""

from folio.cache.store import CacheEntry, CacheKeys, CacheStore

__all__ = ["CacheEntry", "CacheKeys", "CacheStore"]
