"""
In-memory TTL cache with namespace invalidation.

Entries expire lazily: an entry older than its TTL reads as a miss but
stays in the store until it is overwritten, invalidated or swept, so the
read path can still fall back to it when the database is unavailable.

Pattern invalidation uses plain substring containment: ``invalidate("projects:")``
removes every key that contains ``projects:`` anywhere. Namespace
invalidation is a prefix match on ``<name>:``.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

PROJECTS_NAMESPACE = "projects"
GITHUB_NAMESPACE = "github"


class CacheKeys:
    """Key builders for every cached value."""

    PROJECTS_ALL = "projects:all"
    PROJECTS_FEATURED = "projects:featured"

    @staticmethod
    def github_repos(username: str) -> str:
        return f"github:repos:{username}"

    @staticmethod
    def github_languages(username: str, repo: str) -> str:
        return f"github:languages:{username}/{repo}"

    @staticmethod
    def github_commits(username: str, repo: str) -> str:
        return f"github:commits:{username}/{repo}"

    @staticmethod
    def github_user(username: str) -> str:
        return f"github:user:{username}"

    @staticmethod
    def github_stats(username: str) -> str:
        return f"github:stats:{username}"


@dataclass(frozen=True)
class CacheEntry:
    """A stored value. Replaced as a whole, never mutated."""

    key: str
    value: Any
    stored_at: float
    ttl_seconds: float

    def is_fresh(self, now: float) -> bool:
        return now - self.stored_at < self.ttl_seconds


class CacheStore:
    """Thread-safe key/value cache with per-entry expiration."""

    DEFAULT_TTL = 5 * 60

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize an empty cache.

        Args:
            default_ttl: TTL in seconds used when set() gets none
            clock: Monotonic time source, injectable for tests
        """
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Any | None:
        """Return the value if present and unexpired, else None."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or not entry.is_fresh(self._clock()):
                self._misses += 1
                return None
            self._hits += 1
            return entry.value

    def get_stale(self, key: str) -> Any | None:
        """Return the value even if expired, as long as it is still stored."""
        with self._lock:
            entry = self._entries.get(key)
            return entry.value if entry is not None else None

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        """Insert or replace an entry, resetting its age."""
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        entry = CacheEntry(key=key, value=value, stored_at=self._clock(), ttl_seconds=ttl)
        with self._lock:
            self._entries[key] = entry

    def __contains__(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and entry.is_fresh(self._clock())

    def invalidate(self, pattern: str | None = None) -> int:
        """Remove entries.

        Args:
            pattern: None clears everything; otherwise every key containing
                the pattern as a substring is removed (a literal key
                matches itself)

        Returns:
            Number of entries removed
        """
        with self._lock:
            if not pattern:
                removed = len(self._entries)
                self._entries.clear()
            else:
                doomed = [key for key in self._entries if pattern in key]
                for key in doomed:
                    del self._entries[key]
                removed = len(doomed)

        logger.debug("Invalidated %d cache entries (pattern=%r)", removed, pattern)
        return removed

    def invalidate_namespace(self, name: str) -> int:
        """Remove every key under ``<name>:``."""
        prefix = name if name.endswith(":") else f"{name}:"
        with self._lock:
            doomed = [key for key in self._entries if key.startswith(prefix)]
            for key in doomed:
                del self._entries[key]

        logger.debug("Invalidated namespace %s (%d entries)", prefix, len(doomed))
        return len(doomed)

    def invalidate_projects(self) -> int:
        """Drop cached project listings and the cached repository listings behind them."""
        removed = self.invalidate_namespace(PROJECTS_NAMESPACE)
        removed += self.invalidate("github:repos:")
        logger.info("Project cache invalidated (%d entries)", removed)
        return removed

    def sweep(self) -> int:
        """Reclaim memory held by expired entries."""
        with self._lock:
            now = self._clock()
            doomed = [key for key, entry in self._entries.items() if not entry.is_fresh(now)]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def get_stats(self) -> dict[str, Any]:
        """Snapshot of cache contents and counters."""
        with self._lock:
            now = self._clock()
            entries = list(self._entries.values())
            hits, misses = self._hits, self._misses

        ages = [now - e.stored_at for e in entries]
        fresh = sum(1 for e in entries if e.is_fresh(now))
        return {
            "size": len(entries),
            "keys": sorted(e.key for e in entries),
            "fresh_entries": fresh,
            "stale_entries": len(entries) - fresh,
            "hits": hits,
            "misses": misses,
            "oldest_entry_age": round(max(ages), 3) if ages else None,
            "newest_entry_age": round(min(ages), 3) if ages else None,
        }
