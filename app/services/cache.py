"""Content-addressed result cache with expiry, bounded capacity, and a background expiry sweep.

Entries are keyed by a SHA-256 digest of (language, code, context). When the store is full,
the entry with the fewest hits is evicted (first in insertion order on ties); this is an
approximation of least-frequently-used, not LRU. A daemon thread removes expired entries on
a fixed interval so memory stays bounded even when nobody reads the cache.
"""

import hashlib
import json
import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 1000
DEFAULT_TTL_SEC = 3600.0
DEFAULT_SWEEP_INTERVAL_SEC = 300.0

# Rough per-entry bookkeeping cost added to the payload size in stats().
ENTRY_OVERHEAD_BYTES = 24


def make_key(language: str, code: str, context: str | None = None) -> str:
    """Deterministic SHA-256 hex digest over language, code and optional context."""
    content = f"{language}:{code}:{context or ''}"
    return hashlib.sha256(content.encode("utf-8", errors="surrogatepass")).hexdigest()


class CacheStats(BaseModel):
    """Point-in-time statistics for one cache instance."""

    entry_count: int = Field(..., ge=0)
    hit_rate: float = Field(..., ge=0, le=1, description="hits / (hits + misses); 0 before any lookup.")
    total_hits: int = Field(..., ge=0)
    total_misses: int = Field(..., ge=0)
    estimated_bytes: int = Field(..., ge=0, description="Best-effort approximation, not a limit.")


class _CacheEntry:
    __slots__ = ("value", "expires_at", "hit_count")

    def __init__(self, value: Any, expires_at: float) -> None:
        self.value = value
        self.expires_at = expires_at
        self.hit_count = 0


def _payload_size(value: Any) -> int:
    """Approximate serialized size of a cached value."""
    if isinstance(value, BaseModel):
        return len(value.model_dump_json())
    try:
        return len(json.dumps(value, default=str))
    except (TypeError, ValueError):
        return len(repr(value))


class CacheStore:
    """
    Thread-safe bounded cache with per-entry TTL.

    - get/has never return an entry once the clock has passed its expiry; such entries are
      removed on access. Only get() touches hit/miss counters.
    - set() on a full store evicts the entry with the lowest hit count before inserting.
    - start()/close() own the background sweeper; the store is also a context manager.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        default_ttl_seconds: float = DEFAULT_TTL_SEC,
        *,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SEC,
        clock: Callable[[], float] = time.monotonic,
        name: str = "cache",
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        if default_ttl_seconds < 0:
            raise ValueError("default_ttl_seconds must not be negative")
        if sweep_interval_seconds <= 0:
            raise ValueError("sweep_interval_seconds must be greater than 0")
        self._max_entries = max_entries
        self._default_ttl = float(default_ttl_seconds)
        self._sweep_interval = float(sweep_interval_seconds)
        self._clock = clock
        self._name = name

        self._entries: dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

        self._stop = threading.Event()
        self._sweeper: threading.Thread | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None on a miss (unknown or expired key)."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if self._clock() > entry.expires_at:
                del self._entries[key]
                self._misses += 1
                return None
            entry.hit_count += 1
            self._hits += 1
            return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store value for ttl seconds (store default when None; 0 expires immediately)."""
        ttl_seconds = self._default_ttl if ttl is None else float(ttl)
        if ttl_seconds < 0:
            raise ValueError("ttl must not be negative")
        with self._lock:
            if key not in self._entries and len(self._entries) >= self._max_entries:
                self._evict_one()
            self._entries[key] = _CacheEntry(value, self._clock() + ttl_seconds)

    def has(self, key: str) -> bool:
        """Like get() without touching hit/miss counters or the entry's hit count."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if self._clock() > entry.expires_at:
                del self._entries[key]
                return False
            return True

    def delete(self, key: str) -> bool:
        """Remove key; return True if it was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Drop all entries and reset hit/miss counters."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> CacheStats:
        with self._lock:
            hits = self._hits
            misses = self._misses
            snapshot = list(self._entries.items())
        total_requests = hits + misses
        estimated = sum(
            len(key) + _payload_size(entry.value) + ENTRY_OVERHEAD_BYTES
            for key, entry in snapshot
        )
        return CacheStats(
            entry_count=len(snapshot),
            hit_rate=hits / total_requests if total_requests else 0.0,
            total_hits=hits,
            total_misses=misses,
            estimated_bytes=estimated,
        )

    def sweep(self) -> int:
        """
        Remove every expired entry; return how many were removed.

        The scan runs on a snapshot so readers are not blocked for its duration; each
        deletion re-checks expiry under the lock in case the key was refreshed meanwhile.
        """
        now = self._clock()
        with self._lock:
            snapshot = list(self._entries.items())
        expired_keys = [key for key, entry in snapshot if now > entry.expires_at]

        removed = 0
        for key in expired_keys:
            with self._lock:
                entry = self._entries.get(key)
                if entry is not None and self._clock() > entry.expires_at:
                    del self._entries[key]
                    removed += 1
        if removed:
            logger.info(
                "Cache sweep removed expired entries",
                extra={"cache": self._name, "removed": removed},
            )
        return removed

    def _evict_one(self) -> None:
        """Evict the entry with the lowest hit count. Caller holds the lock."""
        if not self._entries:
            return
        victim = min(self._entries, key=lambda k: self._entries[k].hit_count)
        del self._entries[victim]

    def start(self) -> None:
        """Start the background sweeper thread (idempotent)."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()
        self._sweeper = threading.Thread(
            target=self._run_sweeper,
            name=f"{self._name}-sweeper",
            daemon=True,
        )
        self._sweeper.start()

    def close(self, timeout: float | None = 5.0) -> None:
        """Stop the background sweeper and wait for it to exit."""
        self._stop.set()
        sweeper = self._sweeper
        if sweeper is not None:
            sweeper.join(timeout)
        self._sweeper = None

    def _run_sweeper(self) -> None:
        while not self._stop.wait(self._sweep_interval):
            try:
                self.sweep()
            except Exception:
                logger.exception("Cache sweep failed", extra={"cache": self._name})

    def __enter__(self) -> "CacheStore":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
