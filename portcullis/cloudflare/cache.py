"""Issuer-keyed signing-key cache with a fixed TTL."""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional

import structlog

from portcullis.core.key_fetcher import KeySetFetcher
from portcullis.models import KeySet, KeySetCacheEntry

log = structlog.get_logger()

DEFAULT_MAX_ENTRIES = 64


class CachingKeySetFetcher(KeySetFetcher):
    """Wraps a fetcher and reuses its key sets until their TTL runs out.

    Entries are read and written under one lock, but the wrapped fetch runs
    outside it so a slow issuer never delays cache hits for other issuers.
    Concurrent misses for the same issuer share a per-issuer lock and result
    in a single fetch. An expired entry is never returned, and failed
    fetches are not cached. Each write drops expired entries and, beyond
    ``max_entries``, the oldest ones.

    Args:
        fetcher: The fetcher that performs the actual retrieval.
        ttl_seconds: How long a fetched key set may be served.
        clock: Returns the current time in seconds.
        max_entries: Upper bound on the number of cached issuers.
    """

    def __init__(
        self,
        fetcher: KeySetFetcher,
        ttl_seconds: float,
        clock: Callable[[], float] = time.time,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ):
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self._fetcher = fetcher
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, KeySetCacheEntry] = {}
        self._pending: Dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def _lookup(self, issuer: str) -> Optional[KeySetCacheEntry]:
        """Return the fresh entry for an issuer. Caller holds self._lock."""
        entry = self._entries.get(issuer)
        if entry is None:
            return None
        if entry.is_fresh(self._clock()):
            return entry
        del self._entries[issuer]
        log.debug("jwks_cache_expired", issuer=issuer)
        return None

    def _store(self, issuer: str, key_set: KeySet) -> None:
        """Insert an entry and evict stale or excess ones. Caller holds self._lock."""
        now = self._clock()
        for stale in [i for i, e in self._entries.items() if not e.is_fresh(now)]:
            del self._entries[stale]

        self._entries[issuer] = KeySetCacheEntry(
            issuer=issuer,
            key_set=key_set,
            fetched_at=now,
            ttl_seconds=self.ttl_seconds,
        )

        while len(self._entries) > self.max_entries:
            oldest = min(self._entries.values(), key=lambda e: e.fetched_at)
            del self._entries[oldest.issuer]
            log.debug("jwks_cache_evicted", issuer=oldest.issuer)

    def get_entry(self, issuer: str) -> Optional[KeySetCacheEntry]:
        """Return the fresh cache entry for an issuer, if any."""
        with self._lock:
            return self._lookup(issuer)

    def fetch(self, issuer: str) -> KeySet:
        with self._lock:
            entry = self._lookup(issuer)
            if entry is not None:
                return entry.key_set
            issuer_lock = self._pending.setdefault(issuer, threading.Lock())

        with issuer_lock:
            try:
                # Another thread may have filled the entry while we waited.
                with self._lock:
                    entry = self._lookup(issuer)
                if entry is not None:
                    return entry.key_set

                key_set = self._fetcher.fetch(issuer)
                with self._lock:
                    self._store(issuer, key_set)
                log.debug("jwks_cached", issuer=issuer, key_count=len(key_set))
                return key_set
            finally:
                with self._lock:
                    if self._pending.get(issuer) is issuer_lock:
                        del self._pending[issuer]

    def invalidate(self, issuer: str) -> bool:
        with self._lock:
            return self._entries.pop(issuer, None) is not None
