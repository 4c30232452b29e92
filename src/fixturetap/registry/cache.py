"""
FixtureTap Response Cache

Concurrent fingerprint -> response store, populated lazily by the registry.

The key space is the set of fixtures in the mapping file, which is small and
known at load time, so entries are never evicted. ``clear()`` exists for the
admin API only.
"""

import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass
class CacheStats:
    """Snapshot of cache counters."""

    size: int = 0
    hits: int = 0
    misses: int = 0
    shards: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'size': self.size,
            'hits': self.hits,
            'misses': self.misses,
            'shards': self.shards,
            'hit_rate': round(self.hit_rate, 4)
        }


class _Shard:
    __slots__ = ('lock', 'entries', 'hits', 'misses')

    def __init__(self):
        self.lock = threading.Lock()
        self.entries: Dict[str, Any] = {}
        self.hits = 0
        self.misses = 0


class ResponseCache:
    """
    Sharded cache with one lock per shard.

    Lookups and inserts for different shards never contend. Within a shard,
    each lookup and insert is atomic, so a reader never sees a partially
    stored entry. Inserting an existing fingerprint replaces the entry
    (last write wins).

    Example:
        cache = ResponseCache()
        if cache.lookup(fp) is None:
            cache.insert(fp, response)
    """

    def __init__(self, shards: int = 16):
        if shards < 1:
            raise ValueError(f"shards must be >= 1, got {shards}")
        self._shards: List[_Shard] = [_Shard() for _ in range(shards)]

    def _shard_for(self, fingerprint: str) -> _Shard:
        return self._shards[hash(fingerprint) % len(self._shards)]

    def lookup(self, fingerprint: str) -> Optional[Any]:
        """Return the cached response for a fingerprint, or None."""
        shard = self._shard_for(fingerprint)
        with shard.lock:
            response = shard.entries.get(fingerprint)
            if response is None:
                shard.misses += 1
            else:
                shard.hits += 1
            return response

    def insert(self, fingerprint: str, response: Any) -> None:
        """Store a response under a fingerprint."""
        if response is None:
            raise ValueError("Cannot cache a None response")
        shard = self._shard_for(fingerprint)
        with shard.lock:
            shard.entries[fingerprint] = response

    def clear(self) -> int:
        """Remove all entries and reset counters. Returns the number removed."""
        removed = 0
        for shard in self._shards:
            with shard.lock:
                removed += len(shard.entries)
                shard.entries.clear()
                shard.hits = 0
                shard.misses = 0
        return removed

    def stats(self) -> CacheStats:
        stats = CacheStats(shards=len(self._shards))
        for shard in self._shards:
            with shard.lock:
                stats.size += len(shard.entries)
                stats.hits += shard.hits
                stats.misses += shard.misses
        return stats

    def __contains__(self, fingerprint: object) -> bool:
        if not isinstance(fingerprint, str):
            return False
        shard = self._shard_for(fingerprint)
        with shard.lock:
            return fingerprint in shard.entries

    def __len__(self) -> int:
        return sum(len(shard.entries) for shard in self._shards)
