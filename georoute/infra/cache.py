# georoute/infra/cache.py
# -*- coding: utf-8 -*-
"""
Process-wide result cache.

- In-memory key/value store keyed by request fingerprints (see `fingerprint`).
- TTL is enforced on read; expired entries are treated as misses and dropped.
- Size is bounded: when a new key would push the store past `max_entries`,
  the `evict_batch` oldest entries (insertion order) are dropped first.
- A single lock guards reads, writes and eviction, so concurrent callers
  never observe torn state or lose updates.

This module is "pure infra": it knows nothing about routes or providers.
One instance is created by the caller and injected into the aggregator
(and optionally into the adapters).
"""

from __future__ import annotations

import hashlib
import json
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Tuple

from georoute.core.config import CacheDefaults, get_cache_defaults
from georoute.infra.logging import get_logger

_log = get_logger(__name__)


# ────────────────────────────────────────────────────────────────────────────────
# Fingerprints
# ────────────────────────────────────────────────────────────────────────────────

def _canonical(value: Any, precision: int) -> Any:
    """
    Normalise a payload before hashing: floats rounded, tuples as lists,
    enums by value, datetimes as ISO strings.
    """
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float):
        return round(value, precision)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): _canonical(v, precision) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_canonical(v, precision) for v in value]
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def fingerprint(
      namespace: str
    , payload: Any
    , *
    , precision: Optional[int] = None
) -> str:
    """
    Stable key for (namespace, payload). The payload is canonicalised and
    JSON-dumped with sort_keys=True so dict ordering and float jitter below
    `precision` decimals do not change the hash.
    """
    prec = get_cache_defaults().coord_precision if precision is None else int(precision)
    body = json.dumps(_canonical(payload, prec), sort_keys=True, ensure_ascii=False, default=str)
    msg = namespace + "||" + body
    return namespace + ":" + hashlib.sha256(msg.encode("utf-8")).hexdigest()


# ────────────────────────────────────────────────────────────────────────────────
# Cache
# ────────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CacheStats:
    size: int
    max_entries: int
    ttl_s: float
    hits: int
    misses: int
    evictions: int


class ResultCache:
    """
    Bounded, TTL-checked, thread-safe key/value store.

    Parameters
    ----------
    ttl_s : float | None
        Time-to-live in seconds (defaults to CacheDefaults.ttl_s).
    max_entries : int | None
        Maximum number of entries kept.
    evict_batch : int | None
        Number of oldest entries evicted when the bound is hit.
    clock : callable
        Seconds clock, injectable for tests.
    """

    def __init__(
          self
        , ttl_s: Optional[float] = None
        , max_entries: Optional[int] = None
        , evict_batch: Optional[int] = None
        , *
        , clock: Callable[[], float] = time.monotonic
        , defaults: Optional[CacheDefaults] = None
    ) -> None:
        d = defaults or get_cache_defaults()
        self._ttl = float(d.ttl_s if ttl_s is None else ttl_s)
        self._max = int(d.max_entries if max_entries is None else max_entries)
        self._batch = int(d.evict_batch if evict_batch is None else evict_batch)
        if self._max < 1:
            raise ValueError(f"max_entries must be >= 1, got {self._max}")
        self._batch = max(1, min(self._batch, self._max))
        self._clock = clock

        self._lock = threading.Lock()
        self._store: "OrderedDict[str, Tuple[Any, float]]" = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

        _log.debug("cache: init ttl_s=%s max=%s batch=%s", self._ttl, self._max, self._batch)

    def get(self, key: str) -> Tuple[Any, bool]:
        """
        Return `(value, True)` on a fresh hit, `(None, False)` otherwise.
        Expired entries are dropped on the way.
        """
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                _log.debug("cache: MISS key=%s", key[:24])
                return None, False

            value, created = entry
            age = self._clock() - created
            if age >= self._ttl:
                del self._store[key]
                self._misses += 1
                _log.debug("cache: EXPIRED key=%s age=%.1fs ttl=%ss", key[:24], age, self._ttl)
                return None, False

            self._hits += 1
            _log.debug("cache: HIT key=%s age=%.1fs", key[:24], age)
            return value, True

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            if key in self._store:
                # refreshed entries count as newest
                del self._store[key]
            elif len(self._store) >= self._max:
                self._evict_oldest_locked()
            self._store[key] = (value, self._clock())
            _log.debug("cache: SET key=%s size=%s", key[:24], len(self._store))

    def _evict_oldest_locked(self) -> None:
        n = min(self._batch, len(self._store))
        for _ in range(n):
            self._store.popitem(last=False)
        self._evictions += n
        _log.debug("cache: EVICT %s oldest entries (size now %s)", n, len(self._store))

    def purge_expired(self) -> int:
        """Drop every expired entry now; returns how many were removed."""
        with self._lock:
            now = self._clock()
            stale = [k for k, (_, created) in self._store.items() if now - created >= self._ttl]
            for k in stale:
                del self._store[k]
            return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
        _log.info("cache: cleared")

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                  size=len(self._store)
                , max_entries=self._max
                , ttl_s=self._ttl
                , hits=self._hits
                , misses=self._misses
                , evictions=self._evictions
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._store
