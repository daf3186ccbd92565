"""Memoized lineage resolution.

``LineageResolver`` sits between the consistency filter and a
``TaxonomyService``. Every distinct taxon is looked up at most once per
resolver; the resolver is meant to live for one run and may be shared by
worker threads.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

from .service import LineageLookupError, TaxonomyService

Taxon = str
Lineage = Tuple[Taxon, ...]

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

ON_ERROR_CHOICES = ("raise", "empty")


class LineageCache(Generic[K, V]):
    """Append-only, thread-safe memo table.

    Each key gets its own lock, so computing a missing value only holds up
    callers asking for that same key. Entries are never replaced. A compute
    function that raises leaves no entry behind.
    """

    def __init__(self):
        self._values: Dict[K, V] = {}
        self._key_locks: Dict[K, threading.Lock] = {}
        self._guard = threading.Lock()

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def get(self, key: K) -> Optional[V]:
        return self._values.get(key)

    def _lock_for(self, key: K) -> threading.Lock:
        with self._guard:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = self._key_locks[key] = threading.Lock()
            return lock

    def get_or_compute(self, key: K, compute: Callable[[K], V]) -> Tuple[V, bool]:
        """Return the cached value for ``key``, computing it on a miss.

        Returns
        -------
        Tuple[V, bool]
            (value, computed) where computed is True if this call ran
            ``compute``.
        """
        if key in self._values:
            return self._values[key], False

        try:
            with self._lock_for(key):
                # Another thread may have filled it while we waited.
                if key in self._values:
                    return self._values[key], False
                value = compute(key)
                value = self._values.setdefault(key, value)
        finally:
            with self._guard:
                self._key_locks.pop(key, None)
        return value, True


@dataclass
class ResolverStats:
    """Counters for one resolver's lifetime."""

    hits: int = 0
    misses: int = 0
    failures: int = 0
    unknown: int = 0
    cached: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "failures": self.failures,
            "unknown": self.unknown,
            "cached": self.cached,
        }


class LineageResolver:
    """Memoized adapter over a taxonomy service.

    Parameters
    ----------
    service : TaxonomyService
        Backend answering ancestor queries.
    on_error : str
        What to do when the backend raises ``LineageLookupError``:
        "raise" propagates it and caches nothing, "empty" logs a warning
        and caches an empty lineage for the taxon.
    logger : logging.Logger, optional
        Logger instance.

    Example
    -------
    >>> resolver = LineageResolver(ParentMapTaxonomy({"b": "a", "a": "a"}))
    >>> resolver.lineage_of("b")
    ('a',)
    >>> resolver.lineage_of("unknown")
    ()
    """

    def __init__(
        self,
        service: TaxonomyService,
        on_error: str = "raise",
        logger: Optional[logging.Logger] = None,
    ):
        if on_error not in ON_ERROR_CHOICES:
            raise ValueError(
                f"on_error must be one of {ON_ERROR_CHOICES}, got {on_error!r}"
            )
        self.service = service
        self.on_error = on_error
        self.logger = logger or logging.getLogger(__name__)
        self.cache: LineageCache[Taxon, Lineage] = LineageCache()
        self._stats = ResolverStats()
        self._stats_lock = threading.Lock()

    def __call__(self, taxon: Taxon) -> Lineage:
        return self.lineage_of(taxon)

    def _count(self, field_name: str) -> None:
        with self._stats_lock:
            setattr(self._stats, field_name, getattr(self._stats, field_name) + 1)

    def _lookup(self, taxon: Taxon) -> Lineage:
        try:
            ancestors = self.service.ancestors(taxon)
        except LineageLookupError as e:
            self._count("failures")
            if self.on_error == "raise":
                raise
            self.logger.warning("%s; using an empty lineage", e)
            return ()

        if ancestors is None:
            self._count("unknown")
            self.logger.debug("Taxon %s is unknown to the taxonomy", taxon)
            return ()
        return tuple(ancestors)

    def lineage_of(self, taxon: Taxon) -> Lineage:
        """Return the ancestors of ``taxon``, nearest first.

        Unknown taxa resolve to an empty lineage.

        Raises
        ------
        LineageLookupError
            If the backend fails and ``on_error`` is "raise".
        """
        lineage, computed = self.cache.get_or_compute(taxon, self._lookup)
        self._count("misses" if computed else "hits")
        return lineage

    def stats(self) -> Dict[str, int]:
        """Return hit/miss/failure counters and the cache size."""
        with self._stats_lock:
            self._stats.cached = len(self.cache)
            return self._stats.to_dict()
