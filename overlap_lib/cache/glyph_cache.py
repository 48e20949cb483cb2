"""Bounded LRU cache of processed glyphs.

Rasterizing a glyph and summarizing its columns is the most expensive step
in both the table build and the runtime fallback, so every caller shares a
single cache keyed by (letter, style, variant). Cached glyphs are immutable
snapshots and are returned as-is.

The module provides:
    GlyphCache: Thread-safe LRU mapping of glyph keys to ProcessedGlyph.
    CachedGlyphProvider: Wraps a rasterizer so misses are rendered once.

Example usage::

    from overlap_lib.cache import CachedGlyphProvider, GlyphCache
    from overlap_lib.utils.rendering import FontGlyphRasterizer

    cache = GlyphCache(capacity=100)
    provider = CachedGlyphProvider(FontGlyphRasterizer({'straight': 'fonts/straight.ttf'}), cache)

    glyph = provider('a', 'straight')      # rasterized
    glyph = provider('a', 'straight')      # served from cache
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Callable, Optional, Tuple

from ..config import GLYPH_CACHE_CAPACITY
from ..domain.glyph import GlyphVariant, ProcessedGlyph

logger = logging.getLogger(__name__)

GlyphKey = Tuple[str, str, str]

# (letter, style, variant) -> ProcessedGlyph; raises GlyphUnavailable
GlyphProvider = Callable[..., ProcessedGlyph]


def glyph_key(letter: str, style: str, variant=GlyphVariant.STANDARD) -> GlyphKey:
    """Normalize a (letter, style, variant) triple into a cache key."""
    return (letter, style, GlyphVariant.parse(variant).value)


class GlyphCache:
    """Least-recently-used cache with a fixed capacity.

    All bookkeeping happens under one lock, so ``get`` (which refreshes
    recency) and ``put`` (which may evict) are safe from several threads.

    Attributes:
        capacity: Maximum number of glyphs held.
        hits: Number of successful lookups.
        misses: Number of failed lookups.
        evictions: Number of entries dropped for capacity.
    """

    def __init__(self, capacity: int = GLYPH_CACHE_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._entries: OrderedDict = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: GlyphKey) -> Optional[ProcessedGlyph]:
        """Return the glyph for ``key`` and mark it most recently used."""
        with self._lock:
            glyph = self._entries.get(key)
            if glyph is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return glyph

    def put(self, key: GlyphKey, glyph: ProcessedGlyph) -> None:
        """Insert or replace ``key``, evicting the oldest entry at capacity."""
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
            self._entries[key] = glyph
            while len(self._entries) > self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                self.evictions += 1
                logger.debug("Evicted glyph %s", evicted)

    def has(self, key: GlyphKey) -> bool:
        """Membership test that does not touch recency."""
        with self._lock:
            return key in self._entries

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def keys(self) -> list:
        """Keys from least to most recently used."""
        with self._lock:
            return list(self._entries)

    def stats(self) -> dict:
        with self._lock:
            return {
                'size': len(self._entries),
                'capacity': self.capacity,
                'hits': self.hits,
                'misses': self.misses,
                'evictions': self.evictions,
            }

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key) -> bool:
        return self.has(key)


class CachedGlyphProvider:
    """Glyph provider that consults a GlyphCache before rasterizing.

    Two threads missing on the same key may both rasterize it; the second
    ``put`` simply replaces an identical snapshot.

    Args:
        rasterize: Callable (letter, style, variant) -> ProcessedGlyph that
            raises GlyphUnavailable when it cannot draw the letter.
        cache: Shared GlyphCache. A private one is created if omitted.
    """

    def __init__(self, rasterize: GlyphProvider, cache: Optional[GlyphCache] = None):
        self.rasterize = rasterize
        self.cache = cache if cache is not None else GlyphCache()

    def __call__(self, letter: str, style: str, variant=GlyphVariant.STANDARD) -> ProcessedGlyph:
        variant = GlyphVariant.parse(variant)
        key = glyph_key(letter, style, variant)
        glyph = self.cache.get(key)
        if glyph is not None:
            return glyph
        glyph = self.rasterize(letter, style, variant)
        self.cache.put(key, glyph)
        return glyph
