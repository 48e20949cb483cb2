"""Glyph caching.

Exports:
    GlyphCache: Thread-safe LRU cache keyed by (letter, style, variant).
    CachedGlyphProvider: Rasterizer wrapper that fills the cache on misses.
    glyph_key: Build a normalized cache key.
"""

from .glyph_cache import CachedGlyphProvider, GlyphCache, GlyphProvider, glyph_key

__all__ = ['GlyphCache', 'CachedGlyphProvider', 'GlyphProvider', 'glyph_key']
