"""Rasterization utilities.

Exports:
    render_glyph_mask: Render a character from a font file as a boolean mask.
    FontGlyphRasterizer: Glyph provider mapping styles to font files.
"""

from .rendering import FontGlyphRasterizer, render_glyph_mask

__all__ = ['render_glyph_mask', 'FontGlyphRasterizer']
