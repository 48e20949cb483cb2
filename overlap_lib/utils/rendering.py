"""Glyph rasterization from font outlines.

This module is the adapter between vector letter shapes and the
ProcessedGlyph data the resolver works on. Each style maps to a font file;
a character is rendered centred on a fixed square canvas, scaled down to
fit if needed, binarized, and summarized with ``process_glyph_mask``.

The module provides the following:
    render_glyph_mask: Render one character as a boolean mask.
    FontGlyphRasterizer: Style-aware glyph provider built on Pillow.

Example usage:
    Rendering a mask::

        from overlap_lib.utils.rendering import render_glyph_mask

        mask = render_glyph_mask('/fonts/straight.ttf', 'a', canvas_size=200)
        if mask is not None:
            print(mask.shape, mask.sum())

    Using the rasterizer as a glyph provider::

        rasterizer = FontGlyphRasterizer({'straight': '/fonts/straight.ttf'})
        glyph = rasterizer('a', 'straight')
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Dict, Optional

import numpy as np
from PIL import Image, ImageDraw, ImageFont
from PIL.ImageFont import FreeTypeFont

from ..analysis.glyphs import create_space_glyph, process_glyph_mask
from ..config import (
    BINARIZATION_THRESHOLD,
    CANVAS_FILL_THRESHOLD,
    DEFAULT_CANVAS_SIZE,
    DEFAULT_FONT_SIZE,
)
from ..domain.glyph import GlyphVariant, ProcessedGlyph
from ..errors import GlyphUnavailable

logger = logging.getLogger(__name__)

# LRU cache size for font objects
FONT_CACHE_SIZE = 64


@lru_cache(maxsize=FONT_CACHE_SIZE)
def _cached_font(font_path: str, size: int) -> FreeTypeFont:
    """Load a font with caching to avoid repeated disk I/O."""
    return ImageFont.truetype(font_path, size)


def render_glyph_mask(font_path: str, char: str, canvas_size: int = DEFAULT_CANVAS_SIZE,
                      font_size: int = DEFAULT_FONT_SIZE) -> Optional[np.ndarray]:
    """Render a glyph as a binary mask.

    The rendering process:
        1. Load the font at ``font_size``
        2. Measure the character's bounding box
        3. Scale down if it would fill more than 90% of the canvas
        4. Centre the character on the canvas
        5. Render black on white and threshold

    Args:
        font_path: Path to the font file (TTF, OTF, etc.).
        char: Single character to render.
        canvas_size: Side of the square canvas in pixels.
        font_size: Initial font size before fit-to-canvas scaling.

    Returns:
        Boolean array of shape (canvas_size, canvas_size), True on ink.
        None if the font cannot be loaded or the character has no visible
        shape.
    """
    try:
        font = _cached_font(font_path, font_size)
    except OSError:
        return None

    bbox = font.getbbox(char)
    if not bbox or bbox[2] <= bbox[0] or bbox[3] <= bbox[1]:
        return None

    w = bbox[2] - bbox[0]
    h = bbox[3] - bbox[1]

    max_dim = canvas_size * CANVAS_FILL_THRESHOLD
    if w > max_dim or h > max_dim:
        scale = min(max_dim / w, max_dim / h)
        try:
            font = _cached_font(font_path, max(1, int(font_size * scale)))
        except OSError:
            return None
        bbox = font.getbbox(char)
        if not bbox:
            return None
        w = bbox[2] - bbox[0]
        h = bbox[3] - bbox[1]

    img = Image.new('L', (canvas_size, canvas_size), 255)
    draw = ImageDraw.Draw(img)
    x = (canvas_size - w) // 2 - bbox[0]
    y = (canvas_size - h) // 2 - bbox[1]
    draw.text((x, y), char, fill=0, font=font)

    mask = np.array(img) < BINARIZATION_THRESHOLD
    if not mask.any():
        return None
    return mask


class FontGlyphRasterizer:
    """Glyph provider backed by one font file per style.

    Whitespace characters produce the empty space glyph. Variants other
    than standard look for a font registered as ``'<style>:<variant>'``
    and fall back to the style's font.

    Attributes:
        fonts: style id -> font file path.
        canvas_size: Canvas side in pixels.
        font_size: Initial font size.
    """

    def __init__(self, fonts: Dict[str, str], canvas_size: int = DEFAULT_CANVAS_SIZE,
                 font_size: int = DEFAULT_FONT_SIZE):
        self.fonts = dict(fonts)
        self.canvas_size = canvas_size
        self.font_size = font_size

    def font_for(self, style: str, variant: GlyphVariant) -> Optional[str]:
        if variant is not GlyphVariant.STANDARD:
            path = self.fonts.get(f'{style}:{variant.value}')
            if path:
                return path
        return self.fonts.get(style)

    def __call__(self, letter: str, style: str, variant=GlyphVariant.STANDARD) -> ProcessedGlyph:
        variant = GlyphVariant.parse(variant)
        if letter.isspace():
            return create_space_glyph(style, height=self.canvas_size, variant=variant)

        font_path = self.font_for(style, variant)
        if not font_path:
            raise GlyphUnavailable(letter, style, 'no font registered')
        if not os.path.exists(font_path):
            raise GlyphUnavailable(letter, style, f'font file not found: {font_path}')

        mask = render_glyph_mask(font_path, letter, self.canvas_size, self.font_size)
        if mask is None:
            raise GlyphUnavailable(letter, style, 'font has no visible shape for it')

        logger.debug("Rasterized %r for style %s (%s)", letter, style, variant.value)
        return process_glyph_mask(mask, letter, style, variant)
