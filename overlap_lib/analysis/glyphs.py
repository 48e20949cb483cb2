"""Glyph processing: occupancy grid to ProcessedGlyph.

This module turns a binary mask produced by a rasterizer into the
``ProcessedGlyph`` shape consumed by the resolver. The expensive part of
overlap analysis is scanning pixels, so each column is summarized once as
a ``ColumnRange`` (first inked row, last inked row, density) and the
resolver only ever compares those summaries.

The module provides the following functions:
    get_mask_bounds: Tight bounding box of True pixels.
    compute_column_profile: Per-column vertical extent and density.
    process_glyph_mask: Build a ProcessedGlyph from a mask.
    create_space_glyph: Build the empty whitespace glyph.

Example usage:
    Processing a mask::

        import numpy as np
        from overlap_lib.analysis.glyphs import process_glyph_mask

        mask = np.zeros((200, 200), dtype=bool)
        mask[40:160, 20:120] = True
        glyph = process_glyph_mask(mask, 'a', 'straight')

        glyph.bounds                       # GlyphBounds(left=20, right=119, ...)
        glyph.column_profile[50].density   # 1.0
        glyph.column_profile[150].density  # 0.0
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from ..config import DEFAULT_CANVAS_SIZE, SPACE_GLYPH_WIDTH
from ..domain.glyph import ColumnRange, GlyphBounds, GlyphVariant, ProcessedGlyph


def get_mask_bounds(mask: np.ndarray) -> Optional[GlyphBounds]:
    """Get the bounding box of True pixels in a mask.

    Args:
        mask: 2D boolean array indexed [row, column].

    Returns:
        Inclusive GlyphBounds, or None if the mask has no True pixels.

    Example:
        >>> mask = np.zeros((100, 100), dtype=bool)
        >>> mask[20:80, 30:70] = True
        >>> get_mask_bounds(mask)
        GlyphBounds(left=30, right=69, top=20, bottom=79)
    """
    rows, cols = np.where(mask)
    if len(rows) == 0:
        return None

    return GlyphBounds(
        left=int(cols.min()),
        right=int(cols.max()),
        top=int(rows.min()),
        bottom=int(rows.max()),
    )


def compute_column_profile(mask: np.ndarray, sampling_step: int = 1) -> Tuple[ColumnRange, ...]:
    """Summarize each column of a mask by its vertical ink span.

    For a column with ink, ``top`` and ``bottom`` are the first and last
    inked rows and ``density`` is the fraction of rows between them that
    are inked. Columns without ink get ``ColumnRange(0, height - 1, 0.0)``.

    With ``sampling_step > 1`` only every n-th row and column is inspected
    and each sampled column's range is copied to the skipped columns to its
    right. This trades accuracy for speed on large canvases.

    Args:
        mask: 2D boolean array of shape (height, width).
        sampling_step: Sample every n-th row and column. Default 1 (exact).

    Returns:
        Tuple of ``width`` ColumnRange objects.
    """
    if sampling_step < 1:
        raise ValueError(f"sampling_step must be >= 1, got {sampling_step}")

    mask = np.asarray(mask, dtype=bool)
    height, width = mask.shape
    sampled = mask[::sampling_step, ::sampling_step]
    n_rows = sampled.shape[0]

    has_ink = sampled.any(axis=0)
    top_idx = sampled.argmax(axis=0)
    bottom_idx = n_rows - 1 - sampled[::-1].argmax(axis=0)
    counts = sampled.sum(axis=0)

    profile = []
    for col in range(sampled.shape[1]):
        if has_ink[col]:
            span = bottom_idx[col] - top_idx[col] + 1
            rng = ColumnRange(
                top=int(top_idx[col] * sampling_step),
                bottom=int(bottom_idx[col] * sampling_step),
                density=float(counts[col]) / float(span),
            )
        else:
            rng = ColumnRange(top=0, bottom=height - 1, density=0.0)
        # Fill skipped neighbours for sampling steps > 1
        for _ in range(sampling_step):
            if len(profile) < width:
                profile.append(rng)

    return tuple(profile)


def process_glyph_mask(
    mask: np.ndarray,
    letter: str,
    style: str,
    variant=GlyphVariant.STANDARD,
    sampling_step: int = 1,
) -> ProcessedGlyph:
    """Build a ProcessedGlyph from a binary occupancy mask.

    The mask is copied and frozen so the glyph can be shared between
    threads through the glyph cache.

    Args:
        mask: 2D array where truthy values mark ink.
        letter: Character the mask draws.
        style: Style identifier.
        variant: GlyphVariant or its string value.
        sampling_step: Forwarded to ``compute_column_profile``.

    Returns:
        An immutable ProcessedGlyph.

    Raises:
        ValueError: If the mask is not two-dimensional.
    """
    occupancy = np.array(mask, dtype=bool, copy=True)
    if occupancy.ndim != 2:
        raise ValueError(f"Occupancy mask must be 2D, got shape {occupancy.shape}")
    occupancy.setflags(write=False)

    height, width = occupancy.shape
    return ProcessedGlyph(
        letter=letter,
        style=style,
        variant=GlyphVariant.parse(variant),
        width=width,
        height=height,
        bounds=get_mask_bounds(occupancy),
        occupancy=occupancy,
        column_profile=compute_column_profile(occupancy, sampling_step),
    )


def create_space_glyph(
    style: str = '',
    width: int = SPACE_GLYPH_WIDTH,
    height: int = DEFAULT_CANVAS_SIZE,
    variant=GlyphVariant.STANDARD,
) -> ProcessedGlyph:
    """Build the empty glyph used for whitespace."""
    return process_glyph_mask(np.zeros((height, width), dtype=bool), ' ', style, variant)
