"""Glyph analysis and overlap resolution.

This module provides the pixel-level part of the engine: turning an
occupancy mask into a column profile, and searching for the overlap
fraction that keeps two glyphs interlocked without colliding strokes.

Glyph processing:
    process_glyph_mask: Build a ProcessedGlyph from a binary mask.
    create_space_glyph: Empty glyph for whitespace.
    compute_column_profile: Per-column ink span and density.
    get_mask_bounds: Tight bounding box of a mask.

Resolution:
    resolve_overlap: Pure overlap search for a glyph pair.
    resolve_rotation: Rotation hint for a letter pair.
    estimate_overlap: Rule-only estimate without pixel data.
    collision_scores: Per-column scores for one candidate (debugging).

Example usage::

    from overlap_lib.analysis import process_glyph_mask, resolve_overlap

    a = process_glyph_mask(mask_a, 'a', 'straight')
    b = process_glyph_mask(mask_b, 'b', 'straight')
    fraction = resolve_overlap(a, b, rules)
"""

from .glyphs import (
    compute_column_profile,
    create_space_glyph,
    get_mask_bounds,
    process_glyph_mask,
)
from .resolver import (
    candidate_fractions,
    collides,
    collision_scores,
    estimate_overlap,
    resolve_overlap,
    resolve_rotation,
    search_bounds,
)

__all__ = [
    'process_glyph_mask', 'create_space_glyph', 'compute_column_profile', 'get_mask_bounds',
    'resolve_overlap', 'resolve_rotation', 'estimate_overlap', 'search_bounds',
    'candidate_fractions', 'collides', 'collision_scores',
]
