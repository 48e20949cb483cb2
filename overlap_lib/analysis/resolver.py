"""Overlap resolver: choose how far one glyph may slide under its neighbour.

The resolver is a pure function of two ProcessedGlyphs and a RuleSet. It
performs no I/O and keeps no cache; callers memoize through the lookup
table or the runtime accessor.

Collision model:
    The second glyph's canvas is placed so that its column 0 sits just
    right of the first glyph's last inked column, then slid left by
    ``round(fraction * second.width)`` pixels. Every first-glyph column in
    the overlapped strip is paired with the second-glyph column now on top
    of it. A pair collides when both columns have ink, their vertical
    spans share at least one row, and ``density_first * density_second``
    exceeds ``COLLISION_THRESHOLD``.

Search:
    Candidate fractions run from the ceiling down to the floor in
    ``SEARCH_STEP`` increments. The first candidate that does not collide
    is returned (the tightest acceptable overlap). When every candidate
    collides the floor is returned.

Example usage::

    from overlap_lib.analysis.resolver import resolve_overlap

    fraction = resolve_overlap(glyph_a, glyph_b, rules)
    offset_px = fraction * glyph_b.width
"""

from __future__ import annotations

import logging
import math
from typing import List, Tuple

import numpy as np

from ..config import COLLISION_THRESHOLD, EXCEPTION_FACTOR, SEARCH_STEP
from ..domain.glyph import ProcessedGlyph
from ..domain.rules import RotationHint, RuleSet, normalize_letter
from ..errors import InvalidGlyph

logger = logging.getLogger(__name__)


def search_bounds(first_letter: str, second_letter: str, rules: RuleSet) -> Tuple[float, float]:
    """Floor and ceiling of the overlap search for an ordered pair.

    The first letter's rule (or the default) gives the bounds. For pairs
    listed as exceptions the ceiling is reduced to
    ``max(floor, ceiling * EXCEPTION_FACTOR)``.
    """
    rule = rules.rule_for(first_letter)
    lo, hi = rule.min_overlap, rule.max_overlap
    if rules.is_exception(first_letter, second_letter):
        hi = max(lo, hi * EXCEPTION_FACTOR)
    return lo, hi


def candidate_fractions(lo: float, hi: float, step: float = SEARCH_STEP) -> List[float]:
    """Fractions to try, from ``hi`` down to ``lo`` inclusive.

    Values are computed as ``hi - i * step`` rather than by repeated
    subtraction so the sequence is identical on every call.
    """
    if step <= 0:
        raise ValueError(f"step must be positive, got {step}")
    count = int(math.floor((hi - lo) / step + 1e-9))
    return [max(lo, round(hi - i * step, 10)) for i in range(count + 1)]


def collision_scores(first: ProcessedGlyph, second: ProcessedGlyph, fraction: float) -> np.ndarray:
    """Per-column collision scores for one candidate overlap.

    Args:
        first: Left glyph (must have ink).
        second: Right glyph.
        fraction: Overlap as a fraction of ``second.width``.

    Returns:
        Float array with one score per overlapped column, ordered left to
        right. Columns whose spans do not meet score 0. Empty when the
        fraction maps to no overlapped pixels.
    """
    offset = int(round(fraction * second.width))
    if offset <= 0 or first.bounds is None:
        return np.zeros(0, dtype=float)

    edge = first.bounds.right + 1
    anchor = edge - offset
    start = max(0, anchor)
    stop = min(edge, anchor + second.width)
    if stop <= start:
        return np.zeros(0, dtype=float)

    xs = np.arange(start, stop)
    sx = xs - anchor

    d1 = first.densities[xs]
    d2 = second.densities[sx]
    shared_rows = (np.minimum(first.column_bottoms[xs], second.column_bottoms[sx])
                   - np.maximum(first.column_tops[xs], second.column_tops[sx]))
    touching = (d1 > 0) & (d2 > 0) & (shared_rows >= 0)
    return np.where(touching, d1 * d2, 0.0)


def collides(first: ProcessedGlyph, second: ProcessedGlyph, fraction: float,
             threshold: float = COLLISION_THRESHOLD) -> bool:
    """True when any overlapped column pair scores above ``threshold``."""
    scores = collision_scores(first, second, fraction)
    return bool(scores.size and scores.max() > threshold)


def resolve_overlap(
    first: ProcessedGlyph,
    second: ProcessedGlyph,
    rules: RuleSet,
    threshold: float = COLLISION_THRESHOLD,
    step: float = SEARCH_STEP,
) -> float:
    """Compute the overlap fraction for an ordered glyph pair.

    Args:
        first: Glyph on the left.
        second: Glyph on the right, slid under ``first``.
        rules: Rule snapshot to read bounds and overrides from.
        threshold: Collision score limit.
        step: Search resolution.

    Returns:
        0.0 if either glyph is empty; the special-case value if the pair has
        one; otherwise the largest non-colliding fraction within the
        letter's bounds, or the floor if every candidate collides.

    Raises:
        InvalidGlyph: If either glyph is None.
    """
    if first is None or second is None:
        raise InvalidGlyph("resolve_overlap requires two glyphs, got None")

    if first.is_empty or second.is_empty:
        return 0.0

    a = normalize_letter(first.letter)
    b = normalize_letter(second.letter)

    special = rules.special_case(a, b)
    if special is not None:
        return special

    lo, hi = search_bounds(a, b, rules)
    for fraction in candidate_fractions(lo, hi, step):
        if not collides(first, second, fraction, threshold):
            logger.debug("Resolved %r%r -> %.3f", a, b, fraction)
            return fraction

    logger.debug("Resolved %r%r -> floor %.3f (all candidates collide)", a, b, lo)
    return lo


def estimate_overlap(first_letter: str, second_letter: str, rules: RuleSet) -> float:
    """Rule-only estimate used when no pixel data is available.

    Returns the special case if one exists, otherwise the search ceiling.
    """
    special = rules.special_case(first_letter, second_letter)
    if special is not None:
        return special
    return search_bounds(first_letter, second_letter, rules)[1]


def resolve_rotation(first_letter: str, second_letter: str, rules: RuleSet) -> RotationHint:
    """Rotation hint for both glyphs of an adjacent pair.

    ``first`` comes from the first letter's ``before`` rule for the second
    letter; ``second`` from the second letter's ``after`` rule for the
    first letter. Missing rules give 0 degrees.
    """
    a = normalize_letter(first_letter)
    b = normalize_letter(second_letter)
    first_rule = rules.rotations.get(a)
    second_rule = rules.rotations.get(b)
    return RotationHint(
        first=first_rule.before.get(b, 0.0) if first_rule else 0.0,
        second=second_rule.after.get(a, 0.0) if second_rule else 0.0,
    )
