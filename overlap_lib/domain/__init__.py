"""Domain objects for letter overlap analysis.

This module provides the value objects shared by every other part of the
package: rasterized glyphs, overlap and rotation rules, and the
precomputed overlap table.

Glyph classes:
    GlyphVariant: Positional variant (standard, alternate, first, last).
    GlyphBounds: Tight bounding box of inked pixels.
    ColumnRange: Vertical ink extent and density of one column.
    ProcessedGlyph: Immutable rasterized letter with its column profile.

Rule classes:
    OverlapRule: Min/max overlap bounds plus special-case overrides.
    RotationRule: Per-neighbour rotation for one letter.
    RotationHint: Rotation for both glyphs of a pair.
    RuleSet: Immutable snapshot of all rules.

Table classes:
    TableMetadata: Build provenance and checksum.
    OverlapTable: Pair -> overlap fraction mapping for one style.

Example usage::

    from overlap_lib.domain import OverlapRule, RuleSet

    rules = RuleSet(default=OverlapRule(0.04, 0.12))
    rule = rules.rule_for('a')
    print(rule.min_overlap, rule.max_overlap)
"""

from .glyph import ColumnRange, GlyphBounds, GlyphVariant, ProcessedGlyph
from .rules import (
    OverlapRule,
    RotationHint,
    RotationRule,
    RuleSet,
    normalize_letter,
)
from .table import OverlapTable, TableMetadata

__all__ = [
    'GlyphVariant', 'GlyphBounds', 'ColumnRange', 'ProcessedGlyph',
    'OverlapRule', 'RotationRule', 'RotationHint', 'RuleSet', 'normalize_letter',
    'OverlapTable', 'TableMetadata',
]
