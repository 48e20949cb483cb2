"""Glyph value objects for overlap analysis."""

from __future__ import annotations
from dataclasses import dataclass, field
from functools import cached_property
from enum import Enum
from typing import Optional, Tuple

import numpy as np


class GlyphVariant(Enum):
    """Positional variant of a letter.

    A letter may render differently at the start or end of a word, or use
    an alternate drawing to avoid repeating the same shape twice in a row.
    """
    STANDARD = 'standard'
    ALTERNATE = 'alternate'
    FIRST = 'first'
    LAST = 'last'

    @classmethod
    def parse(cls, value) -> GlyphVariant:
        """Accept either a GlyphVariant or its string value."""
        if isinstance(value, cls):
            return value
        return cls(str(value).lower())


@dataclass(frozen=True)
class GlyphBounds:
    """Tight bounding box of inked pixels, inclusive on all sides."""
    left: int
    right: int
    top: int
    bottom: int

    @property
    def width(self) -> int:
        return self.right - self.left + 1

    @property
    def height(self) -> int:
        return self.bottom - self.top + 1

    def to_dict(self) -> dict:
        return {'left': self.left, 'right': self.right,
                'top': self.top, 'bottom': self.bottom}


@dataclass(frozen=True)
class ColumnRange:
    """Vertical ink extent of one column.

    Attributes:
        top: First inked row (0 for empty columns).
        bottom: Last inked row (height - 1 for empty columns).
        density: Inked rows divided by the span height, in [0, 1].
            Zero marks a column without ink.
    """
    top: int
    bottom: int
    density: float

    @property
    def has_ink(self) -> bool:
        return self.density > 0


@dataclass(frozen=True, eq=False)
class ProcessedGlyph:
    """One rasterized letter variant.

    Instances are immutable snapshots: the occupancy grid is stored as a
    read-only numpy array and the column profile as a tuple. They are
    created by the rasterizer adapter (see ``process_glyph_mask``) and
    shared through the glyph cache.

    Attributes:
        letter: The character this glyph draws.
        style: Visual style family identifier.
        variant: Positional variant.
        width: Canvas width in pixels.
        height: Canvas height in pixels.
        bounds: Tight box around inked pixels, or None for an empty glyph.
        occupancy: Boolean array of shape (height, width).
        column_profile: One ColumnRange per canvas column.
    """
    letter: str
    style: str
    variant: GlyphVariant
    width: int
    height: int
    bounds: Optional[GlyphBounds]
    occupancy: np.ndarray = field(repr=False)
    column_profile: Tuple[ColumnRange, ...] = field(repr=False)

    @property
    def is_empty(self) -> bool:
        """True when the glyph has no ink (whitespace)."""
        return self.bounds is None

    @property
    def key(self) -> Tuple[str, str, str]:
        """Cache identity (letter, style, variant)."""
        return (self.letter, self.style, self.variant.value)

    # Array views of the column profile, computed once per glyph
    @cached_property
    def densities(self) -> np.ndarray:
        """Column densities as a read-only float array of length ``width``."""
        arr = np.array([c.density for c in self.column_profile], dtype=float)
        arr.setflags(write=False)
        return arr

    @cached_property
    def column_tops(self) -> np.ndarray:
        arr = np.array([c.top for c in self.column_profile], dtype=int)
        arr.setflags(write=False)
        return arr

    @cached_property
    def column_bottoms(self) -> np.ndarray:
        arr = np.array([c.bottom for c in self.column_profile], dtype=int)
        arr.setflags(write=False)
        return arr

    def to_dict(self) -> dict:
        """Summary without pixel data, for JSON responses."""
        return {
            'letter': self.letter,
            'style': self.style,
            'variant': self.variant.value,
            'width': self.width,
            'height': self.height,
            'bounds': self.bounds.to_dict() if self.bounds else None,
            'ink_columns': sum(1 for c in self.column_profile if c.has_ink),
        }
