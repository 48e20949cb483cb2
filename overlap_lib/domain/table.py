"""Precomputed overlap table."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from .rules import normalize_letter


@dataclass(frozen=True)
class TableMetadata:
    """Provenance and integrity information for a table.

    Attributes:
        generated_at: ISO-8601 timestamp of the build.
        total_pairs: Number of entries actually stored.
        checksum: SHA-256 hex digest over the rounded, canonical entries.
        complete: True only if every alphabet pair has an entry.
        alphabet: Characters the build iterated over, in order.
        skipped: Characters whose glyph could not be produced.
        version: Serialization format version.
    """
    generated_at: str
    total_pairs: int
    checksum: str
    complete: bool = True
    alphabet: str = ''
    skipped: Tuple[str, ...] = ()
    version: str = '1.0'


@dataclass(frozen=True, eq=False)
class OverlapTable:
    """Mapping (first, second) -> overlap fraction for one style.

    Tables are loaded read-only and regenerated by rebuilding, never
    patched. ``entries`` and ``rotations`` are nested dictionaries keyed by
    first (or following) letter, then by the neighbour.
    """
    style: str
    entries: Dict[str, Dict[str, float]]
    metadata: TableMetadata
    rotations: Dict[str, Dict[str, float]] = field(default_factory=dict)

    def get(self, first: str, second: str) -> Optional[float]:
        row = self.entries.get(normalize_letter(first))
        if row is None:
            return None
        return row.get(normalize_letter(second))

    def get_rotation(self, letter: str, previous: str) -> Optional[float]:
        """Rotation for ``letter`` when it follows ``previous``."""
        row = self.rotations.get(normalize_letter(letter))
        if row is None:
            return None
        return row.get(normalize_letter(previous))

    def __contains__(self, pair: Tuple[str, str]) -> bool:
        return self.get(*pair) is not None

    def __eq__(self, other) -> bool:
        if not isinstance(other, OverlapTable):
            return NotImplemented
        return (self.style == other.style and self.entries == other.entries
                and self.rotations == other.rotations)

    def pairs(self) -> Iterator[Tuple[str, str, float]]:
        for first, row in self.entries.items():
            for second, value in row.items():
                yield first, second, value

    @property
    def entry_count(self) -> int:
        return sum(len(row) for row in self.entries.values())

    @property
    def is_complete(self) -> bool:
        return self.metadata.complete

    def letters(self) -> List[str]:
        return sorted(self.entries)

    def stats(self) -> dict:
        return {
            'style': self.style,
            'entry_count': self.entry_count,
            'generated_at': self.metadata.generated_at,
            'complete': self.metadata.complete,
            'skipped': list(self.metadata.skipped),
        }
