"""Overlap table serialization.

Tables are stored as one JSON document per style::

    {
      "version": "1.0",
      "style": "straight",
      "entries": {"a": {"a": 0.04, "b": 0.12, ...}, ...},
      "rotations": {"a": {"v": 5.0}, ...},
      "metadata": {
        "generated_at": "2026-10-19T12:00:00",
        "total_pairs": 1296,
        "checksum": "9f2c...",
        "complete": true,
        "alphabet": "abc...",
        "skipped": []
      }
    }

Entry values are rounded to ``VALUE_PRECISION`` decimal places. The
checksum is a SHA-256 digest of the canonical JSON of the rounded entries
followed by the rounded rotations, so a table that was edited by hand (or
truncated) no longer matches the digest recorded at build time.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Dict, Optional

from ..config import TABLE_FORMAT_VERSION, VALUE_PRECISION
from ..domain.table import OverlapTable, TableMetadata
from ..errors import Diagnostics, StaleTable, TableFormatError

logger = logging.getLogger(__name__)


def round_entries(entries: Dict[str, Dict[str, float]],
                  precision: int = VALUE_PRECISION) -> Dict[str, Dict[str, float]]:
    """Nested copy of ``entries`` with every value rounded."""
    return {
        first: {second: round(float(value), precision) for second, value in row.items()}
        for first, row in entries.items()
    }


def compute_checksum(entries: Dict[str, Dict[str, float]],
                     rotations: Optional[Dict[str, Dict[str, float]]] = None) -> str:
    """SHA-256 hex digest over the rounded, key-sorted entries.

    Rotations, when present, are hashed after the entries, so a table
    without rotations keeps the entries-only digest.
    """
    digest = hashlib.sha256()
    digest.update(json.dumps(round_entries(entries), sort_keys=True,
                             separators=(',', ':')).encode('utf-8'))
    if rotations:
        digest.update(json.dumps(round_entries(rotations), sort_keys=True,
                                 separators=(',', ':')).encode('utf-8'))
    return digest.hexdigest()


def verify_table(table: OverlapTable) -> None:
    """Check a table's entries and rotations against its recorded checksum.

    Raises:
        StaleTable: If the digests differ.
    """
    actual = compute_checksum(table.entries, table.rotations)
    if actual != table.metadata.checksum:
        raise StaleTable(table.style, table.metadata.checksum, actual)


def table_to_dict(table: OverlapTable) -> dict:
    meta = table.metadata
    return {
        'version': meta.version,
        'style': table.style,
        'entries': round_entries(table.entries),
        'rotations': round_entries(table.rotations),
        'metadata': {
            'generated_at': meta.generated_at,
            'total_pairs': meta.total_pairs,
            'checksum': meta.checksum,
            'complete': meta.complete,
            'alphabet': meta.alphabet,
            'skipped': list(meta.skipped),
        },
    }


def table_from_dict(data: dict) -> OverlapTable:
    """Rebuild a table from ``table_to_dict`` output.

    Raises:
        TableFormatError: If required keys are missing or values are not
            numeric.
    """
    try:
        meta = data['metadata']
        entries = {
            str(first): {str(second): float(value) for second, value in row.items()}
            for first, row in data['entries'].items()
        }
        rotations = {
            str(letter): {str(prev): float(value) for prev, value in row.items()}
            for letter, row in data.get('rotations', {}).items()
        }
        metadata = TableMetadata(
            generated_at=str(meta['generated_at']),
            total_pairs=int(meta['total_pairs']),
            checksum=str(meta['checksum']),
            complete=bool(meta.get('complete', True)),
            alphabet=str(meta.get('alphabet', '')),
            skipped=tuple(meta.get('skipped', ())),
            version=str(data.get('version', TABLE_FORMAT_VERSION)),
        )
        return OverlapTable(style=str(data['style']), entries=entries,
                            metadata=metadata, rotations=rotations)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise TableFormatError(f"Malformed overlap table document: {e}") from e


def dumps_table(table: OverlapTable, indent: Optional[int] = 2) -> str:
    return json.dumps(table_to_dict(table), indent=indent, sort_keys=True)


def loads_table(text: str) -> OverlapTable:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise TableFormatError(f"Overlap table is not valid JSON: {e}") from e
    return table_from_dict(data)


def save_table(table: OverlapTable, path) -> Path:
    """Write a table to ``path`` and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps_table(table), encoding='utf-8')
    logger.info("Saved overlap table for %s to %s (%d entries)",
                table.style, path, table.entry_count)
    return path


def load_table(path, verify: bool = True, diagnostics: Optional[Diagnostics] = None) -> OverlapTable:
    """Load a table from ``path``.

    A checksum mismatch does not prevent loading: the table is still
    returned, the mismatch is logged and recorded on ``diagnostics``.

    Args:
        path: JSON file written by ``save_table``.
        verify: Recompute and compare the checksum.
        diagnostics: Optional side-channel for a stale table.

    Raises:
        TableFormatError: If the file cannot be parsed.
        FileNotFoundError: If the file does not exist.
    """
    path = Path(path)
    table = loads_table(path.read_text(encoding='utf-8'))
    if verify:
        try:
            verify_table(table)
        except StaleTable as e:
            if diagnostics is not None:
                diagnostics.record('stale_table', str(e), style=table.style, path=str(path))
            else:
                logger.warning("%s", e)
    return table
