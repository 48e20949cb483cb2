"""Registry of loaded overlap tables, keyed by style.

The registry is an explicit object owned by whatever composes the runtime
accessor. Registering or unregistering a table publishes a new dictionary
snapshot; readers grab the current snapshot without locking and never see
a half-updated mapping.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional

from ..domain.table import OverlapTable
from ..errors import Diagnostics, TableFormatError, TableNotFound
from .serialization import load_table

logger = logging.getLogger(__name__)


class TableRegistry:
    """Copy-on-write mapping of style -> OverlapTable."""

    def __init__(self, tables: Optional[Dict[str, OverlapTable]] = None,
                 diagnostics: Optional[Diagnostics] = None):
        self._tables: Dict[str, OverlapTable] = dict(tables or {})
        self._write_lock = threading.Lock()
        self.diagnostics = diagnostics

    def register(self, table: OverlapTable) -> None:
        """Publish ``table`` for its style, replacing any previous one."""
        with self._write_lock:
            tables = dict(self._tables)
            tables[table.style] = table
            self._tables = tables
        logger.info("Registered overlap table for %s (%d entries, complete=%s)",
                    table.style, table.entry_count, table.is_complete)

    def unregister(self, style: str) -> Optional[OverlapTable]:
        with self._write_lock:
            tables = dict(self._tables)
            removed = tables.pop(style, None)
            self._tables = tables
        return removed

    def get(self, style: str) -> Optional[OverlapTable]:
        return self._tables.get(style)

    def require(self, style: str) -> OverlapTable:
        """Like ``get`` but raises TableNotFound."""
        table = self._tables.get(style)
        if table is None:
            raise TableNotFound(style)
        return table

    def has(self, style: str) -> bool:
        return style in self._tables

    def styles(self) -> List[str]:
        return sorted(self._tables)

    def load_file(self, path) -> OverlapTable:
        table = load_table(path, diagnostics=self.diagnostics)
        self.register(table)
        return table

    def load_directory(self, directory) -> int:
        """Register every ``*.json`` table in ``directory``.

        Files that cannot be parsed are skipped and recorded.

        Returns:
            Number of tables registered.
        """
        directory = Path(directory)
        if not directory.is_dir():
            logger.info("Table directory %s does not exist", directory)
            return 0

        count = 0
        for path in sorted(directory.glob('*.json')):
            try:
                self.load_file(path)
                count += 1
            except TableFormatError as e:
                if self.diagnostics is not None:
                    self.diagnostics.record('table_format', str(e), path=str(path))
                else:
                    logger.warning("Skipping %s: %s", path, e)
        return count

    def __len__(self) -> int:
        return len(self._tables)

    def __contains__(self, style) -> bool:
        return self.has(style)
