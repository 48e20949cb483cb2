"""Error taxonomy and diagnostics for the overlap engine.

Only structurally invalid input is raised to callers. Conditions that can be
satisfied by a sane default (a missing table entry, a glyph that cannot be
rasterized during a bulk build, a table whose checksum does not match) are
absorbed where they happen and recorded on a ``Diagnostics`` instance so a
developer tool can show them later.

Example usage:
    Recording an absorbed failure::

        from overlap_lib.errors import Diagnostics, GlyphUnavailable

        diagnostics = Diagnostics()
        try:
            glyph = provider('q', 'straight', GlyphVariant.STANDARD)
        except GlyphUnavailable as e:
            diagnostics.record('glyph_unavailable', str(e), letter='q')

        for event in diagnostics.events():
            print(event['kind'], event['message'])
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Maximum number of diagnostic records kept in memory
MAX_DIAGNOSTIC_EVENTS = 500


class OverlapError(Exception):
    """Base class for all overlap engine errors."""


class InvalidGlyph(OverlapError):
    """A missing glyph was passed to the resolver."""


class GlyphUnavailable(OverlapError):
    """The rasterizer cannot produce a glyph for a character."""

    def __init__(self, letter: str, style: str, reason: str = ''):
        self.letter = letter
        self.style = style
        self.reason = reason
        message = f"Glyph '{letter}' unavailable for style '{style}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class TableNotFound(OverlapError):
    """No lookup table is registered for a style."""

    def __init__(self, style: str):
        self.style = style
        super().__init__(f"No overlap table registered for style '{style}'")


class StaleTable(OverlapError):
    """A table's entries do not match the checksum recorded in its metadata."""

    def __init__(self, style: str, expected: str, actual: str):
        self.style = style
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Checksum mismatch for style '{style}': "
            f"recorded {expected[:12]}, computed {actual[:12]}"
        )


class RuleSetError(OverlapError, ValueError):
    """Rule data violates 0 <= min <= max <= 1."""


class TableFormatError(OverlapError, ValueError):
    """A serialized table document cannot be parsed."""


class Diagnostics:
    """Thread-safe side-channel for absorbed failures.

    Each record is logged at WARNING and kept in a bounded buffer (oldest
    records are dropped first).

    Attributes:
        max_events: Maximum number of records retained.
    """

    def __init__(self, max_events: int = MAX_DIAGNOSTIC_EVENTS):
        self.max_events = max_events
        self._events: deque = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def record(self, kind: str, message: str, **details: Any) -> None:
        """Record an absorbed condition.

        Args:
            kind: Short machine-readable category, e.g. 'stale_table'.
            message: Human-readable description.
            **details: Extra JSON-serializable context (letter, style, ...).
        """
        event = {
            'kind': kind,
            'message': message,
            'details': details,
            'timestamp': datetime.now().isoformat(),
        }
        with self._lock:
            self._events.append(event)
        logger.warning("%s: %s", kind, message)

    def events(self, kind: Optional[str] = None) -> List[Dict[str, Any]]:
        """Return a snapshot of recorded events, optionally filtered by kind."""
        with self._lock:
            snapshot = list(self._events)
        if kind is None:
            return snapshot
        return [e for e in snapshot if e['kind'] == kind]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
