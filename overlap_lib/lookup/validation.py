"""Consistency check between a generated table and hand-authored overrides.

Every special case in the rule set is compared with the table entry for
the same pair. A difference beyond the tolerance, or a missing entry, is a
conflict. The check only reports; neither side is modified.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..config import VALIDATION_TOLERANCE
from ..domain.rules import RuleSet
from ..domain.table import OverlapTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Conflict:
    """A special case whose table entry disagrees.

    ``actual`` is None when the table has no entry for the pair.
    """
    letter: str
    target: str
    expected: float
    actual: Optional[float]

    def to_dict(self) -> dict:
        return {'letter': self.letter, 'target': self.target,
                'expected': self.expected, 'actual': self.actual}


@dataclass
class ValidationReport:
    matches: int = 0
    conflicts: List[Conflict] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.conflicts

    def to_dict(self) -> dict:
        return {'matches': self.matches,
                'conflicts': [c.to_dict() for c in self.conflicts],
                'ok': self.ok}


def validate(table: OverlapTable, rules: RuleSet,
             tolerance: float = VALIDATION_TOLERANCE) -> ValidationReport:
    """Compare every special case in ``rules`` with ``table``.

    Args:
        table: Table to check.
        rules: Rule snapshot whose overrides are authoritative.
        tolerance: Allowed absolute difference.

    Returns:
        ValidationReport with the number of matching overrides and the
        list of conflicts.
    """
    report = ValidationReport()
    for letter, target, expected in rules.iter_special_cases():
        actual = table.get(letter, target)
        if actual is not None and abs(actual - expected) <= tolerance:
            report.matches += 1
        else:
            report.conflicts.append(Conflict(letter, target, expected, actual))

    if report.conflicts:
        logger.info("Table %s: %d overrides match, %d conflict",
                    table.style, report.matches, len(report.conflicts))
    return report
