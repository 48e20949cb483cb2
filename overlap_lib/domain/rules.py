"""Overlap and rotation rules.

A ``RuleSet`` is an immutable snapshot. Editing tools publish a new snapshot
through the ``with_*`` methods instead of mutating one that readers may be
holding, so the resolver and accessor never need a lock to read rules.

Example usage:
    Building and editing a rule set::

        from overlap_lib.domain.rules import OverlapRule, RuleSet

        rules = RuleSet(default=OverlapRule(0.04, 0.12))
        rules = rules.with_letter_rule('r', OverlapRule(0.05, 0.14))
        rules = rules.with_special_case('r', 'c', 0.02)

        rules.rule_for('r').special_cases['c']   # 0.02
        rules.rule_for('x') is rules.default      # True
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, Mapping, Optional

from ..errors import RuleSetError


def normalize_letter(letter: str) -> str:
    """Lower-case ASCII letters; leave digits and symbols untouched."""
    if len(letter) == 1 and letter.isascii() and letter.isalpha():
        return letter.lower()
    return letter


def _check_fraction(name: str, value: float) -> float:
    value = float(value)
    if not 0.0 <= value <= 1.0:
        raise RuleSetError(f"{name} must be within [0, 1], got {value}")
    return value


@dataclass(frozen=True)
class OverlapRule:
    """Search bounds for pairs starting with one letter.

    Special-case values are explicit overrides and are not checked against
    the bounds; they may exceed them on purpose.
    """
    min_overlap: float
    max_overlap: float
    special_cases: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        lo = _check_fraction('min_overlap', self.min_overlap)
        hi = _check_fraction('max_overlap', self.max_overlap)
        if lo > hi:
            raise RuleSetError(f"min_overlap {lo} exceeds max_overlap {hi}")
        object.__setattr__(self, 'min_overlap', lo)
        object.__setattr__(self, 'max_overlap', hi)
        object.__setattr__(self, 'special_cases', {
            normalize_letter(k): float(v) for k, v in dict(self.special_cases).items()
        })

    def to_dict(self) -> dict:
        data = {'min_overlap': self.min_overlap, 'max_overlap': self.max_overlap}
        if self.special_cases:
            data['special_cases'] = dict(sorted(self.special_cases.items()))
        return data

    @classmethod
    def from_dict(cls, data: dict) -> OverlapRule:
        try:
            return cls(
                min_overlap=data['min_overlap'],
                max_overlap=data['max_overlap'],
                special_cases=data.get('special_cases', {}),
            )
        except (KeyError, TypeError) as e:
            raise RuleSetError(f"Malformed overlap rule {data!r}: {e}") from e


@dataclass(frozen=True)
class RotationRule:
    """Rotation in degrees applied to a letter depending on its neighbours.

    Attributes:
        before: next letter -> degrees, used when this letter precedes it.
        after: previous letter -> degrees, used when this letter follows it.
    """
    before: Mapping[str, float] = field(default_factory=dict)
    after: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'before', {
            normalize_letter(k): float(v) for k, v in dict(self.before).items()})
        object.__setattr__(self, 'after', {
            normalize_letter(k): float(v) for k, v in dict(self.after).items()})

    def to_dict(self) -> dict:
        data = {}
        if self.before:
            data['before'] = dict(sorted(self.before.items()))
        if self.after:
            data['after'] = dict(sorted(self.after.items()))
        return data


@dataclass(frozen=True)
class RotationHint:
    """Degrees to rotate each glyph of an adjacent pair."""
    first: float = 0.0
    second: float = 0.0


@dataclass(frozen=True)
class RuleSet:
    """Default bounds plus per-letter exceptions.

    Attributes:
        default: Bounds used when a letter has no rule of its own.
        letter_rules: letter -> OverlapRule.
        exceptions: letter -> next letters whose search ceiling is reduced.
        rotations: letter -> RotationRule.
    """
    default: OverlapRule
    letter_rules: Mapping[str, OverlapRule] = field(default_factory=dict)
    exceptions: Mapping[str, FrozenSet[str]] = field(default_factory=dict)
    rotations: Mapping[str, RotationRule] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'letter_rules', {
            normalize_letter(k): v for k, v in dict(self.letter_rules).items()})
        object.__setattr__(self, 'exceptions', {
            normalize_letter(k): frozenset(normalize_letter(n) for n in v)
            for k, v in dict(self.exceptions).items()})
        object.__setattr__(self, 'rotations', {
            normalize_letter(k): v for k, v in dict(self.rotations).items()})

    def rule_for(self, letter: str) -> OverlapRule:
        """Rule applying to pairs whose first letter is ``letter``."""
        return self.letter_rules.get(normalize_letter(letter), self.default)

    def special_case(self, first: str, second: str) -> Optional[float]:
        """Explicit override for the ordered pair, if one exists."""
        return self.rule_for(first).special_cases.get(normalize_letter(second))

    def is_exception(self, first: str, second: str) -> bool:
        return normalize_letter(second) in self.exceptions.get(normalize_letter(first), ())

    def iter_special_cases(self):
        """Yield (letter, target, value) for every override."""
        for letter, rule in sorted(self.letter_rules.items()):
            for target, value in sorted(rule.special_cases.items()):
                yield letter, target, value

    # --- copy-on-write edits ---

    def with_default(self, rule: OverlapRule) -> RuleSet:
        return replace(self, default=rule)

    def with_letter_rule(self, letter: str, rule: OverlapRule) -> RuleSet:
        rules = dict(self.letter_rules)
        rules[normalize_letter(letter)] = rule
        return replace(self, letter_rules=rules)

    def without_letter_rule(self, letter: str) -> RuleSet:
        rules = dict(self.letter_rules)
        rules.pop(normalize_letter(letter), None)
        return replace(self, letter_rules=rules)

    def with_special_case(self, letter: str, target: str, value: float) -> RuleSet:
        """Add an override, creating a letter rule from the default if needed."""
        base = self.rule_for(letter)
        cases = dict(base.special_cases)
        cases[normalize_letter(target)] = float(value)
        rule = OverlapRule(base.min_overlap, base.max_overlap, cases)
        return self.with_letter_rule(letter, rule)

    def with_exceptions(self, letter: str, targets) -> RuleSet:
        exceptions = dict(self.exceptions)
        exceptions[normalize_letter(letter)] = frozenset(targets)
        return replace(self, exceptions=exceptions)

    def with_rotation(self, letter: str, rule: RotationRule) -> RuleSet:
        rotations = dict(self.rotations)
        rotations[normalize_letter(letter)] = rule
        return replace(self, rotations=rotations)

    # --- serialization ---

    def to_dict(self) -> dict:
        return {
            'default': self.default.to_dict(),
            'letters': {k: r.to_dict() for k, r in sorted(self.letter_rules.items())},
            'exceptions': {k: sorted(v) for k, v in sorted(self.exceptions.items())},
            'rotations': {k: r.to_dict() for k, r in sorted(self.rotations.items())},
        }

    @classmethod
    def from_dict(cls, data: dict) -> RuleSet:
        """Parse the JSON document written by ``to_dict``.

        Raises:
            RuleSetError: If a rule is missing bounds or violates
                0 <= min <= max <= 1.
        """
        if not isinstance(data, dict) or 'default' not in data:
            raise RuleSetError("Rule set document needs a 'default' rule")
        rotations = {}
        for letter, rot in data.get('rotations', {}).items():
            rotations[letter] = RotationRule(
                before=rot.get('before', {}), after=rot.get('after', {}))
        return cls(
            default=OverlapRule.from_dict(data['default']),
            letter_rules={k: OverlapRule.from_dict(v)
                          for k, v in data.get('letters', {}).items()},
            exceptions={k: frozenset(v) for k, v in data.get('exceptions', {}).items()},
            rotations=rotations,
        )
