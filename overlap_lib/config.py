"""Shared configuration for the overlap engine.

This module centralizes the constants used by the resolver, the table
builder and the runtime accessor, together with the built-in rule set and
helpers to load rule sets from JSON files.

Attributes:
    DEFAULT_CANVAS_SIZE (int): Raster canvas size in pixels (200).
    DEFAULT_STYLE (str): Style used when none is given ('straight').
    DEFAULT_ALPHABET (str): Characters covered by a table build.
    COLLISION_THRESHOLD (float): Column collision score above which two
        superimposed columns are considered to clash.
    SEARCH_STEP (float): Resolution of the overlap scan.
    EXCEPTION_FACTOR (float): Multiplier applied to the search ceiling of
        exception pairs.
    GLYPH_CACHE_CAPACITY (int): Entries kept by the glyph cache.
    VALUE_PRECISION (int): Decimal places kept when serializing tables.
    VALIDATION_TOLERANCE (float): Allowed table/override difference.
"""

import json
import logging
from pathlib import Path

from .domain.rules import OverlapRule, RotationRule, RuleSet
from .errors import RuleSetError

logger = logging.getLogger(__name__)

# Rasterization
DEFAULT_CANVAS_SIZE = 200
DEFAULT_FONT_SIZE = 180
CANVAS_FILL_THRESHOLD = 0.9  # Max fraction of canvas a glyph can fill
BINARIZATION_THRESHOLD = 128
SPACE_GLYPH_WIDTH = 70

# Styles and alphabet
DEFAULT_STYLE = 'straight'
DEFAULT_ALPHABET = 'abcdefghijklmnopqrstuvwxyz0123456789'

# Overlap search
DEFAULT_MIN_OVERLAP = 0.04
DEFAULT_MAX_OVERLAP = 0.12
COLLISION_THRESHOLD = 0.01
SEARCH_STEP = 0.005
EXCEPTION_FACTOR = 0.7

# Caching and runtime
GLYPH_CACHE_CAPACITY = 100
FALLBACK_ROTATION = 0.0

# Tables
VALUE_PRECISION = 3
VALIDATION_TOLERANCE = 1e-3
BUILD_BATCH_SIZE = 64
TABLE_FORMAT_VERSION = '1.0'

# Pairs drawn with less overlap than their letter's rule allows
DEFAULT_EXCEPTIONS = {
    'a': ['v', 'w', 'y'],
    'v': ['a', 'e', 'o'],
    'w': ['a', 'e', 'o'],
    'y': ['a', 'e', 'o'],
}

# Degrees; 'after' applies when the letter follows, 'before' when it precedes
DEFAULT_ROTATIONS = {
    'a': {'after': {'v': 5, 'w': 5, 'y': 5}},
    'v': {'before': {'a': -5, 'e': -5, 'o': -5}},
    'w': {'before': {'a': -5, 'e': -5, 'o': -5}},
    'y': {'before': {'a': -5, 'e': -5, 'o': -5}},
}


def default_rule_set() -> RuleSet:
    """Build the built-in rule set."""
    return RuleSet(
        default=OverlapRule(DEFAULT_MIN_OVERLAP, DEFAULT_MAX_OVERLAP),
        exceptions={k: frozenset(v) for k, v in DEFAULT_EXCEPTIONS.items()},
        rotations={k: RotationRule(before=v.get('before', {}), after=v.get('after', {}))
                   for k, v in DEFAULT_ROTATIONS.items()},
    )


def load_rule_set(path) -> RuleSet:
    """Load a rule set from a JSON file.

    Args:
        path: Path to a document written by ``save_rule_set``.

    Returns:
        The parsed RuleSet.

    Raises:
        RuleSetError: If the file is not valid JSON or the rules are invalid.
        FileNotFoundError: If the file does not exist.
    """
    path = Path(path)
    with open(path, encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise RuleSetError(f"Invalid rule set JSON in {path}: {e}") from e
    rules = RuleSet.from_dict(data)
    logger.info("Loaded rule set from %s (%d letter rules)", path, len(rules.letter_rules))
    return rules


def save_rule_set(rules: RuleSet, path) -> None:
    """Write a rule set as indented JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(rules.to_dict(), f, indent=2)
