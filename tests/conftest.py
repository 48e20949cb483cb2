"""Shared pytest fixtures for the overlap engine test suite.

Glyphs are built from synthetic numpy masks so the tests never need a
font file. A "block" glyph is a 200x200 canvas with one solid rectangle of
ink; its column range and rows are chosen per test to force or avoid
collisions.

Fixtures:
    rules: Default rule set (0.04 to 0.12, no overrides)
    block_glyph: Factory for rectangle glyphs
    space_glyph: Empty whitespace glyph
    glyph_factory: Dict-backed glyph provider with a call counter
    flask_client: Flask test client with an injected OverlapService

Markers:
    slow: Mark test as slow-running (skip with -m "not slow")
    integration: Mark test as integration test
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from overlap_lib.analysis.glyphs import create_space_glyph, process_glyph_mask
from overlap_lib.domain.rules import OverlapRule, RuleSet
from overlap_lib.errors import GlyphUnavailable

CANVAS = 200


# -----------------------------------------------------------------------------
# Pytest Markers
# -----------------------------------------------------------------------------

def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow-running (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )


# -----------------------------------------------------------------------------
# Glyph helpers
# -----------------------------------------------------------------------------

def make_block_glyph(letter, cols=(0, 101), rows=(0, CANVAS), style='straight',
                     size=CANVAS, variant='standard'):
    """Glyph with a solid rectangle of ink.

    Args:
        letter: Character the glyph stands for.
        cols: (start, stop) column slice of the ink.
        rows: (start, stop) row slice of the ink.
        style: Style identifier.
        size: Canvas side.
        variant: Glyph variant value.
    """
    mask = np.zeros((size, size), dtype=bool)
    mask[rows[0]:rows[1], cols[0]:cols[1]] = True
    return process_glyph_mask(mask, letter, style, variant)


class FakeGlyphProvider:
    """Provider serving glyphs from a dict, raising for unknown letters.

    Attributes:
        glyphs: letter -> ProcessedGlyph (style is ignored).
        calls: Number of times the provider was invoked.
    """

    def __init__(self, glyphs):
        self.glyphs = dict(glyphs)
        self.calls = 0

    def __call__(self, letter, style, variant='standard'):
        self.calls += 1
        if letter.isspace():
            return create_space_glyph(style)
        glyph = self.glyphs.get(letter)
        if glyph is None:
            raise GlyphUnavailable(letter, style, 'not in test font')
        return glyph


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def rules():
    """Rule set with the default 0.04 to 0.12 bounds and nothing else.

    Returns:
        RuleSet: No letter rules, exceptions or rotations.
    """
    return RuleSet(default=OverlapRule(0.04, 0.12))


@pytest.fixture
def block_glyph():
    """Factory fixture returning ``make_block_glyph``."""
    return make_block_glyph


@pytest.fixture
def space_glyph():
    """Empty glyph used for whitespace."""
    return create_space_glyph('straight')


@pytest.fixture
def glyph_factory():
    """Provider for 'a', 'b', 'c' whose ink never collides.

    Every letter is inked only in columns 150 to 199, so the second
    glyph's leading columns are always empty and every pair resolves to
    its search ceiling.
    """
    glyphs = {ch: make_block_glyph(ch, cols=(150, CANVAS)) for ch in 'abc'}
    return FakeGlyphProvider(glyphs)


@pytest.fixture
def colliding_factory():
    """Provider for 'a', 'b', 'c' whose ink always collides.

    Every letter fills columns 0 to 100 at full height, so every
    candidate overlap collides and pairs resolve to the floor.
    """
    glyphs = {ch: make_block_glyph(ch, cols=(0, 101)) for ch in 'abc'}
    return FakeGlyphProvider(glyphs)


@pytest.fixture
def flask_client(rules, glyph_factory, tmp_path):
    """Flask test client backed by an injected OverlapService.

    The service uses the non-colliding fake provider and an empty
    registry; the tables directory points at a temporary path.

    Yields:
        tuple: (client, service)
    """
    import overlap_flask
    import overlap_routes  # noqa: F401 - registers routes
    from overlap_lib.api import OverlapService

    service = OverlapService(rules, rasterizer=glyph_factory)
    overlap_flask.set_service(service)
    original_tables_dir = overlap_routes.TABLES_DIR
    overlap_routes.TABLES_DIR = str(tmp_path)

    overlap_flask.app.config['TESTING'] = True
    with overlap_flask.app.test_client() as client:
        yield client, service

    overlap_routes.TABLES_DIR = original_tables_dir
    overlap_flask.set_service(None)
