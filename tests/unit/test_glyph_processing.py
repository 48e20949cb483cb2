"""Unit tests for glyph processing.

Tests the functions in overlap_lib.analysis.glyphs:
    - get_mask_bounds: Tight bounding box of a mask
    - compute_column_profile: Per-column ink span and density
    - process_glyph_mask: ProcessedGlyph construction
    - create_space_glyph: Empty whitespace glyph
"""

import unittest

import numpy as np

from overlap_lib.analysis.glyphs import (
    compute_column_profile,
    create_space_glyph,
    get_mask_bounds,
    process_glyph_mask,
)
from overlap_lib.config import SPACE_GLYPH_WIDTH
from overlap_lib.domain.glyph import ColumnRange, GlyphBounds, GlyphVariant


class TestGetMaskBounds(unittest.TestCase):
    """Tests for get_mask_bounds function."""

    def test_empty_mask_returns_none(self):
        self.assertIsNone(get_mask_bounds(np.zeros((10, 10), dtype=bool)))

    def test_rectangle_bounds_are_inclusive(self):
        mask = np.zeros((100, 100), dtype=bool)
        mask[20:80, 30:70] = True
        self.assertEqual(get_mask_bounds(mask), GlyphBounds(left=30, right=69, top=20, bottom=79))

    def test_single_pixel(self):
        mask = np.zeros((5, 5), dtype=bool)
        mask[2, 3] = True
        bounds = get_mask_bounds(mask)
        self.assertEqual((bounds.width, bounds.height), (1, 1))


class TestComputeColumnProfile(unittest.TestCase):
    """Tests for compute_column_profile function."""

    def test_one_range_per_column(self):
        mask = np.zeros((20, 30), dtype=bool)
        self.assertEqual(len(compute_column_profile(mask)), 30)

    def test_empty_column_has_zero_density(self):
        mask = np.zeros((20, 5), dtype=bool)
        profile = compute_column_profile(mask)
        self.assertEqual(profile[0], ColumnRange(top=0, bottom=19, density=0.0))
        self.assertFalse(profile[0].has_ink)

    def test_solid_column(self):
        mask = np.zeros((20, 5), dtype=bool)
        mask[4:10, 2] = True
        col = compute_column_profile(mask)[2]
        self.assertEqual((col.top, col.bottom), (4, 9))
        self.assertEqual(col.density, 1.0)

    def test_density_counts_gaps_inside_span(self):
        """Two strokes with a gap: density is ink rows over span rows."""
        mask = np.zeros((20, 1), dtype=bool)
        mask[0:5, 0] = True
        mask[15:20, 0] = True
        col = compute_column_profile(mask)[0]
        self.assertEqual((col.top, col.bottom), (0, 19))
        self.assertAlmostEqual(col.density, 10 / 20)

    def test_sampling_step_keeps_width(self):
        mask = np.zeros((20, 31), dtype=bool)
        mask[:, 10:20] = True
        profile = compute_column_profile(mask, sampling_step=4)
        self.assertEqual(len(profile), 31)
        self.assertTrue(profile[12].has_ink)

    def test_invalid_sampling_step(self):
        with self.assertRaises(ValueError):
            compute_column_profile(np.zeros((4, 4), dtype=bool), sampling_step=0)


class TestProcessGlyphMask(unittest.TestCase):
    """Tests for process_glyph_mask function."""

    def setUp(self):
        self.mask = np.zeros((200, 200), dtype=bool)
        self.mask[40:160, 20:120] = True

    def test_fields(self):
        glyph = process_glyph_mask(self.mask, 'a', 'straight')
        self.assertEqual(glyph.letter, 'a')
        self.assertEqual(glyph.style, 'straight')
        self.assertIs(glyph.variant, GlyphVariant.STANDARD)
        self.assertEqual((glyph.width, glyph.height), (200, 200))
        self.assertEqual(glyph.bounds, GlyphBounds(20, 119, 40, 159))
        self.assertFalse(glyph.is_empty)

    def test_variant_accepts_string(self):
        glyph = process_glyph_mask(self.mask, 'a', 'straight', variant='first')
        self.assertIs(glyph.variant, GlyphVariant.FIRST)
        self.assertEqual(glyph.key, ('a', 'straight', 'first'))

    def test_occupancy_is_a_read_only_copy(self):
        glyph = process_glyph_mask(self.mask, 'a', 'straight')
        self.mask[:] = False
        self.assertTrue(glyph.occupancy[50, 50])
        with self.assertRaises(ValueError):
            glyph.occupancy[0, 0] = True

    def test_density_array_matches_profile(self):
        glyph = process_glyph_mask(self.mask, 'a', 'straight')
        self.assertEqual(glyph.densities.shape, (200,))
        self.assertEqual(glyph.densities[50], 1.0)
        self.assertEqual(glyph.densities[150], 0.0)
        self.assertEqual(glyph.column_tops[50], 40)
        self.assertEqual(glyph.column_bottoms[50], 159)

    def test_rejects_non_2d_mask(self):
        with self.assertRaises(ValueError):
            process_glyph_mask(np.zeros((2, 2, 2), dtype=bool), 'a', 'straight')

    def test_to_dict_has_no_pixels(self):
        data = process_glyph_mask(self.mask, 'a', 'straight').to_dict()
        self.assertEqual(data['ink_columns'], 100)
        self.assertNotIn('occupancy', data)


class TestCreateSpaceGlyph(unittest.TestCase):
    """Tests for create_space_glyph function."""

    def test_space_is_empty(self):
        glyph = create_space_glyph('straight')
        self.assertTrue(glyph.is_empty)
        self.assertIsNone(glyph.bounds)
        self.assertEqual(glyph.width, SPACE_GLYPH_WIDTH)
        self.assertEqual(glyph.letter, ' ')


if __name__ == '__main__':
    unittest.main()
