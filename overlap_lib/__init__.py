"""Letter Overlap Engine.

Computes how far adjacent graffiti letters may overlap so their strokes
interlock without colliding. The package derives per-column ink profiles
from rasterized glyphs, searches for the tightest non-colliding overlap
for each letter pair, precomputes the results into per-style lookup
tables, and serves them at render time with a live-resolution fallback.

Architecture Overview:
    - domain: ProcessedGlyph, RuleSet, OverlapTable value objects
    - analysis: mask -> column profile, and the overlap resolver
    - cache: LRU glyph cache shared by every rasterizing caller
    - lookup: table builder, serialization, registry, runtime accessor,
      validation against hand-authored overrides
    - utils: Pillow font rasterizer producing glyph masks
    - api: OverlapService facade for the compositor and editing tools

Example usage:
    Resolving one pair::

        from overlap_lib import process_glyph_mask, resolve_overlap
        from overlap_lib.config import default_rule_set

        a = process_glyph_mask(mask_a, 'a', 'straight')
        b = process_glyph_mask(mask_b, 'b', 'straight')
        fraction = resolve_overlap(a, b, default_rule_set())

    Serving a prebuilt table::

        from overlap_lib import OverlapService

        service = OverlapService(default_rule_set())
        service.registry.load_directory('tables/')
        service.get_overlap('a', 'b', 'straight')

Attributes:
    __version__ (str): Package version string.
    __all__ (list): List of public symbols exported by this package.
"""

from .analysis import process_glyph_mask, resolve_overlap, resolve_rotation
from .api import OverlapService
from .cache import GlyphCache
from .domain import GlyphVariant, OverlapRule, OverlapTable, ProcessedGlyph, RuleSet
from .errors import GlyphUnavailable, InvalidGlyph, StaleTable, TableNotFound
from .lookup import RuntimeAccessor, TableRegistry, build_table, validate

__all__ = [
    # Domain objects
    'ProcessedGlyph', 'GlyphVariant', 'OverlapRule', 'RuleSet', 'OverlapTable',
    # Analysis
    'process_glyph_mask', 'resolve_overlap', 'resolve_rotation',
    # Tables and runtime
    'build_table', 'validate', 'TableRegistry', 'RuntimeAccessor', 'GlyphCache',
    # Services
    'OverlapService',
    # Errors
    'InvalidGlyph', 'GlyphUnavailable', 'TableNotFound', 'StaleTable',
]

__version__ = '1.0.0'
