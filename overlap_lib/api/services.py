"""Service layer for overlap queries and authoring.

``OverlapService`` wires the registry, rules, glyph cache and accessor
together and exposes the two APIs the rest of the application uses:

Query API (text compositor):
    get_overlap, get_rotation, is_table_available, get_table_stats

Authoring API (rule-editing tools):
    resolve_pair (live preview), build_table (regeneration),
    validate_table (consistency check), update_rules

All methods return plain values or dictionaries suitable for JSON.

Example usage::

    from overlap_lib.api import OverlapService
    from overlap_lib.config import default_rule_set
    from overlap_lib.utils.rendering import FontGlyphRasterizer

    service = OverlapService(
        rules=default_rule_set(),
        rasterizer=FontGlyphRasterizer({'straight': 'fonts/straight.ttf'}),
    )
    service.registry.load_directory('tables/')

    service.get_overlap('a', 'b', 'straight')
    preview = service.resolve_pair('a', 'v', 'straight')
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..analysis.resolver import collision_scores, resolve_overlap, resolve_rotation, search_bounds
from ..cache.glyph_cache import CachedGlyphProvider, GlyphCache
from ..config import DEFAULT_ALPHABET, DEFAULT_STYLE, GLYPH_CACHE_CAPACITY
from ..domain.glyph import GlyphVariant
from ..domain.rules import RuleSet, normalize_letter
from ..domain.table import OverlapTable
from ..errors import Diagnostics, GlyphUnavailable
from ..lookup.accessor import AccessorConfig, RuntimeAccessor
from ..lookup.builder import TableBuildJob, build_table
from ..lookup.registry import TableRegistry
from ..lookup.serialization import save_table
from ..lookup.validation import validate

_logger = logging.getLogger(__name__)


class OverlapService:
    """Facade over the overlap engine.

    Attributes:
        rules: Current rule snapshot.
        registry: Loaded tables.
        cache: Glyph cache shared by live resolution and builds.
        provider: Cached glyph provider, or None without a rasterizer.
        accessor: RuntimeAccessor answering queries.
        diagnostics: Absorbed failures.
    """

    def __init__(self, rules: RuleSet, rasterizer=None,
                 registry: Optional[TableRegistry] = None,
                 config: Optional[AccessorConfig] = None,
                 cache_capacity: int = GLYPH_CACHE_CAPACITY,
                 diagnostics: Optional[Diagnostics] = None):
        self.diagnostics = diagnostics or Diagnostics()
        self.rules = rules
        self.registry = registry or TableRegistry(diagnostics=self.diagnostics)
        self.cache = GlyphCache(cache_capacity)
        self.provider = CachedGlyphProvider(rasterizer, self.cache) if rasterizer else None
        self.accessor = RuntimeAccessor(self.registry, rules, self.provider,
                                        config=config, diagnostics=self.diagnostics)

    # --- query API ---

    def get_overlap(self, first: str, second: str, style: str = DEFAULT_STYLE,
                    fallback: Optional[float] = None) -> float:
        return self.accessor.get_overlap(first, second, style, fallback)

    def get_rotation(self, letter: str, previous: str, style: str = DEFAULT_STYLE) -> float:
        return self.accessor.get_rotation(letter, previous, style)

    def is_table_available(self, style: str) -> bool:
        return self.accessor.is_table_available(style)

    def get_table_stats(self, style: str) -> Optional[dict]:
        return self.accessor.get_table_stats(style)

    # --- authoring API ---

    def update_rules(self, rules: RuleSet) -> None:
        """Publish edited rules to live resolution."""
        self.rules = rules
        self.accessor.update_rules(rules)

    def resolve_pair(self, first: str, second: str, style: str = DEFAULT_STYLE,
                     rules: Optional[RuleSet] = None,
                     variant=GlyphVariant.STANDARD) -> Dict[str, Any]:
        """Resolve one pair live, for a rule editor preview.

        Args:
            first: Left letter.
            second: Right letter.
            style: Style to rasterize.
            rules: Rules to preview; defaults to the current snapshot.
            variant: Glyph variant.

        Returns:
            Dictionary with 'overlap', 'bounds' (search floor and ceiling),
            'special_case', 'rotation', per-column 'collision' scores at the
            chosen overlap, and the table value if one exists. Contains
            'error' instead when a glyph cannot be produced.
        """
        rules = rules or self.rules
        if self.provider is None:
            return {'error': 'No rasterizer configured'}
        try:
            glyph_a = self.provider(first, style, variant)
            glyph_b = self.provider(second, style, variant)
        except GlyphUnavailable as e:
            _logger.warning("Preview of %r%r failed: %s", first, second, e)
            return {'error': str(e)}

        overlap = resolve_overlap(glyph_a, glyph_b, rules)
        lo, hi = search_bounds(first, second, rules)
        rotation = resolve_rotation(first, second, rules)
        table = self.registry.get(style)
        return {
            'pair': first + second,
            'style': style,
            'overlap': overlap,
            'bounds': [lo, hi],
            'special_case': rules.special_case(first, second),
            'rotation': {'first': rotation.first, 'second': rotation.second},
            'collision': [round(float(s), 4)
                          for s in collision_scores(glyph_a, glyph_b, overlap)],
            'table_value': table.get(first, second) if table else None,
        }

    def build_table(self, style: str = DEFAULT_STYLE, alphabet: str = DEFAULT_ALPHABET,
                    variant=GlyphVariant.STANDARD, register: bool = True,
                    save_to=None, progress=None) -> OverlapTable:
        """Regenerate the table for ``style`` with the current rules.

        Raises:
            RuntimeError: If no rasterizer is configured.
        """
        if self.provider is None:
            raise RuntimeError("Building a table requires a rasterizer")
        table = build_table(alphabet, style, self.rules, self.provider,
                            variant=variant, progress=progress,
                            diagnostics=self.diagnostics)
        if register:
            self.registry.register(table)
        if save_to is not None:
            save_table(table, save_to)
        return table

    def start_build_job(self, style: str = DEFAULT_STYLE, alphabet: str = DEFAULT_ALPHABET,
                        variant=GlyphVariant.STANDARD, register: bool = True) -> TableBuildJob:
        """Start a background build; the table is registered when it completes."""
        if self.provider is None:
            raise RuntimeError("Building a table requires a rasterizer")
        on_complete = self.registry.register if register else None
        job = TableBuildJob(alphabet, style, self.rules, self.provider,
                            variant=variant, diagnostics=self.diagnostics,
                            on_complete=on_complete)
        job.start()
        return job

    def validate_table(self, style: str = DEFAULT_STYLE,
                       rules: Optional[RuleSet] = None) -> Dict[str, Any]:
        """Validate the registered table for ``style`` against the rules.

        Raises:
            TableNotFound: If no table is registered for the style.
        """
        table = self.registry.require(style)
        return validate(table, rules or self.rules).to_dict()

    def glyph_info(self, letter: str, style: str = DEFAULT_STYLE) -> Optional[dict]:
        if self.provider is None:
            return None
        try:
            return self.provider(normalize_letter(letter), style).to_dict()
        except GlyphUnavailable:
            return None

    def stats(self) -> Dict[str, Any]:
        return {
            'accessor': self.accessor.stats(),
            'cache': self.cache.stats(),
            'diagnostics': len(self.diagnostics),
        }

