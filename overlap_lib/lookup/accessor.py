"""Runtime accessor: the production entry point for overlap values.

The compositor asks for one overlap per adjacent letter pair on every
render, so the common path is a dictionary lookup in a prebuilt table.
Two strategies sit behind one interface:

    TableBackedStrategy: O(1) lookup in the table registered for a style.
    ResolverBackedStrategy: Live pixel analysis through the glyph cache and
        the resolver, memoized in an in-memory overlay.

``AccessorConfig.mode`` selects which strategy answers first:

    lookup: table first; on a miss, the resolver only if
        ``enable_fallback`` is set, else the fallback value.
    runtime: always the resolver (development, live rule editing).

Missing data never raises. It degrades to the fallback value and is
recorded on the diagnostics side-channel, once per style for a missing
table and once per pair for a missing entry.

Example usage::

    from overlap_lib.lookup import AccessorConfig, RuntimeAccessor, TableRegistry

    registry = TableRegistry()
    registry.load_directory('tables/')
    accessor = RuntimeAccessor(registry, rules, glyph_provider,
                               AccessorConfig(enable_fallback=True))

    accessor.get_overlap('a', 'b', 'straight')    # table hit
    accessor.get_overlap('a', 'b', 'unknown')     # resolver, then overlay
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from ..analysis.resolver import estimate_overlap, resolve_overlap, resolve_rotation
from ..config import DEFAULT_STYLE, FALLBACK_ROTATION
from ..domain.glyph import GlyphVariant
from ..domain.rules import RuleSet, normalize_letter
from ..errors import Diagnostics, GlyphUnavailable, OverlapError
from .registry import TableRegistry

logger = logging.getLogger(__name__)


class AccessorMode(Enum):
    LOOKUP = 'lookup'
    RUNTIME = 'runtime'


@dataclass(frozen=True)
class AccessorConfig:
    """Runtime accessor settings.

    Attributes:
        mode: Which strategy answers first.
        enable_fallback: In lookup mode, resolve live when the table misses.
        fallback_overlap: Value for pairs nothing can answer. None means the
            rule set's default maximum.
        cache_results: Keep live results in the overlay.
        variant: Glyph variant rasterized by the resolver strategy.
    """
    mode: AccessorMode = AccessorMode.LOOKUP
    enable_fallback: bool = False
    fallback_overlap: Optional[float] = None
    cache_results: bool = True
    variant: GlyphVariant = GlyphVariant.STANDARD


class OverlapStrategy(ABC):
    """Source of overlap values for letter pairs."""

    name = 'base'

    @abstractmethod
    def lookup(self, first: str, second: str, style: str) -> Optional[float]:
        """Return the overlap for the pair, or None if unknown."""


class TableBackedStrategy(OverlapStrategy):
    """Answer from the table registered for the style."""

    name = 'table'

    def __init__(self, registry: TableRegistry):
        self.registry = registry

    def lookup(self, first: str, second: str, style: str) -> Optional[float]:
        table = self.registry.get(style)
        if table is None:
            return None
        return table.get(first, second)


class ResolverBackedStrategy(OverlapStrategy):
    """Answer by running the resolver on cached glyphs.

    Results are kept in an overlay keyed by (style, first, second) so a
    pair is resolved once per rule snapshot. When a glyph cannot be
    produced the rule-only estimate is used instead.
    """

    name = 'resolver'

    def __init__(self, glyph_provider, rules: RuleSet,
                 variant=GlyphVariant.STANDARD, cache_results: bool = True,
                 diagnostics: Optional[Diagnostics] = None):
        self.glyph_provider = glyph_provider
        self.rules = rules
        self.variant = GlyphVariant.parse(variant)
        self.cache_results = cache_results
        self.diagnostics = diagnostics
        self._overlay: Dict[Tuple[str, str, str], float] = {}
        self._lock = threading.Lock()

    def set_rules(self, rules: RuleSet) -> None:
        """Swap the rule snapshot and drop results computed under the old one."""
        with self._lock:
            self.rules = rules
            self._overlay = {}

    def clear(self) -> None:
        with self._lock:
            self._overlay = {}

    @property
    def overlay_size(self) -> int:
        return len(self._overlay)

    def lookup(self, first: str, second: str, style: str) -> Optional[float]:
        # Tables are built from lower-case glyphs, live results must match
        first, second = normalize_letter(first), normalize_letter(second)
        key = (style, first, second)
        cached = self._overlay.get(key)
        if cached is not None:
            return cached

        rules = self.rules
        try:
            glyph_a = self.glyph_provider(first, style, self.variant)
            glyph_b = self.glyph_provider(second, style, self.variant)
            value = resolve_overlap(glyph_a, glyph_b, rules)
        except GlyphUnavailable as e:
            self._report('glyph_unavailable', str(e), first, second, style)
            value = estimate_overlap(first, second, rules)
        except OverlapError as e:
            self._report('resolver_error', str(e), first, second, style)
            return None

        if self.cache_results:
            with self._lock:
                if self.rules is rules:
                    self._overlay[key] = value
        return value

    def _report(self, kind: str, message: str, first: str, second: str, style: str) -> None:
        if self.diagnostics is not None:
            self.diagnostics.record(kind, message, pair=first + second, style=style)
        else:
            logger.warning("%s for %r%r (%s): %s", kind, first, second, style, message)


class RuntimeAccessor:
    """Query API consumed by the text compositor.

    Args:
        registry: Tables by style.
        rules: Current rule snapshot.
        glyph_provider: Needed for runtime mode and live fallback. Without
            one the accessor is table-only.
        config: AccessorConfig.
        diagnostics: Side-channel for absorbed failures.
    """

    def __init__(self, registry: TableRegistry, rules: RuleSet, glyph_provider=None,
                 config: Optional[AccessorConfig] = None,
                 diagnostics: Optional[Diagnostics] = None):
        self.registry = registry
        self.config = config or AccessorConfig()
        self.diagnostics = diagnostics
        self._rules = rules
        self._reported = set()
        self._reported_lock = threading.Lock()
        self.table_strategy = TableBackedStrategy(registry)
        self.resolver_strategy: Optional[ResolverBackedStrategy] = None
        if glyph_provider is not None:
            self.resolver_strategy = ResolverBackedStrategy(
                glyph_provider, rules,
                variant=self.config.variant,
                cache_results=self.config.cache_results,
                diagnostics=diagnostics,
            )

    @property
    def rules(self) -> RuleSet:
        return self._rules

    def update_rules(self, rules: RuleSet) -> None:
        """Publish a new rule snapshot (drops the live overlay)."""
        self._rules = rules
        with self._reported_lock:
            self._reported = set()
        if self.resolver_strategy is not None:
            self.resolver_strategy.set_rules(rules)

    def _fallback_value(self, fallback: Optional[float]) -> float:
        if fallback is not None:
            return fallback
        if self.config.fallback_overlap is not None:
            return self.config.fallback_overlap
        return self._rules.default.max_overlap

    def get_overlap(self, first: str, second: str, style: str = DEFAULT_STYLE,
                    fallback: Optional[float] = None) -> float:
        """Overlap fraction for an adjacent pair.

        Whitespace on either side gives 0. Otherwise the configured
        strategies are tried in order and ``fallback`` (or the configured
        default) is returned when none answers. Never raises for missing
        tables, entries or glyphs.
        """
        if first.isspace() or second.isspace():
            return 0.0

        if self.config.mode is AccessorMode.RUNTIME:
            strategies = [self.resolver_strategy]
        elif self.config.enable_fallback:
            strategies = [self.table_strategy, self.resolver_strategy]
        else:
            strategies = [self.table_strategy]

        for strategy in strategies:
            if strategy is None:
                continue
            value = strategy.lookup(first, second, style)
            if value is not None:
                return value

        value = self._fallback_value(fallback)
        self._report_fallback(first, second, style, value)
        return value

    def _report_fallback(self, first: str, second: str, style: str, value: float) -> None:
        """Record a fallback once per (kind, style, pair)."""
        if self.registry.has(style):
            kind = 'missing_entry'
            details = {'style': style,
                       'pair': normalize_letter(first) + normalize_letter(second)}
            message = f"No table entry for {details['pair']!r} in {style}; using {value:.3f}"
        else:
            kind = 'table_not_found'
            details = {'style': style}
            message = f"No overlap table registered for {style}; using {value:.3f}"

        key = (kind, style, details.get('pair'))
        with self._reported_lock:
            if key in self._reported:
                return
            self._reported.add(key)

        if self.diagnostics is not None:
            self.diagnostics.record(kind, message, **details)
        else:
            logger.warning("%s: %s", kind, message)

    def get_rotation(self, letter: str, previous: str, style: str = DEFAULT_STYLE,
                     fallback: float = FALLBACK_ROTATION) -> float:
        """Rotation in degrees for ``letter`` when it follows ``previous``."""
        table = self.registry.get(style)
        if table is not None and self.config.mode is AccessorMode.LOOKUP:
            value = table.get_rotation(letter, previous)
            if value is not None:
                return value
        rule = self._rules.rotations.get(normalize_letter(letter))
        if rule is not None and normalize_letter(previous) in rule.after:
            return resolve_rotation(previous, letter, self._rules).second
        return fallback

    def is_table_available(self, style: str) -> bool:
        return self.registry.has(style)

    def get_table_stats(self, style: str) -> Optional[dict]:
        """Entry count and build time of the table for ``style``, or None."""
        table = self.registry.get(style)
        if table is None:
            return None
        return {'entry_count': table.entry_count,
                'generated_at': table.metadata.generated_at}

    def stats(self) -> dict:
        return {
            'mode': self.config.mode.value,
            'fallback_enabled': self.config.enable_fallback,
            'styles': self.registry.styles(),
            'overlay_size': (self.resolver_strategy.overlay_size
                             if self.resolver_strategy else 0),
        }
