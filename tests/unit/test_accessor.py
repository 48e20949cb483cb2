"""Unit tests for the table registry, runtime accessor and validation."""

import pytest

from conftest import FakeGlyphProvider, make_block_glyph
from overlap_lib.config import default_rule_set
from overlap_lib.domain.rules import OverlapRule, RotationRule, RuleSet
from overlap_lib.errors import Diagnostics, TableNotFound
from overlap_lib.lookup.accessor import (
    AccessorConfig,
    AccessorMode,
    ResolverBackedStrategy,
    RuntimeAccessor,
)
from overlap_lib.lookup.builder import build_table
from overlap_lib.lookup.registry import TableRegistry
from overlap_lib.lookup.serialization import save_table
from overlap_lib.lookup.validation import validate


@pytest.fixture
def table(rules, colliding_factory):
    """Complete 'abc' table where every pair resolved to 0.04."""
    return build_table('abc', 'straight', rules, colliding_factory)


@pytest.fixture
def registry(table):
    reg = TableRegistry()
    reg.register(table)
    return reg


# ---------------------------------------------------------------------------
# TestTableRegistry
# ---------------------------------------------------------------------------

class TestTableRegistry:

    def test_register_and_get(self, registry, table):
        assert registry.get('straight') is table
        assert 'straight' in registry
        assert registry.styles() == ['straight']
        assert len(registry) == 1

    def test_require_missing(self, registry):
        with pytest.raises(TableNotFound):
            registry.require('bubble')

    def test_register_replaces_snapshot(self, registry, rules, glyph_factory):
        before = registry._tables
        newer = build_table('ab', 'straight', rules, glyph_factory)
        registry.register(newer)
        assert registry.get('straight') is newer
        assert before['straight'] is not newer

    def test_unregister(self, registry, table):
        assert registry.unregister('straight') is table
        assert registry.unregister('straight') is None
        assert not registry.has('straight')

    def test_load_directory(self, tmp_path, table):
        save_table(table, tmp_path / 'straight.json')
        (tmp_path / 'broken.json').write_text('{oops', encoding='utf-8')
        (tmp_path / 'notes.txt').write_text('ignored', encoding='utf-8')

        diagnostics = Diagnostics()
        reg = TableRegistry(diagnostics=diagnostics)
        assert reg.load_directory(tmp_path) == 1
        assert reg.get('straight') == table
        assert len(diagnostics.events(kind='table_format')) == 1

    def test_load_missing_directory(self, tmp_path):
        assert TableRegistry().load_directory(tmp_path / 'nope') == 0


# ---------------------------------------------------------------------------
# TestRuntimeAccessor
# ---------------------------------------------------------------------------

class TestRuntimeAccessor:
    """Tests for RuntimeAccessor in lookup and runtime modes."""

    def test_table_hit(self, registry, rules):
        accessor = RuntimeAccessor(registry, rules)
        assert accessor.get_overlap('a', 'b', 'straight') == pytest.approx(0.04)

    def test_table_lookup_case_insensitive(self, registry, rules):
        accessor = RuntimeAccessor(registry, rules)
        assert accessor.get_overlap('A', 'B', 'straight') == pytest.approx(0.04)

    def test_unknown_style_returns_default_fallback(self, rules):
        accessor = RuntimeAccessor(TableRegistry(), rules)
        assert accessor.get_overlap('a', 'b', 'unknown') == 0.12

    def test_explicit_fallback_wins(self, rules):
        accessor = RuntimeAccessor(TableRegistry(), rules,
                                   config=AccessorConfig(fallback_overlap=0.2))
        assert accessor.get_overlap('a', 'b', 'unknown') == 0.2
        assert accessor.get_overlap('a', 'b', 'unknown', fallback=0.05) == 0.05

    def test_default_fallback_follows_rule_set(self):
        accessor = RuntimeAccessor(TableRegistry(), RuleSet(default=OverlapRule(0.02, 0.09)))
        assert accessor.get_overlap('a', 'b', 'unknown') == 0.09

    def test_unknown_style_recorded_once(self, rules):
        diagnostics = Diagnostics()
        accessor = RuntimeAccessor(TableRegistry(), rules, diagnostics=diagnostics)
        accessor.get_overlap('a', 'b', 'unknown')
        accessor.get_overlap('c', 'd', 'unknown')
        events = diagnostics.events(kind='table_not_found')
        assert len(diagnostics) == 1
        assert events[0]['details'] == {'style': 'unknown'}

    def test_missing_entry_recorded_per_pair(self, registry, rules):
        diagnostics = Diagnostics()
        accessor = RuntimeAccessor(registry, rules, diagnostics=diagnostics)
        accessor.get_overlap('a', 'z', 'straight')
        accessor.get_overlap('A', 'Z', 'straight')
        accessor.get_overlap('z', 'a', 'straight')
        events = diagnostics.events(kind='missing_entry')
        assert [e['details']['pair'] for e in events] == ['az', 'za']

    def test_table_hit_not_recorded(self, registry, rules):
        diagnostics = Diagnostics()
        accessor = RuntimeAccessor(registry, rules, diagnostics=diagnostics)
        accessor.get_overlap('a', 'b', 'straight')
        assert len(diagnostics) == 0

    def test_fallback_logged_without_diagnostics(self, rules, caplog):
        accessor = RuntimeAccessor(TableRegistry(), rules)
        with caplog.at_level('WARNING', logger='overlap_lib.lookup.accessor'):
            accessor.get_overlap('a', 'b', 'unknown')
        assert 'table_not_found' in caplog.text

    def test_update_rules_reports_again(self, rules):
        diagnostics = Diagnostics()
        accessor = RuntimeAccessor(TableRegistry(), rules, diagnostics=diagnostics)
        accessor.get_overlap('a', 'b', 'unknown')
        accessor.update_rules(rules)
        accessor.get_overlap('a', 'b', 'unknown')
        assert len(diagnostics) == 2

    def test_runtime_lookup_uses_lower_case_glyphs(self, rules):
        # 'A' is drawn differently from 'a' so the two would resolve apart
        provider = FakeGlyphProvider({
            'a': make_block_glyph('a', cols=(0, 101)),
            'A': make_block_glyph('A', cols=(150, 200)),
            'b': make_block_glyph('b', cols=(0, 101)),
        })
        accessor = RuntimeAccessor(TableRegistry(), rules, provider,
                                   AccessorConfig(mode=AccessorMode.RUNTIME))
        assert accessor.get_overlap('A', 'b', 'straight') == pytest.approx(0.04)
        assert accessor.get_overlap('a', 'b', 'straight') == pytest.approx(0.04)

        fresh = RuntimeAccessor(TableRegistry(), rules, provider,
                                AccessorConfig(mode=AccessorMode.RUNTIME))
        assert fresh.get_overlap('a', 'b', 'straight') == pytest.approx(0.04)
        assert fresh.get_overlap('A', 'B', 'straight') == pytest.approx(0.04)

    def test_missing_entry_returns_fallback(self, registry, rules):
        accessor = RuntimeAccessor(registry, rules)
        assert accessor.get_overlap('a', 'z', 'straight') == 0.12

    def test_whitespace_is_zero(self, registry, rules):
        accessor = RuntimeAccessor(registry, rules)
        assert accessor.get_overlap('a', ' ', 'straight') == 0.0
        assert accessor.get_overlap(' ', 'a', 'unknown') == 0.0

    def test_fallback_resolves_live_on_miss(self, rules, glyph_factory):
        accessor = RuntimeAccessor(TableRegistry(), rules, glyph_factory,
                                   AccessorConfig(enable_fallback=True))
        assert accessor.get_overlap('a', 'b', 'bubble') == pytest.approx(0.12)
        assert accessor.stats()['overlay_size'] == 1

    def test_overlay_memoizes(self, rules, glyph_factory):
        accessor = RuntimeAccessor(TableRegistry(), rules, glyph_factory,
                                   AccessorConfig(mode=AccessorMode.RUNTIME))
        accessor.get_overlap('a', 'b', 'straight')
        calls = glyph_factory.calls
        accessor.get_overlap('a', 'b', 'straight')
        assert glyph_factory.calls == calls

    def test_runtime_mode_ignores_table(self, registry, rules, glyph_factory):
        accessor = RuntimeAccessor(registry, rules, glyph_factory,
                                   AccessorConfig(mode=AccessorMode.RUNTIME))
        # the table says 0.04, the non-colliding glyphs resolve to 0.12
        assert accessor.get_overlap('a', 'b', 'straight') == pytest.approx(0.12)

    def test_update_rules_drops_overlay(self, rules, glyph_factory):
        accessor = RuntimeAccessor(TableRegistry(), rules, glyph_factory,
                                   AccessorConfig(mode=AccessorMode.RUNTIME))
        accessor.get_overlap('a', 'b', 'straight')
        accessor.update_rules(rules.with_special_case('a', 'b', 0.3))
        assert accessor.stats()['overlay_size'] == 0
        assert accessor.get_overlap('a', 'b', 'straight') == 0.3

    def test_unavailable_glyph_uses_rule_estimate(self, rules, glyph_factory):
        diagnostics = Diagnostics()
        accessor = RuntimeAccessor(TableRegistry(), rules.with_special_case('q', 'a', 0.07),
                                   glyph_factory, AccessorConfig(mode=AccessorMode.RUNTIME),
                                   diagnostics=diagnostics)
        assert accessor.get_overlap('q', 'a', 'straight') == 0.07
        assert accessor.get_overlap('a', 'q', 'straight') == 0.12
        assert len(diagnostics.events(kind='glyph_unavailable')) == 2

    def test_never_raises(self, rules):
        def exploding(letter, style, variant='standard'):
            return None  # resolver raises InvalidGlyph

        accessor = RuntimeAccessor(TableRegistry(), rules, exploding,
                                   AccessorConfig(mode=AccessorMode.RUNTIME),
                                   diagnostics=Diagnostics())
        assert accessor.get_overlap('a', 'b', 'straight') == 0.12

    def test_runtime_mode_without_provider_falls_back(self, registry, rules):
        accessor = RuntimeAccessor(registry, rules, config=AccessorConfig(mode=AccessorMode.RUNTIME))
        assert accessor.get_overlap('a', 'b', 'straight') == 0.12

    def test_table_stats(self, registry, rules, table):
        accessor = RuntimeAccessor(registry, rules)
        assert accessor.is_table_available('straight')
        assert not accessor.is_table_available('bubble')
        assert accessor.get_table_stats('straight') == {
            'entry_count': 9, 'generated_at': table.metadata.generated_at}
        assert accessor.get_table_stats('bubble') is None


class TestGetRotation:

    def test_from_rules_without_table(self):
        accessor = RuntimeAccessor(TableRegistry(), default_rule_set())
        assert accessor.get_rotation('a', 'v', 'straight') == 5.0
        assert accessor.get_rotation('a', 'b', 'straight') == 0.0

    def test_table_rotation_preferred(self, rules):
        provider = FakeGlyphProvider({ch: make_block_glyph(ch, cols=(150, 200)) for ch in 'av'})
        built_rules = rules.with_rotation('a', RotationRule(after={'v': 8}))
        registry = TableRegistry()
        registry.register(build_table('av', 'straight', built_rules, provider))
        accessor = RuntimeAccessor(registry, rules)
        assert accessor.get_rotation('a', 'v', 'straight') == 8.0

    def test_fallback(self, rules):
        accessor = RuntimeAccessor(TableRegistry(), rules)
        assert accessor.get_rotation('a', 'v', 'straight', fallback=1.5) == 1.5


class TestResolverBackedStrategy:

    def test_no_caching_when_disabled(self, rules, glyph_factory):
        strategy = ResolverBackedStrategy(glyph_factory, rules, cache_results=False)
        strategy.lookup('a', 'b', 'straight')
        assert strategy.overlay_size == 0


# ---------------------------------------------------------------------------
# TestValidate
# ---------------------------------------------------------------------------

class TestValidate:
    """Tests for validate."""

    def test_no_overrides_is_ok(self, table, rules):
        report = validate(table, rules)
        assert report.ok
        assert report.matches == 0

    def test_matching_override(self, rules, colliding_factory):
        edited = rules.with_special_case('a', 'b', 0.3)
        table = build_table('abc', 'straight', edited, colliding_factory)
        report = validate(table, edited)
        assert report.ok
        assert report.matches == 1

    def test_conflicting_override(self, table, rules):
        edited = rules.with_special_case('a', 'b', 0.3)
        report = validate(table, edited)
        assert not report.ok
        conflict = report.conflicts[0]
        assert (conflict.letter, conflict.target, conflict.expected) == ('a', 'b', 0.3)
        assert conflict.actual == pytest.approx(0.04)

    def test_missing_entry_is_conflict(self, table, rules):
        report = validate(table, rules.with_special_case('a', 'z', 0.1))
        assert report.conflicts[0].actual is None

    def test_within_tolerance(self, table, rules):
        report = validate(table, rules.with_special_case('a', 'b', 0.0405))
        assert report.ok

    def test_to_dict(self, table, rules):
        data = validate(table, rules.with_special_case('a', 'z', 0.1)).to_dict()
        assert data['ok'] is False
        assert data['conflicts'][0]['target'] == 'z'
