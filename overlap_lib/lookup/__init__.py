"""Precomputed overlap tables and runtime access.

Building:
    build_table: Resolve every alphabet pair into an OverlapTable.
    iter_build_table: Generator variant yielding BuildProgress frames.
    TableBuildJob: Background-thread build with cancellation.
    CancellationToken: Flag checked between pairs.

Storage:
    save_table / load_table: JSON files.
    dumps_table / loads_table: JSON strings.
    compute_checksum / verify_table: Integrity checks.
    TableRegistry: Copy-on-write style -> table mapping.

Runtime:
    RuntimeAccessor: get_overlap / get_rotation / table stats.
    AccessorConfig, AccessorMode: Strategy selection.

Validation:
    validate: Compare special-case overrides with a table.

Example usage::

    from overlap_lib.lookup import build_table, save_table, validate

    table = build_table('abc', 'straight', rules, provider)
    save_table(table, 'tables/straight.json')
    report = validate(table, rules)
"""

from .accessor import (
    AccessorConfig,
    AccessorMode,
    OverlapStrategy,
    ResolverBackedStrategy,
    RuntimeAccessor,
    TableBackedStrategy,
)
from .builder import (
    BuildProgress,
    CancellationToken,
    TableBuildJob,
    build_table,
    iter_build_table,
)
from .registry import TableRegistry
from .serialization import (
    compute_checksum,
    dumps_table,
    load_table,
    loads_table,
    save_table,
    table_from_dict,
    table_to_dict,
    verify_table,
)
from .validation import Conflict, ValidationReport, validate

__all__ = [
    'build_table', 'iter_build_table', 'TableBuildJob', 'BuildProgress', 'CancellationToken',
    'save_table', 'load_table', 'dumps_table', 'loads_table', 'table_to_dict', 'table_from_dict',
    'compute_checksum', 'verify_table', 'TableRegistry',
    'RuntimeAccessor', 'AccessorConfig', 'AccessorMode',
    'OverlapStrategy', 'TableBackedStrategy', 'ResolverBackedStrategy',
    'validate', 'ValidationReport', 'Conflict',
]
