"""API layer for the overlap engine.

Exports:
    OverlapService: Query and authoring operations over one rule set,
        one table registry and one glyph cache.

Example usage::

    from overlap_lib.api import OverlapService

    service = OverlapService(rules)
    service.registry.load_directory('tables/')
    print(service.get_overlap('r', 'c', 'straight'))
"""

from .services import OverlapService

__all__ = ['OverlapService']
