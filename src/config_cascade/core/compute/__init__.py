"""
Computação de dados do Config Cascade.

Componentes:
    - computer  → DataComputer (nós ordinários e grouping)
    - hierarchy → HierarchyAggregator (containers, ordem de níveis)
    - changes   → ChangeDetector (comparação insensível a ordem)
    - dedup     → Deduplicator (pandas)
"""

from .changes import changed_fields, has_changed, normalize
from .computer import NO_CHANGE, compute_node
from .dedup import DedupResult, deduplicate, populated_key_count
from .hierarchy import aggregate_container, build_container_structure, hierarchy_levels, recompute

__all__ = [
    "NO_CHANGE",
    "compute_node",
    "aggregate_container",
    "build_container_structure",
    "hierarchy_levels",
    "recompute",
    "normalize",
    "has_changed",
    "changed_fields",
    "DedupResult",
    "deduplicate",
    "populated_key_count",
]
