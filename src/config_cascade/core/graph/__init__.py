"""
Grafo de dependências do Config Cascade.

Componentes:
    - builder  → GraphBuilder (adjacências direta e reversa)
    - resolver → AffectedSetResolver (BFS + rank de profundidade)
    - cycles   → detecção explícita de ciclos (SCC via networkx)
    - tree     → árvore textual de dependentes
"""

from .builder import DependencyGraph, build_graph
from .cycles import cyclic_components, find_new_cycle, has_cycle
from .resolver import AffectedSet, collect_affected, compute_depths, resolve_affected
from .tree import render_dependency_tree

__all__ = [
    "DependencyGraph",
    "build_graph",
    "AffectedSet",
    "collect_affected",
    "compute_depths",
    "resolve_affected",
    "cyclic_components",
    "find_new_cycle",
    "has_cycle",
    "render_dependency_tree",
]
