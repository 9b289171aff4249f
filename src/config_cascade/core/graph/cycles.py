# src/config_cascade/core/graph/cycles.py
"""
Análise explícita de ciclos no grafo de dependências.

Ciclos são tratados como defeito a prevenir, não como recurso:
    - na autoria, `find_new_cycle` rejeita alterações que criariam ciclo
    - na cascata, `cyclic_components` identifica componentes fortemente
      conexas, recomputadas como uma unidade e reportadas como warning

A detecção usa networkx (componentes fortemente conexas e find_cycle).

Invariantes:
    - Componentes reportadas têm membros ordenados lexicograficamente
    - A lista de componentes é ordenada pelo primeiro membro
    - Auto-dependência conta como ciclo de tamanho 1
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

import networkx as nx

from .builder import DependencyGraph


def _subgraph(graph: DependencyGraph, within: Optional[Iterable[str]]) -> "nx.DiGraph":
    g = graph.to_networkx()
    if within is None:
        return g
    return g.subgraph(set(within)).copy()


def cyclic_components(
    graph: DependencyGraph,
    within: Optional[Iterable[str]] = None,
) -> List[Tuple[str, ...]]:
    """Componentes fortemente conexas cíclicas (tamanho > 1 ou self-loop)."""
    g = _subgraph(graph, within)
    found: List[Tuple[str, ...]] = []
    for component in nx.strongly_connected_components(g):
        if len(component) > 1:
            found.append(tuple(sorted(component)))
            continue
        (only,) = tuple(component)
        if g.has_edge(only, only):
            found.append((only,))
    return sorted(found)


def has_cycle(graph: DependencyGraph) -> bool:
    return not nx.is_directed_acyclic_graph(graph.to_networkx())


def find_new_cycle(
    graph: DependencyGraph,
    node_id: str,
    deps: Sequence[str],
) -> Optional[List[str]]:
    """Verifica se atribuir `deps` a `node_id` criaria um ciclo.

    Returns:
        A sequência de ids do ciclo (começando em `node_id`) ou None.
    """
    if node_id in deps:
        return [node_id, node_id]

    # a nova aresta dep → node_id fecha um ciclo se node_id já alcança dep
    g = graph.to_networkx()
    if node_id not in g:
        return None
    for dep in deps:
        if dep in g and nx.has_path(g, node_id, dep):
            path = nx.shortest_path(g, node_id, dep)
            return list(path) + [node_id]
    return None
