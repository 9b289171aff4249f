# src/config_cascade/core/graph/resolver.py
"""
AffectedSetResolver: conjunto afetado e ordem de atualização.

Dado um conjunto de ids alterados, este módulo calcula o fecho transitivo
de nós cujo dado efetivo pode mudar e atribui a cada um um rank de
profundidade que define a ordem de recomputação.

Algoritmo:
    1. BFS a partir dos ids alterados sobre `child_to_parents`
       ("quem depende de mim"), visitando cada id uma única vez
    2. Componentes fortemente conexas entre os afetados (networkx);
       cada componente cíclica vira uma unidade de recomputação
    3. Rank de profundidade por unidade:
           depth = 1 + max(depth das unidades de que depende, dentro do conjunto)
           depth = 0 quando não há dependências afetadas
       memoizado, com guarda de "em visita" que devolve 0 ao reentrar
    4. Ordem = afetados por depth crescente; empates preservam a ordem
       de descoberta do BFS; membros de um ciclo ficam contíguos, em
       ordem lexicográfica

Invariantes:
    - Para conjuntos acíclicos, nenhum nó aparece antes de uma dependência afetada
    - A mesma entrada sempre produz a mesma ordem
    - O cálculo termina para qualquer grafo (inclusive cíclico)

Limites explícitos:
    - Não recomputa dados
    - Não acessa o RecordStore
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

import networkx as nx

from .builder import DependencyGraph


@dataclass(frozen=True)
class AffectedSet:
    """Resultado da resolução: conjunto afetado, ranks e ordem de atualização."""

    seeds: Tuple[str, ...]
    affected: Tuple[str, ...]
    ordered: Tuple[str, ...]
    depths: Dict[str, int] = field(default_factory=dict)
    cycles: Tuple[Tuple[str, ...], ...] = ()
    unknown: Tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.affected)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.depths

    def cycle_of(self, node_id: str) -> Optional[Tuple[str, ...]]:
        """Membros do ciclo que contém `node_id` (None se acíclico)."""
        for members in self.cycles:
            if node_id in members:
                return members
        return None


def collect_affected(changed_ids: Iterable[str], graph: DependencyGraph) -> List[str]:
    """BFS sobre child_to_parents, em ordem de descoberta (sementes primeiro)."""
    seen: Set[str] = set()
    order: List[str] = []
    queue: deque = deque()

    for node_id in changed_ids:
        if node_id not in seen:
            seen.add(node_id)
            order.append(node_id)
            queue.append(node_id)

    while queue:
        current = queue.popleft()
        for parent in graph.dependents_of(current):
            if parent not in seen:
                seen.add(parent)
                order.append(parent)
                queue.append(parent)

    return order


def _components(graph: DependencyGraph, affected: Sequence[str]) -> Tuple[Dict[str, int], List[List[str]]]:
    """Agrupa os afetados em unidades (SCCs), indexadas pela ordem de descoberta."""
    members = set(affected)
    g = nx.DiGraph()
    g.add_nodes_from(affected)
    for node_id in affected:
        for dep in graph.deps_of(node_id):
            if dep in members:
                g.add_edge(dep, node_id)

    position = {node_id: i for i, node_id in enumerate(affected)}
    sccs = sorted(nx.strongly_connected_components(g), key=lambda c: min(position[n] for n in c))

    comp_of: Dict[str, int] = {}
    units: List[List[str]] = []
    for index, scc in enumerate(sccs):
        ordered = sorted(scc) if len(scc) > 1 else list(scc)
        units.append(ordered)
        for node_id in ordered:
            comp_of[node_id] = index
    return comp_of, units


def _unit_depths(unit_deps: Mapping[int, Set[int]]) -> Dict[int, int]:
    """Profundidade memoizada por unidade, iterativa, com guarda de reentrada."""
    depth: Dict[int, int] = {}
    visiting: Set[int] = set()

    for root in unit_deps:
        if root in depth:
            continue
        visiting.add(root)
        stack = [(root, iter(sorted(unit_deps[root])))]
        while stack:
            unit, pending = stack[-1]
            descended = False
            for dep in pending:
                if dep in depth or dep in visiting:
                    continue
                visiting.add(dep)
                stack.append((dep, iter(sorted(unit_deps[dep]))))
                descended = True
                break
            if descended:
                continue
            stack.pop()
            visiting.discard(unit)
            # unidade ainda em visita conta como profundidade 0
            depth[unit] = 1 + max((depth.get(d, 0) for d in unit_deps[unit]), default=-1)

    return depth


def compute_depths(affected: Sequence[str], graph: DependencyGraph) -> Dict[str, int]:
    """Rank de profundidade de cada id afetado."""
    comp_of, units = _components(graph, affected)
    return _depths_from_units(affected, graph, comp_of, units)


def _depths_from_units(
    affected: Sequence[str],
    graph: DependencyGraph,
    comp_of: Mapping[str, int],
    units: Sequence[Sequence[str]],
) -> Dict[str, int]:
    unit_deps: Dict[int, Set[int]] = {i: set() for i in range(len(units))}
    for node_id in affected:
        own = comp_of[node_id]
        for dep in graph.deps_of(node_id):
            other = comp_of.get(dep)
            if other is not None and other != own:
                unit_deps[own].add(other)

    unit_depth = _unit_depths(unit_deps)
    return {node_id: unit_depth[comp_of[node_id]] for node_id in affected}


def resolve_affected(
    changed_ids: Iterable[str],
    graph: DependencyGraph,
    nodes: Optional[Mapping[str, object]] = None,
) -> AffectedSet:
    """
    Resolve o conjunto afetado e a ordem de atualização.

    Args:
        changed_ids: ids alterados (sementes da cascata).
        graph: adjacências produzidas por `build_graph`.
        nodes: índice opcional id → nó. Quando fornecido, ids que não
            existem são percorridos (seus dependentes são afetados) mas
            ficam fora do conjunto e são reportados em `unknown`.

    Returns:
        AffectedSet com afetados, ranks, ordem e ciclos detectados.
    """
    seeds = tuple(dict.fromkeys(changed_ids))
    discovered = collect_affected(seeds, graph)

    unknown: Tuple[str, ...] = ()
    if nodes is not None:
        unknown = tuple(n for n in discovered if n not in nodes)
        discovered = [n for n in discovered if n in nodes]

    comp_of, units = _components(graph, discovered)
    depths = _depths_from_units(discovered, graph, comp_of, units)

    # empates: ordem de descoberta da unidade, membros contíguos
    ordered: List[str] = []
    for unit in sorted(range(len(units)), key=lambda i: depths[units[i][0]]):
        ordered.extend(units[unit])

    cycles = [tuple(u) for u in units if len(u) > 1]
    cycles.extend((n,) for n in discovered if n in graph.deps_of(n))

    return AffectedSet(
        seeds=seeds,
        affected=tuple(discovered),
        ordered=tuple(ordered),
        depths=depths,
        cycles=tuple(sorted(cycles)),
        unknown=unknown,
    )
