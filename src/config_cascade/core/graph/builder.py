# src/config_cascade/core/graph/builder.py
"""
GraphBuilder: adjacências do grafo de dependências.

A partir do conjunto plano de nós, constrói:
    - parent_to_children: id do nó → seus `deps` (de quem ele herda)
    - child_to_parents:   id da dependência → ids dos nós que a listam
                          ("quem depende de mim")

A nomenclatura segue o registro persistido: o nó é o "pai" que agrega
as suas dependências ("filhos"). A propagação de uma mudança caminha de
uma dependência para os seus pais, via `child_to_parents`.

Decisões arquiteturais:
    - Construção pura, O(N · média de deps)
    - `deps` ausente ou nulo é tratado como vazio
    - Ordem determinística: a ordem de varredura dos nós é preservada
    - Dependências repetidas num mesmo nó geram uma única aresta

Limites explícitos:
    - Não valida existência de dependências
    - Não detecta ciclos (responsabilidade de `cycles`)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Tuple, Union

import networkx as nx

from config_cascade.core.nodes.types import ConfigNode

NodeLike = Union[ConfigNode, Mapping[str, Any]]


def _id_and_deps(node: NodeLike) -> Tuple[str, Tuple[str, ...]]:
    if isinstance(node, ConfigNode):
        return node.id, node.deps
    deps = node.get("deps") or ()
    return node["id"], tuple(deps)


@dataclass(frozen=True)
class DependencyGraph:
    """Adjacências imutáveis do grafo de dependências."""

    child_to_parents: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    parent_to_children: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    def dependents_of(self, node_id: str) -> Tuple[str, ...]:
        """Nós que listam `node_id` em `deps`."""
        return self.child_to_parents.get(node_id, ())

    def deps_of(self, node_id: str) -> Tuple[str, ...]:
        return self.parent_to_children.get(node_id, ())

    @property
    def node_ids(self) -> Tuple[str, ...]:
        return tuple(self.parent_to_children)

    def to_networkx(self) -> "nx.DiGraph":
        """DiGraph com arestas dependência → dependente (sentido da propagação)."""
        g = nx.DiGraph()
        g.add_nodes_from(self.parent_to_children)
        for node_id, deps in self.parent_to_children.items():
            for dep in deps:
                g.add_edge(dep, node_id)
        return g


def build_graph(nodes: Iterable[NodeLike]) -> DependencyGraph:
    """Constrói as adjacências direta e reversa a partir dos nós."""
    child_to_parents: Dict[str, List[str]] = {}
    parent_to_children: Dict[str, Tuple[str, ...]] = {}

    for node in nodes:
        node_id, deps = _id_and_deps(node)
        unique = tuple(dict.fromkeys(deps))
        parent_to_children[node_id] = unique
        for dep in unique:
            child_to_parents.setdefault(dep, []).append(node_id)

    return DependencyGraph(
        child_to_parents={k: tuple(v) for k, v in child_to_parents.items()},
        parent_to_children=parent_to_children,
    )
