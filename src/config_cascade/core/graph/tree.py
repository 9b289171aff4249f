"""Visualização textual da árvore de dependentes de um nó."""

from __future__ import annotations

from typing import List, Set

from .builder import DependencyGraph


def render_dependency_tree(
    graph: DependencyGraph,
    root_id: str,
    *,
    max_children: int = 5,
    indent: str = "  ",
) -> List[str]:
    """Linhas da árvore de quem depende de `root_id`.

    A raiz sai sem prefixo; cada nível abaixo acrescenta `indent`, com `│`
    no lugar do primeiro caractere enquanto ainda houver irmãos por vir.
    Ids já visitados aparecem com `(circular reference)` e não são
    expandidos de novo; cada nível mostra no máximo `max_children` filhos.
    """
    lines: List[str] = []
    _walk(graph, root_id, "", indent, set(), lines, max_children)
    return lines


def _walk(
    graph: DependencyGraph,
    node_id: str,
    prefix: str,
    indent: str,
    visited: Set[str],
    lines: List[str],
    max_children: int,
) -> None:
    if node_id in visited:
        lines.append(f"{prefix}{node_id} (circular reference)")
        return

    visited.add(node_id)
    lines.append(f"{prefix}{node_id}")

    branch = "│" + indent[1:] if indent else indent
    dependents = graph.dependents_of(node_id)
    shown = dependents[:max_children]
    for i, child in enumerate(shown):
        is_last = i == len(shown) - 1
        _walk(graph, child, prefix + (indent if is_last else branch), indent, visited, lines, max_children)

    if len(dependents) > max_children:
        lines.append(f"{prefix}{indent}... and {len(dependents) - max_children} more")
