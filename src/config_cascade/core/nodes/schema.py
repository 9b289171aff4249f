# src/config_cascade/core/nodes/schema.py
"""
Validação estrutural de nós por tipo.

Este módulo substitui a confiança em mapas chave-valor sem tipo por
regras explícitas por `NodeKind`, aplicadas:
    - na autoria (create/update) → violação levanta `NodeValidationError`
    - na cascata → `CascadeEngine` registra as violações como INVALID_NODE_DATA
      (não fatais; payloads não-objeto já são reportados pelo cálculo)

Regras comuns:
    - `id` é string não vazia
    - `deps` são strings não vazias, sem repetição e sem o próprio id
    - `self_data`, `override_data` e `data` são objetos
    - `tags` são strings
    - `version` é inteiro >= 1

Regras por tipo:
    - GROUPING: cada valor de `self_data` é um objeto (keyed por dependência)
    - CONTAINER: seções de `self_data` conhecidas são objetos
    - Dependências (quando o índice de nós é fornecido):
        - PROPERTY depende apenas de PROPERTY
        - FIELD depende de PROPERTY ou FIELD
        - GROUPING/LEAF_MISC não dependem de CONTAINER
        - CONTAINER só depende de containers de nível inferior
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional

from config_cascade.core.exceptions import NodeValidationError

from .types import ConfigNode, NodeKind

PAYLOAD_FIELDS = ("self_data", "override_data", "data")

CONTAINER_SECTIONS = frozenset(
    {"pages", "views", "spaces", "workspaces", "menus", "sections", "items", "fields", "sort_fields", "filter_fields"}
)

_ALLOWED_DEP_KINDS: Dict[NodeKind, frozenset] = {
    NodeKind.PROPERTY: frozenset({NodeKind.PROPERTY}),
    NodeKind.FIELD: frozenset({NodeKind.PROPERTY, NodeKind.FIELD}),
    NodeKind.GROUPING: frozenset({NodeKind.PROPERTY, NodeKind.FIELD, NodeKind.GROUPING, NodeKind.LEAF_MISC}),
    NodeKind.LEAF_MISC: frozenset({NodeKind.PROPERTY, NodeKind.FIELD, NodeKind.GROUPING, NodeKind.LEAF_MISC}),
}


def _expect(cond: bool, issues: List[str], message: str) -> None:
    if not cond:
        issues.append(message)


def node_issues(
    node: ConfigNode,
    *,
    index: Optional[Mapping[str, ConfigNode]] = None,
    payloads: bool = True,
) -> List[str]:
    """Lista as violações de schema do nó (lista vazia quando válido).

    Com `payloads=False` o tipo de `self_data`/`override_data`/`data` não é
    verificado.
    """
    issues: List[str] = []

    _expect(isinstance(node.id, str) and bool(node.id.strip()), issues, "id deve ser string não vazia")

    seen = set()
    for dep in node.deps:
        if not isinstance(dep, str) or not dep.strip():
            issues.append(f"deps contém id inválido: {dep!r}")
            continue
        if dep == node.id:
            issues.append("deps não pode conter o próprio id")
        if dep in seen:
            issues.append(f"deps contém id repetido: {dep}")
        seen.add(dep)

    for name in PAYLOAD_FIELDS if payloads else ():
        value = getattr(node, name)
        _expect(isinstance(value, dict), issues, f"{name} deve ser objeto, recebido {type(value).__name__}")

    _expect(all(isinstance(t, str) for t in node.tags), issues, "tags devem ser strings")
    _expect(
        isinstance(node.version, int) and not isinstance(node.version, bool) and node.version >= 1,
        issues,
        "version deve ser inteiro >= 1",
    )

    if node.kind == NodeKind.GROUPING and isinstance(node.self_data, dict):
        for key, value in node.self_data.items():
            _expect(isinstance(value, dict), issues, f"self_data['{key}'] de grouping deve ser objeto")

    if node.kind == NodeKind.CONTAINER and isinstance(node.self_data, dict):
        for key in CONTAINER_SECTIONS.intersection(node.self_data):
            _expect(isinstance(node.self_data[key], dict), issues, f"seção '{key}' deve ser objeto")

    if index is not None:
        issues.extend(_dependency_issues(node, index))

    return issues


def _dependency_issues(node: ConfigNode, index: Mapping[str, ConfigNode]) -> List[str]:
    issues: List[str] = []
    for dep_id in node.deps:
        dep = index.get(dep_id)
        if dep is None:
            continue  # ausência é tratada por UnknownDependencyError na autoria
        if node.kind == NodeKind.CONTAINER:
            if dep.kind == NodeKind.CONTAINER:
                node_level = node.hierarchy_level or 0
                dep_level = dep.hierarchy_level or 0
                _expect(
                    dep_level < node_level,
                    issues,
                    f"container '{node.sub_kind}' não pode depender de '{dep.sub_kind}' ({dep_id})",
                )
            continue
        allowed = _ALLOWED_DEP_KINDS.get(node.kind, frozenset())
        _expect(
            dep.kind in allowed,
            issues,
            f"nó {node.kind.value} não pode depender de {dep.kind.value} ({dep_id})",
        )
    return issues


def validate_node(node: ConfigNode, *, index: Optional[Mapping[str, ConfigNode]] = None) -> ConfigNode:
    """Valida o nó e o retorna inalterado.

    Raises:
        NodeValidationError: Se houver qualquer violação de schema.
    """
    issues = node_issues(node, index=index)
    if issues:
        raise NodeValidationError(
            message=f"Nó '{node.id}' inválido: {issues[0]}",
            details={"node_id": node.id, "kind": node.kind.value if node.kind else None, "issues": issues},
            hint="Corrija o payload ou as dependências conforme o tipo do nó.",
        )
    return node
