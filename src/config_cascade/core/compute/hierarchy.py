# src/config_cascade/core/compute/hierarchy.py
"""
HierarchyAggregator: estruturas aninhadas de containers.

Especialização do DataComputer para nós `container`. As dependências
diretas de um container são particionadas pelo seu `type` e cada
partição vira uma seção esparsa keyed por id do filho:

    menu_section → items(menu_item)
    menu_config  → sections(menu_section), items(menu_item)
    page         → fields(fields, achatado), menus(menu_config)
    user_config  → menus(menu_config)
    space        → pages(page), views(view),
                   sort_fields(sort, achatado), filter_fields(filter, achatado)
    workspace    → spaces(space)
    app          → workspaces(workspace), user_config na raiz (keyed por id)

Regras gerais:
    - Dependências `property` são mescladas direto na raiz da estrutura
    - Tipos sem regra explícita viram a seção `<type>s`
    - Seções vazias são omitidas (esparso, nunca zerado)
    - Filhos aparecem na ordem declarada em `deps`
    - data = deep_merge(estrutura, override_data)

Ordem de níveis (rebuild): grouping → menu_section → menu_config →
page/user_config → space → workspace → app. Um nível só é reconstruído
depois que todos os níveis abaixo dele terminaram no mesmo passe.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from config_cascade.core.config.merge import deep_merge
from config_cascade.core.nodes.types import HIERARCHY_LEVELS, ConfigNode, NodeKind

from .computer import ComputeOutcome, compute_node, dependency_data, finalize, own_override

# modos de seção
KEYED = "keyed"
FLATTEN = "flatten"
ROOT = "root"

SECTION_RULES: Dict[str, Dict[str, Tuple[str, str]]] = {
    "menu_section": {"menu_item": ("items", KEYED)},
    "menu_config": {"menu_section": ("sections", KEYED), "menu_item": ("items", KEYED)},
    "page": {"fields": ("fields", FLATTEN), "menu_config": ("menus", KEYED)},
    "user_config": {"menu_config": ("menus", KEYED)},
    "space": {
        "page": ("pages", KEYED),
        "view": ("views", KEYED),
        "sort": ("sort_fields", FLATTEN),
        "filter": ("filter_fields", FLATTEN),
    },
    "workspace": {"space": ("spaces", KEYED)},
    "app": {"workspace": ("workspaces", KEYED), "user_config": ("", ROOT)},
}


def section_for(container_type: Optional[str], child: ConfigNode) -> Tuple[str, str]:
    """Seção e modo em que `child` entra na estrutura do container."""
    rules = SECTION_RULES.get(container_type or "", {})
    child_type = child.sub_kind or child.kind.value
    if child_type in rules:
        return rules[child_type]
    return f"{child_type}s", KEYED


def build_container_structure(
    node: ConfigNode,
    *,
    resolved: Mapping[str, ConfigNode],
    fallback: Mapping[str, ConfigNode],
    ctx: Any = None,
) -> Dict[str, Any]:
    """Estrutura agregada (self_data) de um container."""
    structure: Dict[str, Any] = {}
    sections: Dict[str, Dict[str, Any]] = {}

    for dep_id in node.deps:
        child, contribution = dependency_data(node.id, dep_id, resolved, fallback, ctx)
        if child is None:
            continue

        if child.kind == NodeKind.PROPERTY:
            structure = deep_merge(structure, contribution, strict=False)
            continue

        section, mode = section_for(node.sub_kind, child)
        if mode == ROOT:
            structure[dep_id] = contribution
        elif mode == FLATTEN:
            if contribution:
                sections[section] = deep_merge(sections.get(section, {}), contribution, strict=False)
        else:
            sections.setdefault(section, {})[dep_id] = contribution

    for section, content in sections.items():
        if content:
            structure[section] = content

    return structure


def aggregate_container(
    node: ConfigNode,
    *,
    resolved: Mapping[str, ConfigNode],
    fallback: Mapping[str, ConfigNode],
    ctx: Any = None,
) -> ComputeOutcome:
    """Recomputa um container (NO_CHANGE quando nada mudou)."""
    override = own_override(node, ctx)
    structure = build_container_structure(node, resolved=resolved, fallback=fallback, ctx=ctx)
    return finalize(node, structure, override)


def recompute(
    node: ConfigNode,
    *,
    resolved: Mapping[str, ConfigNode],
    fallback: Mapping[str, ConfigNode],
    ctx: Any = None,
) -> ComputeOutcome:
    """Despacha para o agregador (container) ou para o DataComputer."""
    if node.is_container:
        return aggregate_container(node, resolved=resolved, fallback=fallback, ctx=ctx)
    return compute_node(node, resolved=resolved, fallback=fallback, ctx=ctx)


def hierarchy_levels(nodes: Iterable[ConfigNode]) -> List[List[ConfigNode]]:
    """Agrupa groupings e containers por nível, em ordem crescente.

    Dentro de um nível, a ordem de entrada é preservada. Nós soft-deleted
    e nós fora da hierarquia são ignorados.
    """
    buckets: Dict[int, List[ConfigNode]] = {}
    for node in nodes:
        if node.deleted:
            continue
        level = HIERARCHY_LEVELS.get(node.sub_kind or "")
        if level is None:
            continue
        buckets.setdefault(level, []).append(node)
    return [buckets[level] for level in sorted(buckets)]
