# src/config_cascade/core/compute/computer.py
"""
DataComputer: derivação de `self_data` e `data` de um nó.

Dado um nó e o dado efetivo já resolvido das suas dependências, produz
os novos `self_data` e `data`.

Regras de merge:
    - Nós ordinários (property, field, leaf-misc):
        self_data = merge em ordem do `data` de cada dependência (a posterior vence)
    - Nós grouping (fields, sort, filter):
        self_data[dep_id] = data da dependência (mapa keyed, nunca achatado)
    - Em ambos: data = deep_merge(self_data, override_data)

Resolução de dependências:
    - Primeiro as saídas já recomputadas nesta execução (`resolved`)
    - Depois o último estado persistido (`fallback`)
    - Dependência soft-deleted continua resolvível

Anomalias (nunca levantam exceção):
    - Dependência inexistente → contribui {} e é registrada
    - `data` de dependência não-objeto → contribui {} e é registrada
    - `override_data` do próprio nó não-objeto → tratado como {}

Saída:
    - Nó atualizado, quando `self_data` ou `data` mudam
    - Sentinela NO_CHANGE, caso contrário

Containers são tratados por `hierarchy.aggregate_container`.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Tuple, Union

from config_cascade.core.config.merge import deep_merge, merge_in_order
from config_cascade.core.errors import invalid_node_data, missing_dependency
from config_cascade.core.nodes.types import ConfigNode


STEP_ID = "compute"


class _NoChange:
    """Sentinela: a recomputação não alterou o nó."""

    _instance: Optional["_NoChange"] = None

    def __new__(cls) -> "_NoChange":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_CHANGE"

    def __bool__(self) -> bool:
        return False


NO_CHANGE = _NoChange()

ComputeOutcome = Union[ConfigNode, _NoChange]


def lookup_dependency(
    dep_id: str,
    resolved: Mapping[str, ConfigNode],
    fallback: Mapping[str, ConfigNode],
) -> Optional[ConfigNode]:
    node = resolved.get(dep_id)
    if node is not None:
        return node
    return fallback.get(dep_id)


def dependency_data(
    owner_id: str,
    dep_id: str,
    resolved: Mapping[str, ConfigNode],
    fallback: Mapping[str, ConfigNode],
    ctx: Any = None,
) -> Tuple[Optional[ConfigNode], Dict[str, Any]]:
    """Nó da dependência e sua contribuição (`{}` em caso de anomalia)."""
    dep = lookup_dependency(dep_id, resolved, fallback)
    if dep is None:
        if ctx is not None:
            ctx.report(step_id=STEP_ID, payload=missing_dependency(node_id=owner_id, dependency_id=dep_id))
        return None, {}
    if not isinstance(dep.data, dict):
        if ctx is not None:
            ctx.report(
                step_id=STEP_ID,
                payload=invalid_node_data(
                    node_id=owner_id,
                    field="data",
                    actual_type=type(dep.data).__name__,
                    source_id=dep_id,
                ),
            )
        return dep, {}
    return dep, dep.data


def own_override(node: ConfigNode, ctx: Any = None) -> Dict[str, Any]:
    if isinstance(node.override_data, dict):
        return node.override_data
    if ctx is not None:
        ctx.report(
            step_id=STEP_ID,
            payload=invalid_node_data(
                node_id=node.id,
                field="override_data",
                actual_type=type(node.override_data).__name__,
            ),
        )
    return {}


def finalize(node: ConfigNode, self_data: Dict[str, Any], override: Dict[str, Any]) -> ComputeOutcome:
    """Aplica `data = deep_merge(self_data, override)` e detecta se algo mudou.

    A comparação aqui é literal: reordenar uma lista conta como mudança.
    A filtragem insensível a ordem fica com o ChangeDetector, antes da gravação.
    """
    data = deep_merge(self_data, override, strict=False)
    if node.self_data == self_data and node.data == data:
        return NO_CHANGE
    return node.with_data(self_data=self_data, data=data)


def compute_node(
    node: ConfigNode,
    *,
    resolved: Mapping[str, ConfigNode],
    fallback: Mapping[str, ConfigNode],
    ctx: Any = None,
) -> ComputeOutcome:
    """Recomputa um nó ordinário ou grouping.

    Args:
        node: estado atual do nó.
        resolved: saídas já recomputadas nesta execução.
        fallback: último estado persistido de todos os nós.
        ctx: CascadeContext opcional para registrar anomalias.

    Returns:
        O nó atualizado ou NO_CHANGE.
    """
    override = own_override(node, ctx)

    if node.is_grouping:
        keyed: Dict[str, Any] = {}
        for dep_id in node.deps:
            _dep, contribution = dependency_data(node.id, dep_id, resolved, fallback, ctx)
            keyed[dep_id] = contribution
        return finalize(node, keyed, override)

    contributions = []
    for dep_id in node.deps:
        _dep, contribution = dependency_data(node.id, dep_id, resolved, fallback, ctx)
        contributions.append(contribution)
    return finalize(node, merge_in_order(contributions), override)
