# src/config_cascade/core/engine/authoring.py
"""
Operações de autoria sobre nós individuais.

Toda escrita de autoria passa pelos mesmos guardrails:
    - schema por tipo (`validate_node`) com o índice atual de nós
    - dependências inexistentes → UnknownDependencyError
    - dependência que fecharia um ciclo (ou auto-dependência) → CycleDetectedError
    - `self_data`/`data` do nó são recomputados antes da gravação

Diferente da cascata, aqui as violações levantam exceção: nada é gravado.

Versionamento:
    - create → version 1
    - update/delete → version + 1
    - cascata → apenas `updated_at` (não altera version)
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from config_cascade.core.compute.computer import NO_CHANGE
from config_cascade.core.compute.hierarchy import recompute
from config_cascade.core.exceptions import (
    CycleDetectedError,
    NodeNotFoundError,
    NodeValidationError,
    StoreWriteError,
    UnknownDependencyError,
)
from config_cascade.core.graph.builder import build_graph
from config_cascade.core.graph.cycles import find_new_cycle
from config_cascade.core.nodes.schema import validate_node
from config_cascade.core.nodes.types import ConfigNode
from config_cascade.core.persistence.store import RecordStore

from .engine import CascadeEngine, CascadeResult

_UNSET: Any = object()

NULLABLE_FIELDS = ("deps", "tags", "self_data", "override_data", "data")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _index(store: RecordStore) -> Dict[str, ConfigNode]:
    return {n.id: n for n in store.fetch_all()}


def _require(index: Mapping[str, ConfigNode], node_id: str) -> ConfigNode:
    node = index.get(node_id)
    if node is None:
        raise NodeNotFoundError(
            message=f"Nó '{node_id}' não existe",
            details={"node_id": node_id},
            hint="Use create_node para criar o nó antes de alterá-lo.",
        )
    return node


def check_structure(node: ConfigNode, index: Mapping[str, ConfigNode]) -> None:
    """Aplica os guardrails de estrutura sem gravar nada.

    Raises:
        CycleDetectedError: Se `deps` criaria um ciclo.
        UnknownDependencyError: Se alguma dependência não existe.
        NodeValidationError: Para as demais violações de schema.
    """
    others = [n for n in index.values() if n.id != node.id]
    cycle = find_new_cycle(build_graph(others + [replace(node, deps=())]), node.id, node.deps)
    if cycle is not None:
        raise CycleDetectedError(
            message=f"Dependências de '{node.id}' criariam um ciclo",
            details={"node_id": node.id, "cycle": cycle},
            hint="Remova a dependência que fecha o ciclo.",
        )

    unknown = [d for d in node.deps if d not in index]
    if unknown:
        raise UnknownDependencyError(
            message=f"Dependências inexistentes em '{node.id}': {', '.join(unknown)}",
            details={"node_id": node.id, "unknown": unknown},
            hint="Crie os nós referenciados antes de declará-los em deps.",
        )

    validate_node(node, index=index)


def _materialize(node: ConfigNode, index: Mapping[str, ConfigNode]) -> ConfigNode:
    outcome = recompute(node, resolved={}, fallback=index)
    return node if outcome is NO_CHANGE else outcome


def _write(store: RecordStore, node: ConfigNode) -> ConfigNode:
    result = store.upsert_batch([node], conflict_key="id")
    if not result.ok:
        raise StoreWriteError(
            message=f"Falha ao gravar '{node.id}'",
            details={"node_id": node.id, "error": result.error},
            hint="Verifique a disponibilidade do store e repita a operação.",
        )
    return node


def create_node(store: RecordStore, node: ConfigNode) -> ConfigNode:
    """Cria um nó novo (version 1) com dado já derivado das dependências.

    Raises:
        NodeValidationError: Se o id já existe ou o nó é inválido.
        StoreWriteError: Se o store rejeitar a escrita.
    """
    index = _index(store)
    existing = index.get(node.id)
    if existing is not None and not existing.deleted:
        raise NodeValidationError(
            message=f"Nó '{node.id}' já existe",
            details={"node_id": node.id},
            hint="Use update_node para alterar um nó existente.",
        )

    check_structure(node, index)
    created = replace(_materialize(node, index), version=1, deleted=False, updated_at=_now_iso())
    return _write(store, created)


def update_node(
    store: RecordStore,
    node_id: str,
    *,
    override_data: Any = _UNSET,
    deps: Any = _UNSET,
    tags: Any = _UNSET,
    caption: Any = _UNSET,
    category: Any = _UNSET,
) -> ConfigNode:
    """Altera campos autorais de um nó e recomputa o seu dado.

    Apenas os argumentos informados são alterados. A propagação para os
    dependentes é responsabilidade de `update_and_cascade`.

    Raises:
        NodeNotFoundError: Se o nó não existe.
        NodeValidationError: Se o resultado viola o schema ou cria ciclo.
        StoreWriteError: Se o store rejeitar a escrita.
    """
    index = _index(store)
    current = _require(index, node_id)

    changes: Dict[str, Any] = {}
    for name, value in (
        ("override_data", override_data),
        ("deps", deps),
        ("tags", tags),
        ("caption", caption),
        ("category", category),
    ):
        if value is not _UNSET:
            changes[name] = value

    updated = replace(current, **changes)
    check_structure(updated, index)
    updated = replace(_materialize(updated, index), version=current.version + 1, updated_at=_now_iso())
    return _write(store, updated)


def delete_node(store: RecordStore, node_id: str) -> ConfigNode:
    """Soft delete: o nó continua resolvível por seus dependentes.

    Raises:
        NodeNotFoundError: Se o nó não existe.
        StoreWriteError: Se o store rejeitar a escrita.
    """
    current = _require(_index(store), node_id)
    patch = {"deleted": True, "version": current.version + 1, "updated_at": _now_iso()}
    result = store.update_one(node_id, patch)
    if not result.ok:
        raise StoreWriteError(
            message=f"Falha ao remover '{node_id}'",
            details={"node_id": node_id, "error": result.error},
            hint="Verifique a disponibilidade do store e repita a operação.",
        )
    return replace(current, deleted=True, version=current.version + 1, updated_at=patch["updated_at"])


def update_and_cascade(
    engine: CascadeEngine,
    node_id: str,
    override_data: Dict[str, Any],
) -> CascadeResult:
    """Atualiza o `override_data` de um nó e propaga para os dependentes."""
    update_node(engine.store, node_id, override_data=override_data)
    engine.ctx.log(step_id="authoring", level="info", message="override atualizado", node_id=node_id)
    return engine.cascade([node_id])


def fix_null_fields(store: Any, fields: Iterable[str] = NULLABLE_FIELDS) -> Dict[str, int]:
    """Substitui nulos persistidos por `[]`/`{}` e devolve a contagem por campo.

    Requer um store com acesso ao conteúdo cru (`raw_records` e
    `write_raw_records`); outros stores já normalizam na leitura e
    retornam contagens zeradas.
    """
    names: List[str] = list(fields)
    counts = {name: 0 for name in names}

    if not (hasattr(store, "raw_records") and hasattr(store, "write_raw_records")):
        return counts

    records = store.raw_records()
    for record in records:
        for name in names:
            if name in record and record[name] is None:
                record[name] = [] if name in ("deps", "tags") else {}
                counts[name] += 1

    if any(counts.values()):
        store.write_raw_records(records)
    return counts
