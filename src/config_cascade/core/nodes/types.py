# src/config_cascade/core/nodes/types.py
"""
Tipos canônicos de nós de configuração.

Este módulo define a única entidade do Config Cascade, o `ConfigNode`,
e a classificação de tipos que governa as regras de merge.

Componentes principais:
    - NodeKind   → enum de classes de merge (property, field, grouping, container, leaf-misc)
    - ConfigNode → estrutura imutável de um nó persistido
    - HIERARCHY_LEVELS → ordem fixa de rebuild de groupings e containers

Registro persistido (forma lógica, agnóstica ao store):

    {id, type, kind, deps: [], self_data: {}, override_data: {}, data: {},
     tags: [], category, caption, version, deleted, updated_at}

Invariantes:
    - `deps` e `tags` são sempre sequências (nunca None)
    - `self_data`, `override_data` e `data` nunca são None
    - `kind` é derivado de `type` quando não informado

Limites explícitos:
    - Não computa dados (responsabilidade de core.compute)
    - Não valida regras por tipo (responsabilidade de schema)
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class NodeKind(str, Enum):
    """
    Classes de merge de um nó.

    Tipos definidos:
        - PROPERTY: propriedade atômica reutilizável (ex.: property_required)
        - FIELD: campo de entidade, herda de properties e outros fields
        - GROUPING: seção fields/sort/filter, self_data keyed por dependência
        - CONTAINER: page/space/workspace/app/user_config/menus
        - LEAF_MISC: demais nós (view, menu_item, tipos desconhecidos)

    Invariantes:
        - O valor textual do enum é estável e canônico
    """

    PROPERTY = "property"
    FIELD = "field"
    GROUPING = "grouping"
    CONTAINER = "container"
    LEAF_MISC = "leaf-misc"


SUB_KIND_TO_KIND: Dict[str, NodeKind] = {
    "property": NodeKind.PROPERTY,
    "field": NodeKind.FIELD,
    "fields": NodeKind.GROUPING,
    "sort": NodeKind.GROUPING,
    "filter": NodeKind.GROUPING,
    "menu_section": NodeKind.CONTAINER,
    "menu_config": NodeKind.CONTAINER,
    "page": NodeKind.CONTAINER,
    "user_config": NodeKind.CONTAINER,
    "space": NodeKind.CONTAINER,
    "workspace": NodeKind.CONTAINER,
    "app": NodeKind.CONTAINER,
    "menu_item": NodeKind.LEAF_MISC,
    "view": NodeKind.LEAF_MISC,
}

# grouping → page → space → workspace → app, com menus e user_config encaixados
HIERARCHY_LEVELS: Dict[str, int] = {
    "fields": 1,
    "sort": 1,
    "filter": 1,
    "menu_section": 2,
    "menu_config": 3,
    "page": 4,
    "user_config": 4,
    "space": 5,
    "workspace": 6,
    "app": 7,
}


def kind_for(sub_kind: Optional[str]) -> NodeKind:
    """Classe de merge para um `type` persistido (desconhecido → LEAF_MISC)."""
    if sub_kind is None:
        return NodeKind.LEAF_MISC
    return SUB_KIND_TO_KIND.get(sub_kind, NodeKind.LEAF_MISC)


def _as_tuple(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


def _as_payload(value: Any) -> Any:
    # None vira {}; outros tipos são preservados para que a anomalia seja reportada
    if value is None:
        return {}
    return deepcopy(value)


@dataclass(frozen=True)
class ConfigNode:
    """
    Nó de configuração com dado herdado, override e dado efetivo.

    Campos canônicos:
    - id: identificador global único
    - sub_kind: `type` persistido (property, field, fields, page, ...)
    - kind: classe de merge (derivada de sub_kind)
    - deps: ids dos quais o nó herda, em ordem (a posterior vence)
    - self_data: dado herdado das dependências (recomputado)
    - override_data: dado autoral do nó (maior prioridade)
    - data: deep_merge(self_data, override_data), o único valor que consumidores leem
    """

    id: str
    sub_kind: Optional[str] = None
    kind: Optional[NodeKind] = None
    deps: Tuple[str, ...] = ()
    self_data: Dict[str, Any] = field(default_factory=dict)
    override_data: Dict[str, Any] = field(default_factory=dict)
    data: Dict[str, Any] = field(default_factory=dict)
    tags: Tuple[str, ...] = ()
    category: Optional[str] = None
    caption: Optional[str] = None
    version: int = 1
    updated_at: Optional[str] = None
    deleted: bool = False

    def __post_init__(self) -> None:
        # normalização de sequências e derivação do kind (dataclass frozen)
        object.__setattr__(self, "deps", _as_tuple(self.deps))
        object.__setattr__(self, "tags", _as_tuple(self.tags))
        for name in ("self_data", "override_data", "data"):
            if getattr(self, name) is None:
                object.__setattr__(self, name, {})
        if self.kind is None:
            object.__setattr__(self, "kind", kind_for(self.sub_kind))
        elif not isinstance(self.kind, NodeKind):
            object.__setattr__(self, "kind", NodeKind(self.kind))

    # -----------------------------
    # Classificação
    # -----------------------------
    @property
    def is_grouping(self) -> bool:
        return self.kind == NodeKind.GROUPING

    @property
    def is_container(self) -> bool:
        return self.kind == NodeKind.CONTAINER

    @property
    def hierarchy_level(self) -> Optional[int]:
        return HIERARCHY_LEVELS.get(self.sub_kind or "")

    # -----------------------------
    # Atualização (sempre nova instância)
    # -----------------------------
    def with_data(self, *, self_data: Dict[str, Any], data: Dict[str, Any], **changes: Any) -> "ConfigNode":
        return replace(self, self_data=self_data, data=data, **changes)

    # -----------------------------
    # Serialização
    # -----------------------------
    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "ConfigNode":
        """Constrói um nó a partir de um registro persistido.

        Valores nulos em `deps`/`tags` viram listas vazias e nulos nos
        payloads viram `{}`.
        """
        if "id" not in record:
            raise KeyError("registro sem 'id'")
        sub_kind = record.get("type") or record.get("sub_kind")
        kind = record.get("kind")
        version = record.get("version")
        return cls(
            id=record["id"],
            sub_kind=sub_kind,
            kind=NodeKind(kind) if kind else None,
            deps=_as_tuple(record.get("deps")),
            self_data=_as_payload(record.get("self_data")),
            override_data=_as_payload(record.get("override_data")),
            data=_as_payload(record.get("data")),
            tags=_as_tuple(record.get("tags")),
            category=record.get("category"),
            caption=record.get("caption"),
            version=int(version) if version is not None else 1,
            updated_at=record.get("updated_at"),
            deleted=bool(record.get("deleted", False)),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.sub_kind,
            "kind": self.kind.value if self.kind is not None else None,
            "deps": list(self.deps),
            "self_data": deepcopy(self.self_data),
            "override_data": deepcopy(self.override_data),
            "data": deepcopy(self.data),
            "tags": list(self.tags),
            "category": self.category,
            "caption": self.caption,
            "version": self.version,
            "deleted": self.deleted,
            "updated_at": self.updated_at,
        }
