# src/config_cascade/core/persistence/store.py
"""
RecordStore: interface do store de registros de configuração.

O motor nunca usa um cliente global: o store é injetado explicitamente
no CascadeEngine, no BatchWriter e nas operações de autoria.

Operações:
    - fetch_all()                      → todos os nós (inclusive soft-deleted)
    - fetch_by_ids(ids)                → nós existentes entre `ids`
    - upsert_batch(nodes, conflict_key)→ UpsertResult(count, error)
    - update_one(id, patch)            → UpsertResult

Contrato de falha:
    - Falhas transitórias de escrita podem ser devolvidas em
      `UpsertResult.error` ou levantadas como exceção; o BatchWriter
      trata as duas formas da mesma maneira (retry + backoff)
    - Falha de acesso em fetch deve levantar `StoreUnavailableError`

Implementações:
    - InMemoryRecordStore → dublê de teste, com injeção de falhas
    - JsonFileRecordStore → arquivo JSON local (json_store)
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

from config_cascade.core.nodes.types import ConfigNode


@dataclass(frozen=True)
class UpsertResult:
    """Resultado de uma operação de escrita."""

    count: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@runtime_checkable
class RecordStore(Protocol):
    """Protocolo do store de registros (duck typing)."""

    def fetch_all(self) -> List[ConfigNode]:
        ...

    def fetch_by_ids(self, ids: Iterable[str]) -> List[ConfigNode]:
        ...

    def upsert_batch(self, nodes: Sequence[ConfigNode], conflict_key: str = "id") -> UpsertResult:
        ...

    def update_one(self, node_id: str, patch: Mapping[str, Any]) -> UpsertResult:
        ...


def apply_patch(node: ConfigNode, patch: Mapping[str, Any]) -> ConfigNode:
    """Aplica um patch raso (campos do registro) sobre o nó."""
    record = node.to_record()
    record.update(dict(patch))
    record["id"] = node.id
    return ConfigNode.from_record(record)


class InMemoryRecordStore:
    """Store em memória, ordenado por inserção.

    `fail_ids`: qualquer lote contendo um desses ids falha em upsert_batch,
    em todas as tentativas (falha permanente).
    """

    def __init__(self, nodes: Iterable[ConfigNode] = (), *, fail_ids: Iterable[str] = ()):
        self._records: Dict[str, ConfigNode] = {}
        self._lock = threading.Lock()
        self.fail_ids = set(fail_ids)
        self.upsert_calls: List[List[str]] = []
        for node in nodes:
            self._records[node.id] = node

    def fetch_all(self) -> List[ConfigNode]:
        with self._lock:
            return list(self._records.values())

    def fetch_by_ids(self, ids: Iterable[str]) -> List[ConfigNode]:
        wanted = list(dict.fromkeys(ids))
        with self._lock:
            return [self._records[i] for i in wanted if i in self._records]

    def get(self, node_id: str) -> Optional[ConfigNode]:
        with self._lock:
            return self._records.get(node_id)

    def upsert_batch(self, nodes: Sequence[ConfigNode], conflict_key: str = "id") -> UpsertResult:
        if conflict_key != "id":
            return UpsertResult(error=f"conflict_key não suportado: {conflict_key}")
        with self._lock:
            self.upsert_calls.append([n.id for n in nodes])
            blocked = sorted(self.fail_ids.intersection(n.id for n in nodes))
            if blocked:
                return UpsertResult(error=f"falha simulada para: {', '.join(blocked)}")
            for node in nodes:
                self._records[node.id] = node
        return UpsertResult(count=len(nodes))

    def update_one(self, node_id: str, patch: Mapping[str, Any]) -> UpsertResult:
        with self._lock:
            current = self._records.get(node_id)
            if current is None:
                return UpsertResult(error=f"nó não encontrado: {node_id}")
            self._records[node_id] = apply_patch(current, patch)
        return UpsertResult(count=1)
