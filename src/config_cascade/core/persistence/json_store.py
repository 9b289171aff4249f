"""Store local em arquivo JSON (lista de registros persistidos).

Formato do arquivo:

    [
      {"id": "property_required", "type": "property", "deps": [], ...},
      ...
    ]

Decisões:
- Registros com `deps`/`tags` nulos são normalizados na leitura
  (`ConfigNode.from_record`); `raw_records()` expõe o conteúdo cru para
  a correção explícita via `fix_null_fields`.
- Escrita por read-modify-write com lock, seguida de replace atômico do arquivo.
- Arquivo ausente ou ilegível → `StoreUnavailableError`.
"""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Union

from config_cascade.core.errors import store_unavailable
from config_cascade.core.exceptions import StoreUnavailableError
from config_cascade.core.nodes.types import ConfigNode

from .store import UpsertResult, apply_patch


class JsonFileRecordStore:
    """RecordStore apoiado em um arquivo JSON local."""

    def __init__(self, path: Union[str, Path], *, create: bool = False):
        self.path = Path(path)
        self._lock = threading.Lock()
        if create and not self.path.exists():
            self._write([])

    # ------------------------------------------------------------------
    # I/O
    # ------------------------------------------------------------------
    def raw_records(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            payload = store_unavailable(reason="arquivo do store não existe", path=str(self.path))
            raise StoreUnavailableError(message=payload.message, details=payload.details, hint=payload.hint)
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "[]")
        except (OSError, json.JSONDecodeError) as e:
            payload = store_unavailable(reason=f"{e.__class__.__name__}: {e}", path=str(self.path))
            raise StoreUnavailableError(message=payload.message, details=payload.details, hint=payload.hint) from e
        if not isinstance(data, list):
            payload = store_unavailable(reason="conteúdo raiz deve ser lista", path=str(self.path))
            raise StoreUnavailableError(message=payload.message, details=payload.details, hint=payload.hint)
        return data

    def write_raw_records(self, records: List[Dict[str, Any]]) -> None:
        with self._lock:
            self._write(records)

    def _write(self, records: List[Dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(records, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)

    # ------------------------------------------------------------------
    # RecordStore
    # ------------------------------------------------------------------
    def fetch_all(self) -> List[ConfigNode]:
        return [ConfigNode.from_record(r) for r in self.raw_records()]

    def fetch_by_ids(self, ids: Iterable[str]) -> List[ConfigNode]:
        wanted = set(ids)
        return [ConfigNode.from_record(r) for r in self.raw_records() if r.get("id") in wanted]

    def upsert_batch(self, nodes: Sequence[ConfigNode], conflict_key: str = "id") -> UpsertResult:
        if conflict_key != "id":
            return UpsertResult(error=f"conflict_key não suportado: {conflict_key}")
        try:
            with self._lock:
                records = self.raw_records()
                position = {r.get("id"): i for i, r in enumerate(records)}
                for node in nodes:
                    record = node.to_record()
                    if node.id in position:
                        records[position[node.id]] = record
                    else:
                        position[node.id] = len(records)
                        records.append(record)
                self._write(records)
        except (OSError, StoreUnavailableError) as e:
            return UpsertResult(error=str(e))
        return UpsertResult(count=len(nodes))

    def update_one(self, node_id: str, patch: Mapping[str, Any]) -> UpsertResult:
        try:
            with self._lock:
                records = self.raw_records()
                for i, record in enumerate(records):
                    if record.get("id") == node_id:
                        records[i] = apply_patch(ConfigNode.from_record(record), patch).to_record()
                        self._write(records)
                        return UpsertResult(count=1)
        except (OSError, StoreUnavailableError) as e:
            return UpsertResult(error=str(e))
        return UpsertResult(error=f"nó não encontrado: {node_id}")
