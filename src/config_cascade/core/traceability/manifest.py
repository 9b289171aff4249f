# src/config_cascade/core/traceability/manifest.py
"""
Manifest: rastreabilidade de execuções do motor de cascata.

O Manifest consolida, de forma determinística e auditável:
    - metadados da execução (run_id, comando, início, versão)
    - entradas (hash da configuração e ids semente)
    - estado incremental dos estágios (fetch, resolve, compute, persist)
    - Event Log ordenado de eventos explícitos

Princípios fundamentais:
    - Nenhum evento é emitido implicitamente
    - A ordem do Event Log reflete a ordem real de execução
    - O Manifest é serializável e reconstruível (round-trip)

Decisões arquiteturais:
    - UTC é o timezone canônico para todos os timestamps
    - O formato de persistência é JSON determinístico
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence


def _ensure_tzaware_utc(dt: datetime) -> datetime:
    """
    Normaliza um timestamp para timezone-aware em UTC.

    Timestamps timezone-naive são assumidos como UTC; os demais são
    convertidos para UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _iso(dt: datetime) -> str:
    return _ensure_tzaware_utc(dt).isoformat()


def _ms_between(start: datetime, end: datetime) -> int:
    """Duração em milissegundos, nunca negativa."""
    s = _ensure_tzaware_utc(start)
    e = _ensure_tzaware_utc(end)
    return max(0, int((e - s).total_seconds() * 1000))


@dataclass
class CascadeManifest:
    """
    Registro de uma execução do motor.

    Campos principais:
        - run: metadados da execução (run_id, command, started_at, engine_version)
        - inputs: hash da configuração e ids semente
        - stages: estado incremental de cada estágio
        - events: Event Log ordenado
        - result: resumo final (CascadeResult serializado), quando concluído
    """

    run: Dict[str, Any]
    inputs: Dict[str, Any]
    stages: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)
    result: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run": dict(self.run),
            "inputs": dict(self.inputs),
            "stages": {k: dict(v) for k, v in self.stages.items()},
            "events": [dict(e) for e in self.events],
            "result": dict(self.result) if self.result is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CascadeManifest":
        result = data.get("result")
        return cls(
            run=dict(data.get("run", {})),
            inputs=dict(data.get("inputs", {})),
            stages={k: dict(v) for k, v in (data.get("stages", {}) or {}).items()},
            events=[dict(e) for e in (data.get("events", []) or [])],
            result=dict(result) if result is not None else None,
        )

    # ------------------------------------------------------------------
    # Eventos e estágios
    # ------------------------------------------------------------------
    def add_event(
        self,
        *,
        event_type: str,
        ts: datetime,
        stage: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Adiciona exatamente um evento ao Event Log, na ordem de chamada."""
        ev: Dict[str, Any] = {"event_type": event_type, "timestamp": _iso(ts)}
        if stage is not None:
            ev["stage"] = stage
        if payload is not None:
            ev["payload"] = payload
        self.events.append(ev)

    def stage_started(self, *, stage: str, ts: datetime) -> None:
        self.stages.setdefault(stage, {})
        self.stages[stage].update({"stage": stage, "status": "running", "started_at": _iso(ts)})
        self.add_event(event_type="stage_started", ts=ts, stage=stage)

    def stage_finished(self, *, stage: str, ts: datetime, summary: Optional[Dict[str, Any]] = None) -> None:
        s = self.stages.setdefault(stage, {"stage": stage})
        started_iso = s.get("started_at")
        started_dt = datetime.fromisoformat(started_iso) if started_iso else ts
        s.update(
            {
                "status": "success",
                "finished_at": _iso(ts),
                "duration_ms": _ms_between(started_dt, ts),
                "summary": dict(summary or {}),
            }
        )
        self.add_event(
            event_type="stage_finished",
            ts=ts,
            stage=stage,
            payload={"status": "success", "duration_ms": s["duration_ms"]},
        )

    def stage_failed(self, *, stage: str, ts: datetime, error: Dict[str, Any]) -> None:
        s = self.stages.setdefault(stage, {"stage": stage})
        s.update({"status": "failed", "finished_at": _iso(ts), "error": error})
        self.add_event(event_type="stage_failed", ts=ts, stage=stage, payload={"error": error})

    def finish(self, *, ts: datetime, result: Dict[str, Any]) -> None:
        self.result = dict(result)
        self.run["finished_at"] = _iso(ts)
        self.add_event(event_type="run_finished", ts=ts, payload={"success": bool(result.get("success"))})


def create_manifest(
    *,
    run_id: str,
    command: str,
    started_at: datetime,
    engine_version: str,
    config_hash: str,
    seed_ids: Sequence[str] = (),
) -> CascadeManifest:
    """Cria o Manifest inicial de uma execução (sem eventos implícitos)."""
    return CascadeManifest(
        run={
            "run_id": run_id,
            "command": command,
            "started_at": _iso(started_at),
            "engine_version": engine_version,
        },
        inputs={"config_hash": config_hash, "seed_ids": list(seed_ids)},
    )


def save_manifest(manifest: CascadeManifest, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(manifest.to_dict(), ensure_ascii=False, indent=2, sort_keys=True),
        encoding="utf-8",
    )


def load_manifest(path: Path) -> CascadeManifest:
    """Carrega um Manifest persistido.

    Raises:
        FileNotFoundError: Se o arquivo não existir.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(str(path))
    return CascadeManifest.from_dict(json.loads(path.read_text(encoding="utf-8")))
