# src/config_cascade/core/engine/context.py
"""
CascadeContext: contexto canônico de uma execução do motor.

O CascadeContext é a estrutura compartilhada por todos os estágios de uma
execução (fetch, resolve, compute, persist). Ele é o único meio de:
- registrar logs estruturados de execução (event log)
- coletar warnings não fatais por estágio
- acumular anomalias estruturadas (ErrorPayload) para o resultado

Princípios fundamentais:
- Isolamento por execução (cada run possui seu próprio contexto)
- Anomalias nunca interrompem a cascata: viram warnings rastreáveis
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from config_cascade.core.errors import ErrorPayload


def new_run_id() -> str:
    return f"cascade-{uuid.uuid4().hex[:12]}"


@dataclass
class CascadeContext:
    """
    Contexto de execução de uma run de cascata.

    Campos canônicos:
    - run_id: identificador único da execução
    - created_at: timestamp UTC de criação do contexto
    - config: configuração efetiva (defaults + local deep-merge)
    - warnings: warnings por estágio
    - events: log estruturado de eventos
    - anomalies: payloads de anomalias estruturais (serializáveis)
    """

    run_id: str = field(default_factory=new_run_id)
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    config: Dict[str, Any] = field(default_factory=dict)

    warnings: Dict[str, List[str]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)
    anomalies: List[ErrorPayload] = field(default_factory=list)

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, step_id: str, level: str, message: str, **extra: Any) -> None:
        event = {
            "run_id": self.run_id,
            "step_id": step_id,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        self.events.append(event)

    def add_warning(self, *, step_id: str, message: str) -> None:
        if step_id not in self.warnings:
            self.warnings[step_id] = []
        self.warnings[step_id].append(message)

    def report(self, *, step_id: str, payload: ErrorPayload, level: str = "warning") -> None:
        """Registra uma anomalia: warning + evento com o payload serializado."""
        self.anomalies.append(payload)
        self.add_warning(step_id=step_id, message=payload.describe())
        self.log(step_id=step_id, level=level, message=payload.message, error=payload.to_dict())

    def all_warnings(self) -> List[str]:
        out: List[str] = []
        for messages in self.warnings.values():
            out.extend(messages)
        return out

    def anomalies_of(self, error_type: str, *, node_id: Optional[str] = None) -> List[ErrorPayload]:
        return [
            a for a in self.anomalies
            if a.type == error_type and (node_id is None or a.details.get("node_id") == node_id)
        ]
