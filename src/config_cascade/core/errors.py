"""
Config Cascade: Canonical Error Structures

Este módulo define o padrão canônico de erros do Config Cascade.
Erros e anomalias são artefatos de domínio e fazem parte do resultado
de cada execução, devendo ser:

- explícitos
- serializáveis
- rastreáveis
- acionáveis

Anomalias estruturais (dependência ausente, payload inválido, ciclo,
dependência não pronta) não interrompem a cascata: viram payloads
registrados no contexto da execução.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ErrorPayload:
    """
    Payload canônico de erro do Config Cascade.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador (onde corrigir)
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)

    def describe(self) -> str:
        """Linha única para warnings e saída de CLI."""
        node = self.details.get("node_id")
        prefix = f"[{self.type}] {node}: " if node else f"[{self.type}] "
        return prefix + self.message


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro
# ---------------------------------------------------------------------------

# Store / Inicialização
STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
NODE_NOT_FOUND = "NODE_NOT_FOUND"

# Estrutura do grafo / nós
MISSING_DEPENDENCY = "MISSING_DEPENDENCY"
INVALID_NODE_DATA = "INVALID_NODE_DATA"
CYCLE_DETECTED = "CYCLE_DETECTED"
UNREADY_DEPENDENCY = "UNREADY_DEPENDENCY"

# Persistência
BATCH_FAILED = "BATCH_FAILED"

# Engine / Execução
ENGINE_EXECUTION_ERROR = "ENGINE_EXECUTION_ERROR"
ENGINE_CONFIGURATION_ERROR = "ENGINE_CONFIGURATION_ERROR"


# ---------------------------------------------------------------------------
# Helpers de fábrica
# ---------------------------------------------------------------------------

def missing_dependency(
    *,
    node_id: str,
    dependency_id: str,
    hint: str = "Crie o nó referenciado ou remova-o de `deps`. A dependência contribui com {} até lá.",
) -> ErrorPayload:
    return ErrorPayload(
        type=MISSING_DEPENDENCY,
        message=f"Dependência '{dependency_id}' não existe",
        details={"node_id": node_id, "dependency_id": dependency_id},
        hint=hint,
    )


def invalid_node_data(
    *,
    node_id: str,
    field: str,
    actual_type: str,
    source_id: Optional[str] = None,
    hint: str = "Corrija o payload para um objeto JSON. O valor inválido contribui com {}.",
) -> ErrorPayload:
    return ErrorPayload(
        type=INVALID_NODE_DATA,
        message=f"Campo '{field}' não é objeto (recebido {actual_type})",
        details={
            "node_id": node_id,
            "field": field,
            "actual_type": actual_type,
            "source_id": source_id,
        },
        hint=hint,
    )


def schema_violation(
    *,
    node_id: str,
    kind: Optional[str],
    issues: List[str],
    hint: str = "Corrija o nó via autoria (update); a cascata segue com o dado atual.",
) -> ErrorPayload:
    return ErrorPayload(
        type=INVALID_NODE_DATA,
        message=f"Nó viola o schema do tipo: {issues[0]}",
        details={"node_id": node_id, "field": None, "kind": kind, "issues": list(issues)},
        hint=hint,
    )


def cycle_detected(
    *,
    members: List[str],
    hint: str = "Remova uma das dependências do ciclo. Os membros são recomputados como uma unidade.",
) -> ErrorPayload:
    return ErrorPayload(
        type=CYCLE_DETECTED,
        message="Ciclo de dependências entre nós afetados: " + " -> ".join(members),
        details={"members": list(members)},
        hint=hint,
    )


def unready_dependency(
    *,
    node_id: str,
    pending: List[str],
    pass_number: int,
) -> ErrorPayload:
    return ErrorPayload(
        type=UNREADY_DEPENDENCY,
        message="Dependências afetadas ainda não resolvidas; nó adiado para o próximo passe",
        details={"node_id": node_id, "pending": list(pending), "pass": pass_number},
        hint="O loop de convergência tenta novamente até engine.max_passes.",
    )


def batch_failed(
    *,
    batch_index: int,
    size: int,
    attempts: int,
    error: Optional[str],
) -> ErrorPayload:
    return ErrorPayload(
        type=BATCH_FAILED,
        message=f"Lote {batch_index} falhou após {attempts} tentativa(s)",
        details={"batch_index": batch_index, "size": size, "attempts": attempts, "error": error},
        hint="Verifique a disponibilidade do store e reexecute a cascata para convergir.",
    )


def store_unavailable(
    *,
    reason: str,
    path: Optional[str] = None,
) -> ErrorPayload:
    return ErrorPayload(
        type=STORE_UNAVAILABLE,
        message="Record store indisponível; nenhuma computação foi iniciada",
        details={"reason": reason, "path": path},
        hint="Verifique store.path na configuração ou a conectividade com o store.",
    )


def engine_execution_error(
    *,
    stage: Optional[str] = None,
    node_id: Optional[str] = None,
    exc_type: Optional[str] = None,
    exc_message: Optional[str] = None,
    hint: str = "Verifique o event log da execução. Nenhum fallback é aplicado automaticamente.",
) -> ErrorPayload:
    return ErrorPayload(
        type=ENGINE_EXECUTION_ERROR,
        message="Falha inesperada durante a execução da cascata",
        details={
            "stage": stage,
            "node_id": node_id,
            "exc_type": exc_type,
            "exc_message": exc_message,
        },
        hint=hint,
    )


def engine_configuration_error(
    *,
    reason: str,
    exc_type: Optional[str] = None,
    sources: Optional[List[str]] = None,
    hint: str = "Ajuste a configuração do motor (config/cascade.defaults.yaml ou override local).",
) -> ErrorPayload:
    return ErrorPayload(
        type=ENGINE_CONFIGURATION_ERROR,
        message=f"Configuração inválida para execução do motor: {reason}",
        details={"reason": reason, "exc_type": exc_type, "sources": list(sources or [])},
        hint=hint,
    )


def node_not_found(
    *,
    node_id: str,
    hint: str = "Confira o id informado. Dependentes de ids inexistentes ainda são recomputados.",
) -> ErrorPayload:
    return ErrorPayload(
        type=NODE_NOT_FOUND,
        message="Nó não encontrado no store",
        details={"node_id": node_id},
        hint=hint,
    )
