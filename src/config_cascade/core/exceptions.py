"""
Config Cascade: Canonical Exceptions

Este módulo define exceções tipadas internas do Config Cascade.

Objetivo:
- Permitir que autoria, store e engine levantem exceções semânticas tipadas
- Facilitar o mapeamento determinístico para ErrorPayload
- Evitar ValueError/RuntimeError genéricos em guardrails críticos

Regras:
- Exceções carregam apenas dados estruturados (serializáveis) em `details`.
- Anomalias durante a cascata NÃO usam estas exceções: viram warnings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class CascadeException(Exception):
    """Base class para exceções internas do Config Cascade.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Mensagem deve ser curta e humana
    """

    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover
        return self.message


# ---------------------------------------------------------------------------
# Store / Inicialização
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StoreUnavailableError(CascadeException):
    """Store inacessível ou não configurado (erro fatal de inicialização)."""


@dataclass(frozen=True)
class StoreWriteError(CascadeException):
    """Escrita de autoria (nó individual) rejeitada pelo store."""


@dataclass(frozen=True)
class NodeNotFoundError(CascadeException):
    """Nó referenciado por uma operação de autoria não existe."""


# ---------------------------------------------------------------------------
# Autoria / Estrutura
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NodeValidationError(CascadeException):
    """Payload ou estrutura de um nó viola o schema do seu tipo."""


@dataclass(frozen=True)
class UnknownDependencyError(NodeValidationError):
    """Nó declara em `deps` um id que não existe no store."""


@dataclass(frozen=True)
class CycleDetectedError(NodeValidationError):
    """A alteração criaria um ciclo (ou auto-dependência) no grafo."""
