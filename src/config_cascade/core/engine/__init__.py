# src/config_cascade/core/engine/__init__.py
"""
Engine do Config Cascade.

Este pacote orquestra a propagação de mudanças pelo grafo de nós de
configuração, do fetch no RecordStore até a escrita em lotes.

Componentes principais:
    - context   → CascadeContext (event log, warnings e anomalias por run)
    - engine    → CascadeEngine (cascade, rebuild_hierarchy, árvore, ciclos)
    - authoring → create/update/delete de nós com guardrails de estrutura
    - benchmark → medição de uma cascata completa

Princípios fundamentais:
    - A ordem de recomputação é determinística para o mesmo grafo
    - Anomalias estruturais viram warnings, nunca interrompem a cascata
    - Nenhuma escrita acontece em dry-run

Limites explícitos:
    - Não depende de um cliente de banco global (store injetado)
    - Não contém UI; a CLI apenas formata resultados
"""

from .authoring import (
    check_structure,
    create_node,
    delete_node,
    fix_null_fields,
    update_and_cascade,
    update_node,
)
from .benchmark import BenchmarkReport, run_benchmark
from .context import CascadeContext, new_run_id
from .engine import CascadeEngine, CascadeResult

__all__ = [
    "CascadeContext",
    "new_run_id",
    "CascadeEngine",
    "CascadeResult",
    "check_structure",
    "create_node",
    "update_node",
    "delete_node",
    "update_and_cascade",
    "fix_null_fields",
    "BenchmarkReport",
    "run_benchmark",
]
