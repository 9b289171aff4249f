# src/config_cascade/core/compute/dedup.py
"""
Deduplicator: colapsa atualizações pendentes do mesmo nó.

Cascatas sobrepostas (ou passes sucessivos do loop de convergência)
podem produzir mais de uma atualização candidata para o mesmo id.

Política:
    - Para cada id, manter o candidato com mais chaves de topo populadas
      no registro persistido
    - Empate: vence a ocorrência posterior na lista de entrada
    - A saída preserva a ordem da primeira ocorrência de cada id
    - O número de duplicados removidos é reportado

Implementação:
    - pandas (sort estável + drop_duplicates(keep="last"))

Chave populada: valor não nulo e, para strings/coleções, não vazio.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

import pandas as pd

from config_cascade.core.nodes.types import ConfigNode


@dataclass(frozen=True)
class DedupResult:
    """Resultado da deduplicação."""

    nodes: List[ConfigNode] = field(default_factory=list)
    duplicates_removed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"kept": [n.id for n in self.nodes], "duplicates_removed": self.duplicates_removed}


def _populated(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) > 0
    return True


def populated_key_count(node: ConfigNode) -> int:
    """Quantidade de chaves de topo populadas no registro do nó."""
    return sum(1 for value in node.to_record().values() if _populated(value))


def deduplicate(candidates: Sequence[ConfigNode]) -> DedupResult:
    """Mantém um candidato por id (o mais completo; empate → o posterior)."""
    items = list(candidates)
    if not items:
        return DedupResult(nodes=[], duplicates_removed=0)

    frame = pd.DataFrame(
        {
            "id": [n.id for n in items],
            "score": [populated_key_count(n) for n in items],
            "position": range(len(items)),
        }
    )

    winners = (
        frame.sort_values(["score", "position"], kind="mergesort")
        .drop_duplicates(subset=["id"], keep="last")
        .set_index("id")["position"]
    )
    first_seen = frame.drop_duplicates(subset=["id"], keep="first")["id"].tolist()

    kept = [items[int(winners[node_id])] for node_id in first_seen]
    return DedupResult(nodes=kept, duplicates_removed=len(items) - len(kept))
