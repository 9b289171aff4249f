# src/config_cascade/core/compute/changes.py
"""
ChangeDetector: comparação estrutural insensível a ordem.

Decide se um nó recém-computado difere de forma significativa do seu
estado persistido. Ambos os lados são normalizados antes da comparação:
    - chaves de objetos ordenadas recursivamente
    - arrays ordenados pela sua forma serializada canônica

Em seguida, os campos `self_data`, `override_data`, `data`, `deps` e
`tags` são comparados pela serialização canônica.

Invariantes:
    - Diferenças apenas de ordem de chaves ou de arrays não contam como mudança
    - normalize(normalize(x)) == normalize(x)
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

from config_cascade.core.config.hashing import canonical_json
from config_cascade.core.nodes.types import ConfigNode

COMPARED_FIELDS = ("self_data", "override_data", "data", "deps", "tags")


def normalize(value: Any) -> Any:
    """Forma normal de um valor JSON (dicts ordenados, arrays ordenados)."""
    if isinstance(value, dict):
        return {key: normalize(value[key]) for key in sorted(value, key=str)}
    if isinstance(value, (list, tuple)):
        items = [normalize(v) for v in value]
        return sorted(items, key=canonical_json)
    return value


def fingerprint(value: Any) -> str:
    return canonical_json(normalize(value))


def changed_fields(
    before: Optional[ConfigNode],
    after: ConfigNode,
    fields: Sequence[str] = COMPARED_FIELDS,
) -> List[str]:
    """Campos que diferem após normalização (todos, se não há estado anterior)."""
    if before is None:
        return list(fields)
    return [
        name for name in fields
        if fingerprint(getattr(before, name)) != fingerprint(getattr(after, name))
    ]


def has_changed(
    before: Optional[ConfigNode],
    after: ConfigNode,
    fields: Sequence[str] = COMPARED_FIELDS,
) -> bool:
    return bool(changed_fields(before, after, fields))
