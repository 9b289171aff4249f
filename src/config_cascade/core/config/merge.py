# src/config_cascade/core/config/merge.py
"""
Utilitário canônico de deep-merge.

Este módulo implementa a política única de deep-merge utilizada pelo
Config Cascade, tanto para resolver a configuração do motor quanto para
derivar `self_data` e `data` dos nós.

Política de merge:
    - dict + dict → merge recursivo por chave
    - list        → sobrescrita total (sem concatenação, sem dedup)
    - escalar     → sobrescrita direta pelo valor posterior
    - conflito de tipos:
        - strict=True  → erro estrutural explícito (configuração do motor)
        - strict=False → o valor posterior vence (dados de nós)

Princípios fundamentais:
    - O merge é determinístico e puramente funcional
    - Nenhum input é mutado durante o processo

Invariantes:
    - A mesma entrada sempre produz a mesma saída
    - Chaves não sobrescritas são preservadas
    - deep_merge(x, {}) == x e deep_merge({}, y) == y
"""

from copy import deepcopy
from typing import Any, Dict, Iterable

from .errors import ConfigTypeConflictError


def deep_merge(
    base: Dict[str, Any],
    override: Dict[str, Any],
    *,
    strict: bool = True,
) -> Dict[str, Any]:
    """
    Realiza um deep-merge determinístico entre dois dicionários.

    Esta função combina uma estrutura base com um conjunto de overrides,
    produzindo uma nova estrutura sem mutar nenhum dos inputs.

    Decisões arquiteturais:
        - O merge é puramente funcional (inputs não são mutados)
        - Listas nunca são mescladas elemento a elemento
        - No modo estrito, conflitos de tipo são falha fatal
        - No modo leniente, o override sempre vence

    Args:
        base (Dict[str, Any]): Estrutura base (ex.: defaults ou self_data).
        override (Dict[str, Any]): Overrides explícitos.
        strict (bool): Se True, conflitos de tipo levantam erro.

    Returns:
        Dict[str, Any]: Nova estrutura resultante do deep-merge.

    Raises:
        ConfigTypeConflictError: Se os argumentos raiz não forem dicts,
            ou (modo estrito) se houver conflito de tipo em alguma chave.
    """

    if not isinstance(base, dict) or not isinstance(override, dict):
        raise ConfigTypeConflictError(
            f"Deep-merge requer dicts no nível raiz, recebido: "
            f"{type(base).__name__} vs {type(override).__name__}"
        )

    result: Dict[str, Any] = deepcopy(base)

    for key, override_value in override.items():
        if key not in result:
            result[key] = deepcopy(override_value)
            continue

        base_value = result[key]

        # dict -> merge recursivo
        if isinstance(base_value, dict) and isinstance(override_value, dict):
            result[key] = deep_merge(base_value, override_value, strict=strict)
            continue

        # list -> sobrescrita total
        if isinstance(override_value, list):
            result[key] = deepcopy(override_value)
            continue

        if strict and base_value is not None and type(base_value) is not type(override_value):
            raise ConfigTypeConflictError(
                f"Conflito de tipo na chave '{key}': "
                f"{type(base_value).__name__} vs {type(override_value).__name__}"
            )

        # escalar -> sobrescrita
        result[key] = deepcopy(override_value)

    return result


def merge_in_order(sources: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Merge leniente de várias fontes em ordem (a posterior vence)."""
    result: Dict[str, Any] = {}
    for source in sources:
        result = deep_merge(result, source, strict=False)
    return result
