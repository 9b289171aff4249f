# src/config_cascade/core/config/hashing.py
"""
Serialização canônica e hashing de configuração.

Este módulo define a forma canônica de serializar estruturas JSON no
Config Cascade. Ela é usada para:
    - gerar o hash da configuração efetiva (registrado no Manifest)
    - comparar payloads de nós de forma estável (ChangeDetector)

Política de serialização:
    - chaves ordenadas
    - separadores compactos
    - UTF-8 sem escape de caracteres não ASCII

Invariantes:
    - Estruturas equivalentes produzem a mesma string e o mesmo hash
    - O hash é sempre uma string hexadecimal de 64 caracteres (SHA-256)
"""


import hashlib
import json
from typing import Any, Dict


def canonical_json(value: Any) -> str:
    """Serializa `value` em JSON canônico (chaves ordenadas, sem espaços)."""
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def compute_config_hash(config: Dict[str, Any]) -> str:
    """
    Gera um hash determinístico da configuração efetiva do motor.

    Args:
        config (Dict[str, Any]): Configuração efetiva resolvida.

    Returns:
        str: Hash SHA-256 hexadecimal da configuração.

    Raises:
        TypeError: Se o objeto fornecido não for um dicionário.
    """

    if not isinstance(config, dict):
        raise TypeError(
            f"Config para hashing deve ser dict, recebido: {type(config).__name__}"
        )

    return hashlib.sha256(canonical_json(config).encode("utf-8")).hexdigest()
