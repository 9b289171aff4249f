# src/config_cascade/core/config/__init__.py

"""
Camada de configuração do Config Cascade.

Este pacote contém as estruturas e utilitários responsáveis por carregar,
mesclar, validar e identificar a configuração de execução do motor, além
da política de deep-merge reutilizada na derivação de dados dos nós.

Responsabilidades do pacote:
    - Carregamento de arquivos de configuração (defaults + overrides locais)
    - Deep-merge determinístico (estrito para config, leniente para nós)
    - Serialização canônica e hash para rastreabilidade
    - Conversão para `EngineSettings` tipado

Limites explícitos:
    - Não executa cascata
    - Não acessa o RecordStore
"""

from .errors import (
    ConfigError,
    ConfigParseError,
    ConfigTypeConflictError,
    ConfigValidationError,
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)
from .hashing import canonical_json, compute_config_hash
from .loader import ResolvedConfig, load_config, load_settings, read_config_file
from .merge import deep_merge, merge_in_order
from .settings import EngineSettings

__all__ = [
    "ConfigError",
    "ConfigParseError",
    "ConfigTypeConflictError",
    "ConfigValidationError",
    "DefaultsNotFoundError",
    "InvalidConfigRootTypeError",
    "UnsupportedConfigFormatError",
    "canonical_json",
    "compute_config_hash",
    "load_config",
    "load_settings",
    "read_config_file",
    "ResolvedConfig",
    "deep_merge",
    "merge_in_order",
    "EngineSettings",
]
