# src/config_cascade/core/config/errors.py
"""
Exceções canônicas da camada de configuração do Config Cascade.

Este módulo define a hierarquia oficial de exceções utilizadas durante
o carregamento, validação estrutural e resolução da configuração do motor.

As exceções aqui definidas representam **violações estruturais
explícitas** da configuração, e não erros de cascata ou de persistência.

Invariantes:
    - Todas as exceções de configuração herdam de `ConfigError`
    - Nenhuma exceção representa erro de nó ou de lote

Limites explícitos:
    - Não executa cascata
    - Não realiza fallback ou recovery
"""


class ConfigError(Exception):
    """
    Exceção base para erros relacionados à configuração do Config Cascade.

    Todas as exceções levantadas durante carregamento, validação estrutural
    e resolução de configuração devem herdar desta classe.
    """


class DefaultsNotFoundError(ConfigError):
    """
    Exceção levantada quando o arquivo de configuração base (defaults)
    não é encontrado no caminho especificado.

    Decisões arquiteturais:
        - O arquivo de defaults é obrigatório
        - Não há criação implícita de defaults
    """


class UnsupportedConfigFormatError(ConfigError):
    """
    Exceção levantada quando o formato do arquivo de configuração
    não é suportado pelo loader.

    Formatos suportados:
        - YAML (.yaml, .yml)
        - JSON (.json)
    """


class InvalidConfigRootTypeError(ConfigError):
    """Conteúdo raiz da configuração não é um dicionário."""


class ConfigTypeConflictError(ConfigError):
    """
    Exceção levantada quando ocorre conflito de tipos durante o deep-merge
    estrito de configuração.

    Exemplo de conflito:
        - base:     {"engine": {"batch_size": 500}}
        - override: {"engine": "fast"}

    Observação:
        O merge de dados de nós usa o modo leniente e nunca levanta
        esta exceção (o valor posterior sempre vence).
    """


class ConfigValidationError(ConfigError):
    """
    Exceção levantada quando um valor da configuração resolvida viola
    as regras de `EngineSettings` (ex.: batch_size <= 0).

    Limites explícitos:
        - Não corrige valores automaticamente
        - Não valida dados de nós
    """


class ConfigParseError(ConfigError):
    """Conteúdo do arquivo não é YAML/JSON válido."""
