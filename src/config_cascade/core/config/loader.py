# src/config_cascade/core/config/loader.py
"""
Loader de configuração do Config Cascade.

A configuração efetiva é uma pilha de camadas:

    defaults  → arquivo obrigatório (ou os defaults embutidos de `EngineSettings`)
    local     → override opcional, aplicado por cima com deep-merge estrito

`load_config` devolve só o dicionário resolvido; `load_settings` também
valida e converte para `EngineSettings` e guarda as fontes lidas, para
que o CLI registre de onde veio cada execução.

Invariantes:
    - Arquivo vazio vale `{}`
    - A raiz de cada camada é sempre um `dict`
    - Erro de sintaxe vira `ConfigParseError`, nunca exceção do parser
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
import json

import yaml  # PyYAML

from .errors import (
    ConfigParseError,
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)
from .merge import deep_merge
from .settings import EngineSettings

PathLike = Union[str, Path]

_PARSERS: Dict[str, Callable[[str], Any]] = {
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
    ".json": json.loads,
}

_PARSE_ERRORS = (yaml.YAMLError, json.JSONDecodeError)


@dataclass(frozen=True)
class ResolvedConfig:
    """Configuração resolvida, settings validados e as camadas lidas."""

    config: Dict[str, Any]
    settings: EngineSettings
    sources: Tuple[str, ...] = ()


def read_config_file(path: PathLike) -> Dict[str, Any]:
    """
    Lê uma camada de configuração (YAML ou JSON).

    Raises:
        DefaultsNotFoundError: Se o arquivo não existir.
        UnsupportedConfigFormatError: Se a extensão não tiver parser.
        ConfigParseError: Se o conteúdo não for YAML/JSON válido.
        InvalidConfigRootTypeError: Se a raiz não for um dicionário.
    """
    path = Path(path)
    if not path.is_file():
        raise DefaultsNotFoundError(f"Arquivo de configuração não encontrado: {path}")

    parse = _PARSERS.get(path.suffix.lower())
    if parse is None:
        raise UnsupportedConfigFormatError(f"Formato não suportado: {path.suffix}")

    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}

    try:
        data = parse(text)
    except _PARSE_ERRORS as e:
        raise ConfigParseError(f"Conteúdo inválido em {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(f"Config root deve ser dict, recebido: {type(data).__name__}")
    return data


def _apply_local(
    base: Dict[str, Any],
    local_path: Optional[PathLike],
    sources: List[str],
) -> Dict[str, Any]:
    if local_path is None or not Path(local_path).exists():
        return base
    sources.append(str(local_path))
    return deep_merge(base, read_config_file(local_path))


def load_config(
    *,
    defaults_path: PathLike,
    local_path: Optional[PathLike] = None,
) -> Dict[str, Any]:
    """
    Resolve defaults + override local num único dicionário.

    O override local ausente é ignorado; quando presente, vence os defaults.

    Raises:
        ConfigError: Qualquer falha de leitura ou conflito de tipo no merge.
    """
    return _apply_local(read_config_file(defaults_path), local_path, [])


def load_settings(
    *,
    defaults_path: Optional[PathLike] = None,
    local_path: Optional[PathLike] = None,
) -> ResolvedConfig:
    """
    Resolve a configuração e valida `EngineSettings` numa chamada.

    Sem `defaults_path`, os defaults embutidos de `EngineSettings` fazem
    o papel do arquivo base (e não entram em `sources`).

    Raises:
        ConfigError: Falha de leitura, merge ou validação dos valores.
    """
    sources: List[str] = []
    if defaults_path is None:
        base = EngineSettings().to_dict()
    else:
        base = read_config_file(defaults_path)
        sources.append(str(defaults_path))

    config = _apply_local(base, local_path, sources)
    return ResolvedConfig(config=config, settings=EngineSettings.from_config(config), sources=tuple(sources))
