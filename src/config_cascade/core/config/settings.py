# src/config_cascade/core/config/settings.py
"""
EngineSettings: parâmetros tipados do motor de cascata.

Este módulo converte a configuração resolvida (dict) em uma estrutura
imutável e validada, consumida pelo CascadeEngine e pelo BatchWriter.

Seções lidas:

    engine:
      batch_size: 500
      max_retries: 3
      base_delay_seconds: 1.0
      delay_between_batches_seconds: 0.1
      max_workers: 1
      max_passes: 3
      dry_run: false
    store:
      path: null
    benchmark:
      seed_ids: [property_required]

Invariantes:
    - batch_size, max_retries, max_workers e max_passes são inteiros >= 1
    - delays são números >= 0
    - Valores ausentes assumem os defaults documentados acima
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .errors import ConfigValidationError


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = (config or {}).get(name) or {}
    if not isinstance(value, dict):
        raise ConfigValidationError(f"Seção '{name}' deve ser um mapa, recebido: {type(value).__name__}")
    return value


def _positive_int(section: Dict[str, Any], key: str, default: int, *, where: str) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigValidationError(f"{where}.{key} deve ser inteiro >= 1, recebido: {value!r}")
    return value


def _non_negative(section: Dict[str, Any], key: str, default: float, *, where: str) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ConfigValidationError(f"{where}.{key} deve ser número >= 0, recebido: {value!r}")
    return float(value)


@dataclass(frozen=True)
class EngineSettings:
    """Parâmetros efetivos do motor (imutáveis)."""

    batch_size: int = 500
    max_retries: int = 3
    base_delay_seconds: float = 1.0
    delay_between_batches_seconds: float = 0.1
    max_workers: int = 1
    max_passes: int = 3
    dry_run: bool = False
    store_path: Optional[str] = None
    benchmark_seed_ids: Tuple[str, ...] = field(default=("property_required",))

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "EngineSettings":
        """Constrói e valida settings a partir da configuração resolvida.

        Raises:
            ConfigValidationError: Se algum valor violar as regras do motor.
        """
        engine = _section(config, "engine")
        store = _section(config, "store")
        bench = _section(config, "benchmark")

        dry_run = engine.get("dry_run", False)
        if not isinstance(dry_run, bool):
            raise ConfigValidationError(f"engine.dry_run deve ser bool, recebido: {dry_run!r}")

        store_path = store.get("path")
        if store_path is not None and (not isinstance(store_path, str) or not store_path.strip()):
            raise ConfigValidationError("store.path deve ser string não vazia ou null")

        seeds = bench.get("seed_ids", ["property_required"])
        if not isinstance(seeds, list) or not all(isinstance(s, str) and s for s in seeds):
            raise ConfigValidationError("benchmark.seed_ids deve ser lista de ids (strings)")

        return cls(
            batch_size=_positive_int(engine, "batch_size", 500, where="engine"),
            max_retries=_positive_int(engine, "max_retries", 3, where="engine"),
            base_delay_seconds=_non_negative(engine, "base_delay_seconds", 1.0, where="engine"),
            delay_between_batches_seconds=_non_negative(
                engine, "delay_between_batches_seconds", 0.1, where="engine"
            ),
            max_workers=_positive_int(engine, "max_workers", 1, where="engine"),
            max_passes=_positive_int(engine, "max_passes", 3, where="engine"),
            dry_run=dry_run,
            store_path=store_path,
            benchmark_seed_ids=tuple(seeds),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "engine": {
                "batch_size": self.batch_size,
                "max_retries": self.max_retries,
                "base_delay_seconds": self.base_delay_seconds,
                "delay_between_batches_seconds": self.delay_between_batches_seconds,
                "max_workers": self.max_workers,
                "max_passes": self.max_passes,
                "dry_run": self.dry_run,
            },
            "store": {"path": self.store_path},
            "benchmark": {"seed_ids": list(self.benchmark_seed_ids)},
        }
