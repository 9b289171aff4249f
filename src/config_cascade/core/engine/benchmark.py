"""Benchmark da cascata: tempo, registros atualizados e taxa."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from .engine import CascadeEngine, CascadeResult


@dataclass(frozen=True)
class BenchmarkReport:
    seed_ids: Tuple[str, ...]
    duration_seconds: float
    records_updated: int
    rate: float
    result: CascadeResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seed_ids": list(self.seed_ids),
            "duration_seconds": round(self.duration_seconds, 4),
            "records_updated": self.records_updated,
            "rate": round(self.rate, 2),
            "result": self.result.to_dict(),
        }

    def lines(self) -> list:
        return [
            f"seeds: {', '.join(self.seed_ids)}",
            f"duração: {self.duration_seconds:.2f}s",
            f"registros atualizados: {self.records_updated}",
            f"taxa: {self.rate:.1f} registros/s",
        ]


def run_benchmark(
    engine: CascadeEngine,
    seed_ids: Optional[Iterable[str]] = None,
    *,
    clock: Callable[[], float] = time.perf_counter,
) -> BenchmarkReport:
    """Executa uma cascata completa a partir de `seed_ids` e mede a taxa.

    Sem `seed_ids`, usa `benchmark.seed_ids` do settings do motor.
    """
    seeds = tuple(seed_ids) if seed_ids is not None else engine.settings.benchmark_seed_ids

    started = clock()
    result = engine.cascade(seeds)
    elapsed = max(clock() - started, 0.0)

    updated = result.updated_count if not result.dry_run else len(result.would_change)
    rate = updated / elapsed if elapsed > 0 else float(updated)
    engine.ctx.log(
        step_id="benchmark",
        level="info",
        message="benchmark concluído",
        duration_seconds=elapsed,
        records_updated=updated,
    )
    return BenchmarkReport(
        seed_ids=seeds,
        duration_seconds=elapsed,
        records_updated=updated,
        rate=rate,
        result=result,
    )
