# src/config_cascade/core/persistence/batch_writer.py
"""
BatchWriter: persistência em lotes com retry, backoff e cadência.

Recebe a lista (já deduplicada e filtrada por mudança) de nós a
persistir e a grava no RecordStore em lotes de tamanho fixo.

Política por lote:
    - upsert em massa com conflict_key "id"
    - até `max_retries` tentativas; entre tentativas, espera
      base_delay × 2^tentativa (tentativa = falhas acumuladas)
    - esgotadas as tentativas, o lote é marcado como falho e os lotes
      restantes continuam (falha parcial não é fatal)
    - entre lotes (modo sequencial), pausa de `delay_between_batches`

Modo concorrente:
    - `max_workers > 1` despacha os lotes num ThreadPoolExecutor, só
      depois de toda a recomputação ter terminado
    - falhas permanecem isoladas por lote; não há pausa entre lotes

Métricas:
    total_records, processed_records, batches_processed, failed_batches,
    failed_records, duration_ms, throughput (registros/s) e o desfecho
    de cada lote.

`sleep` e `clock` são injetáveis para que testes nunca esperem.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from config_cascade.core.config.settings import EngineSettings
from config_cascade.core.errors import ErrorPayload, batch_failed
from config_cascade.core.nodes.types import ConfigNode

from .store import RecordStore, UpsertResult

STEP_ID = "persist"


@dataclass(frozen=True)
class BatchOutcome:
    """Desfecho de um lote."""

    index: int
    size: int
    attempts: int
    ok: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "size": self.size,
            "attempts": self.attempts,
            "ok": self.ok,
            "error": self.error,
        }


@dataclass(frozen=True)
class BatchMetrics:
    """Métricas agregadas de uma escrita em lotes."""

    total_records: int = 0
    processed_records: int = 0
    batches_processed: int = 0
    failed_batches: int = 0
    failed_records: int = 0
    duration_ms: int = 0
    throughput: float = 0.0
    batches: Tuple[BatchOutcome, ...] = field(default_factory=tuple)

    @property
    def success(self) -> bool:
        return self.failed_batches == 0

    def errors(self) -> List[ErrorPayload]:
        return [
            batch_failed(batch_index=b.index, size=b.size, attempts=b.attempts, error=b.error)
            for b in self.batches
            if not b.ok
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_records": self.total_records,
            "processed_records": self.processed_records,
            "batches_processed": self.batches_processed,
            "failed_batches": self.failed_batches,
            "failed_records": self.failed_records,
            "duration_ms": self.duration_ms,
            "throughput": round(self.throughput, 2),
            "batches": [b.to_dict() for b in self.batches],
        }


def split_batches(nodes: Sequence[ConfigNode], batch_size: int) -> List[List[ConfigNode]]:
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    return [list(nodes[i:i + batch_size]) for i in range(0, len(nodes), batch_size)]


class BatchWriter:
    """Escritor em lotes tolerante a falhas sobre um RecordStore injetado."""

    def __init__(
        self,
        store: RecordStore,
        *,
        batch_size: int = 500,
        max_retries: int = 3,
        base_delay_seconds: float = 1.0,
        delay_between_batches_seconds: float = 0.1,
        max_workers: int = 1,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.perf_counter,
        ctx: Any = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self.store = store
        self.batch_size = batch_size
        self.max_retries = max_retries
        self.base_delay_seconds = base_delay_seconds
        self.delay_between_batches_seconds = delay_between_batches_seconds
        self.max_workers = max_workers
        self.sleep = sleep
        self.clock = clock
        self.ctx = ctx

    @classmethod
    def from_settings(cls, store: RecordStore, settings: EngineSettings, **kwargs: Any) -> "BatchWriter":
        return cls(
            store,
            batch_size=settings.batch_size,
            max_retries=settings.max_retries,
            base_delay_seconds=settings.base_delay_seconds,
            delay_between_batches_seconds=settings.delay_between_batches_seconds,
            max_workers=settings.max_workers,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Lote individual (retry + backoff)
    # ------------------------------------------------------------------
    def _attempt(self, batch: Sequence[ConfigNode]) -> UpsertResult:
        try:
            return self.store.upsert_batch(batch, conflict_key="id")
        except Exception as e:
            # falha transitória de I/O vira resultado com erro (retry)
            return UpsertResult(error=f"{e.__class__.__name__}: {e}")

    def write_batch(self, index: int, batch: Sequence[ConfigNode]) -> BatchOutcome:
        error: Optional[str] = None
        for attempt in range(1, self.max_retries + 1):
            result = self._attempt(batch)
            if result.ok:
                self._log("info", f"lote {index} gravado", batch_index=index, size=len(batch), attempts=attempt)
                return BatchOutcome(index=index, size=len(batch), attempts=attempt, ok=True)
            error = result.error
            self._log("warning", f"lote {index} falhou (tentativa {attempt})", batch_index=index, error=error)
            if attempt < self.max_retries:
                self.sleep(self.base_delay_seconds * (2 ** attempt))
        return BatchOutcome(index=index, size=len(batch), attempts=self.max_retries, ok=False, error=error)

    # ------------------------------------------------------------------
    # Escrita completa
    # ------------------------------------------------------------------
    def write(self, nodes: Sequence[ConfigNode]) -> BatchMetrics:
        started = self.clock()
        batches = split_batches(list(nodes), self.batch_size)

        if self.max_workers > 1 and len(batches) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                outcomes = list(pool.map(lambda pair: self.write_batch(*pair), enumerate(batches)))
        else:
            outcomes = []
            for index, batch in enumerate(batches):
                outcomes.append(self.write_batch(index, batch))
                if index < len(batches) - 1 and self.delay_between_batches_seconds > 0:
                    self.sleep(self.delay_between_batches_seconds)

        elapsed = max(self.clock() - started, 0.0)
        processed = sum(o.size for o in outcomes if o.ok)
        failed = [o for o in outcomes if not o.ok]

        metrics = BatchMetrics(
            total_records=len(nodes),
            processed_records=processed,
            batches_processed=len(outcomes),
            failed_batches=len(failed),
            failed_records=sum(o.size for o in failed),
            duration_ms=int(elapsed * 1000),
            throughput=(processed / elapsed) if elapsed > 0 else float(processed),
            batches=tuple(outcomes),
        )

        if self.ctx is not None:
            for payload in metrics.errors():
                self.ctx.report(step_id=STEP_ID, payload=payload, level="error")

        return metrics

    def _log(self, level: str, message: str, **extra: Any) -> None:
        if self.ctx is not None:
            self.ctx.log(step_id=STEP_ID, level=level, message=message, **extra)
