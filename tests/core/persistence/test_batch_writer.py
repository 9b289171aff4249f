# tests/core/persistence/test_batch_writer.py
"""
Testes do BatchWriter (lotes, retry, backoff e métricas).

Este módulo valida a política de persistência em lotes tolerante a falhas.

Os testes asseguram que:
- um lote que falha permanentemente não impede os demais
- o backoff segue base_delay × 2^tentativa entre tentativas
- falhas transitórias (inclusive exceções do store) são recuperadas
- as métricas refletem lotes processados, falhos e throughput
- o modo concorrente mantém falhas isoladas por lote

Decisões arquiteturais:
    - `sleep` e `clock` são injetados: nenhum teste espera de verdade
    - Falhas são simuladas via InMemoryRecordStore(fail_ids=...)
"""

import pytest

try:
    from config_cascade.core.engine.context import CascadeContext
    from config_cascade.core.errors import BATCH_FAILED
    from config_cascade.core.nodes.types import ConfigNode
    from config_cascade.core.persistence.batch_writer import BatchWriter, split_batches
    from config_cascade.core.persistence.store import InMemoryRecordStore, UpsertResult
except Exception as e:  # noqa: BLE001
    BatchWriter = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    """
    Garante que o BatchWriter e o store em memória estejam disponíveis.

    Falha com mensagem orientada quando os módulos de persistência não
    podem ser importados.
    """
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing persistence modules. Implement:\n"
            "- src/config_cascade/core/persistence/batch_writer.py (BatchWriter)\n"
            "- src/config_cascade/core/persistence/store.py (InMemoryRecordStore)\n"
            f"Import error: {_IMPORT_ERR}"
        )


def _nodes(n):
    return [ConfigNode(id=f"n{i}", sub_kind="field", data={"i": i}) for i in range(n)]


class _Clock:
    def __init__(self, *values):
        self._values = list(values)

    def __call__(self):
        return self._values.pop(0)


class _FlakyStore(InMemoryRecordStore):
    """Falha nas primeiras `failures` chamadas de upsert (erro e exceção alternados)."""

    def __init__(self, failures):
        super().__init__()
        self.failures = failures

    def upsert_batch(self, nodes, conflict_key="id"):
        if self.failures > 0:
            self.failures -= 1
            if self.failures % 2:
                raise ConnectionError("connection reset")
            return UpsertResult(error="timeout")
        return super().upsert_batch(nodes, conflict_key)


def test_one_failing_batch_out_of_five(sleeps, fake_sleep):
    """
    Propriedade de falha parcial: 1 de 5 lotes falha permanentemente.

    Invariantes:
        - Os outros 4 lotes são tentados e contados como sucesso
        - O lote falho é tentado `max_retries` vezes
        - Backoff 2s e 4s entre as tentativas do lote falho
        - Pausa entre lotes de 0.1s
    """
    _require_imports()
    store = InMemoryRecordStore(fail_ids={"n2"})
    ctx = CascadeContext()
    writer = BatchWriter(
        store,
        batch_size=1,
        max_retries=3,
        base_delay_seconds=1.0,
        delay_between_batches_seconds=0.1,
        sleep=fake_sleep,
        clock=_Clock(0.0, 2.0),
        ctx=ctx,
    )

    metrics = writer.write(_nodes(5))

    assert metrics.batches_processed == 5
    assert metrics.failed_batches == 1
    assert metrics.processed_records == 4
    assert metrics.failed_records == 1
    assert metrics.success is False
    assert metrics.duration_ms == 2000
    assert metrics.throughput == pytest.approx(2.0)
    assert [b.attempts for b in metrics.batches] == [1, 1, 3, 1, 1]

    assert sleeps == [0.1, 0.1, 2.0, 4.0, 0.1, 0.1]
    assert len(store.upsert_calls) == 7
    assert store.get("n2") is None
    assert store.get("n4") is not None

    [payload] = ctx.anomalies_of(BATCH_FAILED)
    assert payload.details["batch_index"] == 2
    assert payload.details["attempts"] == 3


def test_transient_failures_are_retried(sleeps, fake_sleep):
    _require_imports()
    store = _FlakyStore(failures=2)
    writer = BatchWriter(store, batch_size=10, base_delay_seconds=0.5, sleep=fake_sleep)

    metrics = writer.write(_nodes(3))

    assert metrics.success is True
    assert metrics.processed_records == 3
    assert metrics.batches[0].attempts == 3
    assert sleeps == [1.0, 2.0]


def test_concurrent_mode_isolates_failures(fake_sleep):
    """
    Verifica o despacho concorrente (max_workers > 1).

    Invariantes:
        - O desfecho de cada lote mantém o índice original
        - Falha de um lote não afeta os demais
    """
    _require_imports()
    store = InMemoryRecordStore(fail_ids={"n0"})
    writer = BatchWriter(store, batch_size=2, max_retries=2, max_workers=3, sleep=fake_sleep)

    metrics = writer.write(_nodes(5))

    assert [b.index for b in metrics.batches] == [0, 1, 2]
    assert [b.ok for b in metrics.batches] == [False, True, True]
    assert metrics.processed_records == 3
    assert metrics.failed_records == 2
    assert {n.id for n in store.fetch_all()} == {"n2", "n3", "n4"}


def test_empty_write_has_zero_metrics(fake_sleep):
    _require_imports()
    metrics = BatchWriter(InMemoryRecordStore(), sleep=fake_sleep).write([])
    assert metrics.batches_processed == 0
    assert metrics.success is True
    assert metrics.to_dict()["batches"] == []


def test_split_batches_and_invalid_sizes():
    _require_imports()
    assert [len(b) for b in split_batches(_nodes(5), 2)] == [2, 2, 1]
    with pytest.raises(ValueError):
        split_batches(_nodes(1), 0)
    with pytest.raises(ValueError):
        BatchWriter(InMemoryRecordStore(), max_retries=0)


def test_from_settings_uses_engine_parameters(fast_settings):
    _require_imports()
    writer = BatchWriter.from_settings(InMemoryRecordStore(), fast_settings)
    assert writer.batch_size == 500
    assert writer.max_retries == 3
    assert writer.delay_between_batches_seconds == 0.0
