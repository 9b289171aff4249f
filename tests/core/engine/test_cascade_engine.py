# tests/core/engine/test_cascade_engine.py
"""
Testes do CascadeEngine.cascade (fluxo fetch → resolve → compute → persist).

Os testes asseguram que:
- a mudança de um nó é propagada a todos os dependentes transitivos
- uma segunda execução sem novas mudanças não grava nada
- dry-run computa sem gravar
- nós soft-deleted são percorridos mas não recomputados
- ids inexistentes viram anomalia NODE_NOT_FOUND, sem abortar
- violações de schema viram anomalia INVALID_NODE_DATA, sem abortar
- store indisponível é fatal antes de qualquer computação
- falha de lote é parcial e reportada no resultado
- falha inesperada vira resultado FAILED com payload estruturado

Decisões arquiteturais:
    - `now` é fixo para verificar o carimbo `updated_at`
    - `sleep` é sempre registrado (nenhuma espera real)
"""

from dataclasses import replace
from datetime import datetime, timezone

import pytest

try:
    from config_cascade.core.config.settings import EngineSettings
    from config_cascade.core.engine import engine as engine_module
    from config_cascade.core.errors import BATCH_FAILED, ENGINE_EXECUTION_ERROR, INVALID_NODE_DATA, NODE_NOT_FOUND
    from config_cascade.core.exceptions import StoreUnavailableError
    from config_cascade.core.persistence.json_store import JsonFileRecordStore
    from config_cascade.core.persistence.store import InMemoryRecordStore
except Exception as e:  # noqa: BLE001
    engine_module = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


FIXED_NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)

EXPECTED_ORDER = (
    "property_required",
    "field_name",
    "fields_contact",
    "page_contact",
    "space_crm",
    "workspace_sales",
    "app_main",
)


def _require_imports():
    """
    Garante que o engine esteja disponível para os testes.

    Falha explicitamente quando `CascadeEngine` ou suas dependências
    não podem ser importados.
    """
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing cascade engine. Implement:\n"
            "- src/config_cascade/core/engine/engine.py (CascadeEngine, CascadeResult)\n"
            f"Import error: {_IMPORT_ERR}"
        )


def _fixed_now():
    return FIXED_NOW


def test_cascade_propagates_to_all_dependents(memory_store, engine_factory):
    """
    Verifica a propagação completa a partir de `property_required`.

    Invariantes:
        - Ordem de atualização por profundidade
        - A semente não muda (já estava materializada), os 6 dependentes mudam
        - `updated_at` é carimbado e `version` não é alterada
    """
    _require_imports()
    engine = engine_factory(memory_store, now=_fixed_now)

    result = engine.cascade(["property_required"])

    assert result.success is True
    assert result.order == EXPECTED_ORDER
    assert result.affected_count == 7
    assert result.updated_count == 6
    assert set(result.would_change) == set(EXPECTED_ORDER[1:])
    assert result.passes == 1
    assert result.metrics.batches_processed == 1

    field_name = memory_store.get("field_name")
    assert field_name.self_data == {"required": True, "input": "text", "maxLength": 255}
    assert field_name.data == {"required": True, "input": "text", "maxLength": 255, "label": "Name"}
    assert field_name.updated_at == FIXED_NOW.isoformat()
    assert field_name.version == 1

    app = memory_store.get("app_main")
    page = app.data["workspaces"]["workspace_sales"]["spaces"]["space_crm"]["pages"]["page_contact"]
    assert page["title"] == "Contato"
    assert page["fields"]["field_name"]["required"] is True


def test_cascade_is_idempotent(memory_store, engine_factory):
    _require_imports()
    engine = engine_factory(memory_store)
    engine.cascade(["property_required"])
    calls = len(memory_store.upsert_calls)

    again = engine.cascade(["property_required"])

    assert again.success is True
    assert again.updated_count == 0
    assert again.would_change == ()
    assert again.metrics.batches_processed == 0
    assert len(memory_store.upsert_calls) == calls


def test_cascade_dry_run_never_writes(memory_store, sample_nodes, engine_factory):
    """
    Verifica que dry-run computa o mesmo conjunto sem tocar o store.

    Invariantes:
        - Nenhuma chamada de upsert
        - `would_change` lista os nós que mudariam
        - `metrics` é None
    """
    _require_imports()
    engine = engine_factory(memory_store)

    result = engine.cascade(["property_required"], dry_run=True)

    assert result.dry_run is True
    assert result.updated_count == 0
    assert result.metrics is None
    assert len(result.would_change) == 6
    assert memory_store.upsert_calls == []
    assert memory_store.fetch_all() == sample_nodes


def test_dry_run_default_comes_from_settings(memory_store, engine_factory):
    _require_imports()
    engine = engine_factory(memory_store, EngineSettings(dry_run=True, delay_between_batches_seconds=0.0))

    assert engine.cascade(["property_required"]).dry_run is True
    assert engine.cascade(["property_required"], dry_run=False).updated_count == 6


def test_deleted_node_is_traversed_not_recomputed(sample_nodes, engine_factory):
    _require_imports()
    nodes = [replace(n, deleted=True) if n.id == "field_name" else n for n in sample_nodes]
    store = InMemoryRecordStore(nodes)

    result = engine_factory(store).cascade(["property_required"])

    assert "field_name" in result.order
    assert "field_name" not in result.would_change
    assert "fields_contact" in result.would_change
    assert store.get("field_name").self_data == {}
    assert store.get("fields_contact").self_data["field_name"] == {"label": "Name"}


def test_unknown_seed_is_reported_not_fatal(memory_store, engine_factory):
    _require_imports()
    engine = engine_factory(memory_store)

    result = engine.cascade(["ghost", "property_text"])

    assert result.success is True
    assert "ghost" not in result.order
    assert result.order[0] == "property_text"
    assert len(engine.ctx.anomalies_of(NODE_NOT_FOUND, node_id="ghost")) == 1
    assert any("ghost" in w for w in result.warnings)


def test_schema_violation_is_reported_not_fatal(sample_nodes, make_node, engine_factory):
    """
    Um property que depende de field viola as regras de tipo.

    Invariantes:
        - A violação vira uma única anomalia INVALID_NODE_DATA
        - O nó ainda é recomputado e gravado
    """
    _require_imports()
    bad = make_node("property_bad", "property", ["field_name"])
    store = InMemoryRecordStore([*sample_nodes, bad])
    engine = engine_factory(store)

    result = engine.cascade(["property_required"])

    assert result.success is True
    assert "property_bad" in result.order
    [anomaly] = engine.ctx.anomalies_of(INVALID_NODE_DATA, node_id="property_bad")
    assert anomaly.details["issues"] == ["nó property não pode depender de field (field_name)"]
    assert store.get("property_bad").self_data["required"] is True


class _BrokenStore(InMemoryRecordStore):
    def fetch_all(self):
        raise ConnectionError("connection refused")


def test_store_unavailable_is_fatal(engine_factory, tmp_path):
    """
    Store inacessível interrompe a execução antes da computação.

    Invariantes:
        - Exceções arbitrárias do store viram StoreUnavailableError
        - Arquivo ausente no JsonFileRecordStore também é fatal
    """
    _require_imports()
    with pytest.raises(StoreUnavailableError) as exc:
        engine_factory(_BrokenStore()).cascade(["property_required"])
    assert exc.value.details["reason"].startswith("ConnectionError")

    with pytest.raises(StoreUnavailableError):
        engine_factory(JsonFileRecordStore(tmp_path / "missing.json")).cascade(["a"])


def test_failed_batch_is_partial(sample_nodes, sleeps, engine_factory):
    """
    Um lote falho não interrompe os demais e torna o resultado FAILED.

    Com batch_size=1 e max_retries=2, o lote de `space_crm` é tentado
    duas vezes (backoff de 2s registrado) e os outros 5 nós são gravados.
    """
    _require_imports()
    store = InMemoryRecordStore(sample_nodes, fail_ids={"space_crm"})
    settings = EngineSettings(batch_size=1, max_retries=2, delay_between_batches_seconds=0.0)
    engine = engine_factory(store, settings)

    result = engine.cascade(["property_required"])

    assert result.success is False
    assert result.updated_count == 5
    assert result.failed_count == 1
    assert result.metrics.failed_batches == 1
    assert sleeps == [2.0]
    assert store.get("space_crm").self_data == {}
    assert len(engine.ctx.anomalies_of(BATCH_FAILED)) == 1


def test_unexpected_failure_becomes_failed_result(memory_store, engine_factory, monkeypatch):
    _require_imports()

    def _explode(*args, **kwargs):
        raise RuntimeError("resolver quebrado")

    monkeypatch.setattr(engine_module, "resolve_affected", _explode)
    result = engine_factory(memory_store).cascade(["property_required"])

    assert result.success is False
    assert result.error.type == ENGINE_EXECUTION_ERROR
    assert result.error.details["stage"] == "resolve"
    assert result.error.details["exc_message"] == "resolver quebrado"
    assert memory_store.upsert_calls == []


def test_result_to_dict_is_serializable(memory_store, engine_factory):
    _require_imports()
    data = engine_factory(memory_store).cascade(["property_required"], dry_run=True).to_dict()

    assert data["command"] == "cascade"
    assert data["order"] == list(EXPECTED_ORDER)
    assert data["metrics"] is None
    assert data["error"] is None
