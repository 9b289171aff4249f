# tests/core/engine/test_convergence.py
"""
Testes do loop de convergência do CascadeEngine.

Cobre:
    - ciclos recomputados como uma unidade (sem bloqueio intra-ciclo)
    - nó cuja dependência falhou é adiado (UNREADY_DEPENDENCY), nunca
      computado com dado obsoleto
    - falhas transitórias se resolvem no passe seguinte
    - `max_passes` e "passe sem progresso" encerram o loop
"""

import pytest

try:
    from config_cascade.core.config.settings import EngineSettings
    from config_cascade.core.engine import engine as engine_module
    from config_cascade.core.errors import CYCLE_DETECTED, ENGINE_EXECUTION_ERROR, UNREADY_DEPENDENCY
    from config_cascade.core.persistence.store import InMemoryRecordStore
except Exception as e:  # noqa: BLE001
    engine_module = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing cascade engine. Implement:\n"
            "- src/config_cascade/core/engine/engine.py (CascadeEngine)\n"
            f"Import error: {_IMPORT_ERR}"
        )


def _failing_recompute(monkeypatch, node_id, *, times=None):
    """Faz `recompute` falhar para `node_id` (sempre, ou nas primeiras `times` chamadas)."""
    original = engine_module.recompute
    calls = {"n": 0}

    def _recompute(node, **kwargs):
        if node.id == node_id:
            calls["n"] += 1
            if times is None or calls["n"] <= times:
                raise RuntimeError(f"falha ao computar {node_id}")
        return original(node, **kwargs)

    monkeypatch.setattr(engine_module, "recompute", _recompute)
    return calls


def test_cycle_is_recomputed_as_one_unit(make_node, engine_factory):
    """
    x ↔ y formam um ciclo alimentado por `a`.

    Invariantes:
        - Membros do ciclo ficam contíguos, em ordem lexicográfica
        - Nenhum membro é adiado por outro membro do mesmo ciclo
        - O ciclo é reportado como CYCLE_DETECTED e em `result.cycles`
    """
    _require_imports()
    store = InMemoryRecordStore([
        make_node("a", "property", override={"a": 1}),
        make_node("x", "field", ["a", "y"]),
        make_node("y", "field", ["x"]),
    ])
    engine = engine_factory(store)

    result = engine.cascade(["a"])

    assert result.order == ("a", "x", "y")
    assert result.cycles == (("x", "y"),)
    assert result.passes == 1
    assert result.success is True
    assert store.get("x").data == {"a": 1}
    assert store.get("y").data == {"a": 1}
    assert engine.ctx.anomalies_of(UNREADY_DEPENDENCY) == []
    [cycle] = engine.ctx.anomalies_of(CYCLE_DETECTED)
    assert cycle.details["members"] == ["x", "y"]


def test_failed_node_blocks_dependents(memory_store, engine_factory, monkeypatch):
    """
    Falha permanente de `field_name`.

    Invariantes:
        - Dependentes são adiados e nada é gravado com dado obsoleto
        - O segundo passe não progride e encerra o loop
        - O resultado é FAILED com `failed` e `skipped` preenchidos
    """
    _require_imports()
    _failing_recompute(monkeypatch, "field_name")
    engine = engine_factory(memory_store)

    result = engine.cascade(["property_required"])

    assert result.success is False
    assert result.passes == 2
    assert result.failed == ("field_name",)
    assert result.failed_count == 1
    assert result.skipped == ("fields_contact", "page_contact", "space_crm", "workspace_sales", "app_main")
    assert result.updated_count == 0
    assert memory_store.get("fields_contact").self_data == {}
    assert engine.ctx.anomalies_of(ENGINE_EXECUTION_ERROR, node_id="field_name")
    assert any(e["message"] == "passe sem progresso" for e in engine.ctx.events)


def test_transient_failure_converges_on_next_pass(memory_store, engine_factory, monkeypatch):
    _require_imports()
    calls = _failing_recompute(monkeypatch, "field_name", times=1)
    engine = engine_factory(memory_store)

    result = engine.cascade(["property_required"])

    assert calls["n"] == 2
    assert result.success is True
    assert result.passes == 2
    assert result.failed == ()
    assert result.skipped == ()
    assert result.updated_count == 6
    assert engine.ctx.anomalies_of(UNREADY_DEPENDENCY, node_id="fields_contact")


def test_max_passes_stops_the_loop(memory_store, engine_factory, monkeypatch):
    _require_imports()
    _failing_recompute(monkeypatch, "field_name")
    engine = engine_factory(memory_store, EngineSettings(max_passes=1, delay_between_batches_seconds=0.0))

    result = engine.cascade(["property_required"])

    assert result.passes == 1
    assert any("max_passes (1)" in w for w in result.warnings)
