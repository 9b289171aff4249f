# tests/conftest.py
"""
Fixtures compartilhados para testes do Config Cascade.

Este módulo define fixtures reutilizáveis que fornecem:
- configurações mínimas e determinísticas (YAML como string)
- uma fábrica de nós (`make_node`) com payloads já coerentes
- um grafo de exemplo cobrindo property → field → grouping → containers
- stores em memória e settings sem espera (sleep injetado)

Decisões arquiteturais:
    - Fixtures são mantidas simples e explícitas
    - Imports do core são realizados de forma lazy para
      melhorar a clareza de erros durante falhas
    - Nenhuma fixture dorme de verdade: `sleep` é sempre registrado

Invariantes:
    - Nenhuma fixture executa cascata
    - Nenhuma fixture realiza I/O (exceto via tmp_path, quando pedido)
    - Dados retornados são determinísticos e isolados por teste

Limites explícitos:
    - Não substituir testes de integração
    - Não conter lógica de domínio
"""

import pytest


# =====================================================
# Config fixtures
# =====================================================

@pytest.fixture
def config_defaults_yaml() -> str:
    """
    YAML de defaults semelhante a `config/cascade.defaults.yaml`.

    Usado por:
        - Testes do loader de config
        - Testes de deep-merge (defaults + local)
        - Testes de EngineSettings

    Returns:
        str: Conteúdo YAML dos defaults.
    """
    return """\
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
"""


@pytest.fixture
def config_local_yaml() -> str:
    """
    YAML de override local (apenas as chaves sobrescritas).

    Returns:
        str: Conteúdo YAML de override.
    """
    return """\
engine:
  batch_size: 2
  dry_run: true
store:
  path: data/store.json
"""


# =====================================================
# Nós
# =====================================================

@pytest.fixture
def make_node():
    """
    Fábrica de `ConfigNode` para testes.

    O nó criado tem `data == override_data` e `self_data == {}`, como um
    registro recém-criado cujo dado herdado ainda não foi propagado.

    Decisões arquiteturais:
        - Import lazy de ConfigNode
        - Apenas os campos relevantes para merge são parametrizados

    Returns:
        Callable[..., ConfigNode]
    """
    from config_cascade.core.nodes.types import ConfigNode

    def _make(node_id, sub_kind="field", deps=(), override=None, **extra):
        override = dict(override or {})
        extra.setdefault("data", dict(override))
        return ConfigNode(id=node_id, sub_kind=sub_kind, deps=tuple(deps), override_data=override, **extra)

    return _make


@pytest.fixture
def sample_nodes(make_node):
    """
    Grafo de exemplo cobrindo todos os níveis da hierarquia.

    Estrutura (dependência → dependente):

        property_required ─┐
        property_text ─────┼→ field_name ─┐
                           └→ field_email ┴→ fields_contact ─┐
        menu_item_home → menu_section_main → menu_config_main ┴→ page_contact
        page_contact + view_grid → space_crm → workspace_sales → app_main

    Invariantes:
        - Grafo acíclico
        - Payloads persistidos ainda não propagados (self_data vazio)

    Returns:
        List[ConfigNode]: nós na ordem em que o store os devolve.
    """
    return [
        make_node("property_required", "property", override={"required": True}),
        make_node("property_text", "property", override={"input": "text", "maxLength": 255}),
        make_node("field_name", "field", ["property_required", "property_text"], {"label": "Name"}),
        make_node("field_email", "field", ["property_text"], {"label": "Email"}),
        make_node("fields_contact", "fields", ["field_name", "field_email"]),
        make_node("menu_item_home", "menu_item", override={"icon": "home"}),
        make_node("menu_section_main", "menu_section", ["menu_item_home"]),
        make_node("menu_config_main", "menu_config", ["menu_section_main"]),
        make_node("page_contact", "page", ["fields_contact", "menu_config_main"], {"title": "Contato"}),
        make_node("view_grid", "view", override={"layout": "grid"}),
        make_node("space_crm", "space", ["page_contact", "view_grid"]),
        make_node("workspace_sales", "workspace", ["space_crm"]),
        make_node("app_main", "app", ["workspace_sales"]),
    ]


@pytest.fixture
def memory_store(sample_nodes):
    """InMemoryRecordStore populado com `sample_nodes`."""
    from config_cascade.core.persistence.store import InMemoryRecordStore

    return InMemoryRecordStore(sample_nodes)


# =====================================================
# Engine
# =====================================================

@pytest.fixture
def sleeps():
    """Lista que registra cada chamada de sleep (nenhuma espera real)."""
    return []


@pytest.fixture
def fake_sleep(sleeps):
    def _sleep(seconds):
        sleeps.append(seconds)

    return _sleep


@pytest.fixture
def fast_settings():
    """
    EngineSettings sem pausas entre lotes.

    `base_delay_seconds` é mantido para que testes de backoff possam
    verificar os valores registrados por `fake_sleep`.
    """
    from config_cascade.core.config.settings import EngineSettings

    return EngineSettings(delay_between_batches_seconds=0.0)


@pytest.fixture
def engine_factory(fast_settings, fake_sleep):
    """
    Fábrica de CascadeEngine com sleep injetado.

    Returns:
        Callable[[RecordStore, Optional[EngineSettings]], CascadeEngine]
    """
    from config_cascade.core.engine.engine import CascadeEngine

    def _make(store, settings=None, **kwargs):
        kwargs.setdefault("sleep", fake_sleep)
        return CascadeEngine(store, settings or fast_settings, **kwargs)

    return _make
