# src/config_cascade/core/__init__.py
"""
Core do Config Cascade.

Este pacote contém a implementação canônica e independente de adapters
do motor de cascata, reunindo as responsabilidades de modelagem de nós,
análise do grafo de dependências, recomputação e persistência em lotes.

O core é projetado para ser:
    - determinístico
    - testável de forma isolada (RecordStore injetado)
    - livre de dependências de UI ou do banco hospedado

Componentes principais:
    - config       → resolução de configuração (merge, validação estrutural, hashing)
    - nodes        → ConfigNode e schema por tipo
    - graph        → GraphBuilder, AffectedSetResolver e análise de ciclos
    - compute      → DataComputer, HierarchyAggregator, ChangeDetector, Deduplicator
    - persistence  → RecordStore e BatchWriter
    - engine       → CascadeEngine e operações de autoria
    - traceability → Manifest e Event Log

Limites explícitos:
    - Não depende de CLI
    - Não mantém cliente global de banco
"""
