# src/config_cascade/__init__.py
"""
Config Cascade: grafo de dependências de configuração e recomputação em cascata.

Este pacote raiz define o namespace público do Config Cascade, um motor
que mantém consistente um modelo de configuração herdável distribuído em
muitos nós nomeados (properties, fields, seções de agrupamento e níveis
de container como page/space/workspace/app).

Princípios centrais:
    - O dado efetivo de um nó é sempre derivado (self_data + override_data)
    - A propagação segue a ordem de dependências, com ranking determinístico
    - Escritas são feitas em lotes, com retry e falha parcial não fatal
    - Toda execução retorna um resultado estruturado e rastreável

Arquitetura em alto nível:
    - core.config       → carregamento, merge e hashing de configuração
    - core.nodes        → ConfigNode, tipos de nó e validação por tipo
    - core.graph        → grafo de dependências, conjunto afetado e ciclos
    - core.compute      → computação de dados, hierarquia, mudanças e dedup
    - core.persistence  → RecordStore e BatchWriter
    - core.engine       → orquestração da cascata e operações de autoria
    - core.traceability → Manifest e Event Log da execução
    - cli               → comandos `cascade`, `rebuild-hierarchy`, `benchmark`

Limites explícitos:
    - Não renderiza UI
    - Não garante atomicidade ACID entre nós
    - Não define linguagem de fórmulas
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
