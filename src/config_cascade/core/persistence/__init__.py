"""
Persistência do Config Cascade.

Componentes:
    - store        → protocolo RecordStore, UpsertResult, InMemoryRecordStore
    - json_store   → JsonFileRecordStore (arquivo JSON local)
    - batch_writer → BatchWriter (lotes, retry, backoff, métricas)
"""

from .batch_writer import BatchMetrics, BatchOutcome, BatchWriter, split_batches
from .json_store import JsonFileRecordStore
from .store import InMemoryRecordStore, RecordStore, UpsertResult, apply_patch

__all__ = [
    "RecordStore",
    "UpsertResult",
    "InMemoryRecordStore",
    "JsonFileRecordStore",
    "apply_patch",
    "BatchWriter",
    "BatchMetrics",
    "BatchOutcome",
    "split_batches",
]
