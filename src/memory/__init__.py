"""Memory module: persistence of pipeline records."""

from src.memory.store import SourceStore, StoreNamespace, get_source_store

__all__ = [
    "SourceStore",
    "StoreNamespace",
    "get_source_store",
]
