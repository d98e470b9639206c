"""Outbound adapters - implementations of outbound ports.

These adapters persist the dataset snapshot: to a JSON file on disk
or to process memory.
"""

from doc_store.adapters.outbound.json_snapshot_store import JsonFileSnapshotStore
from doc_store.adapters.outbound.memory_snapshot_store import InMemorySnapshotStore

__all__ = [
    "InMemorySnapshotStore",
    "JsonFileSnapshotStore",
]
