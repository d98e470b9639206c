"""Adapters layer - concrete implementations of port interfaces.

Adapters provide the actual implementations:
- Inbound adapters: Handle incoming requests (REST)
- Outbound adapters: Implement external dependencies (snapshot persistence)
"""

from doc_store.adapters.outbound import InMemorySnapshotStore, JsonFileSnapshotStore

__all__ = [
    # Outbound adapters
    "InMemorySnapshotStore",
    "JsonFileSnapshotStore",
]
