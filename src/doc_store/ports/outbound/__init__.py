"""Outbound ports - interfaces for external dependencies.

Outbound ports define contracts for external systems the document
store depends on, such as snapshot persistence.
"""

from doc_store.ports.outbound.snapshot_store import SnapshotStore

__all__ = [
    "SnapshotStore",
]
