"""Ports layer - interface definitions following Hexagonal Architecture.

Ports are abstract interfaces (protocols) that define contracts:
- Inbound ports: APIs offered to clients (DocumentStorePort)
- Outbound ports: Dependencies on external systems (SnapshotStore)

Adapters implement these ports with concrete functionality.
"""

from doc_store.ports.inbound import DocumentStorePort
from doc_store.ports.outbound import SnapshotStore

__all__ = [
    # Inbound ports
    "DocumentStorePort",
    # Outbound ports
    "SnapshotStore",
]
