"""Inbound ports - APIs offered to clients."""

from doc_store.ports.inbound.document_store import DocumentStorePort

__all__ = [
    "DocumentStorePort",
]
