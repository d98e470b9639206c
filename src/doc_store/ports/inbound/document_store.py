"""Document store port.

This inbound port defines the API the store offers to its clients
(embedding code and the REST adapter). Records are plain mappings and
every returned record is a detached copy.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from doc_store.domain.value_objects import QueryOptions, Record, RecordId


@runtime_checkable
class DocumentStorePort(Protocol):
    """Protocol for typed CRUD and query operations over registered tables."""

    def find(
        self, table: str, options: QueryOptions | Mapping[str, Any] | None = None
    ) -> list[Record]:
        """Run a query against one table.

        Raises:
            SchemaError: If the table (or a joined table) is not registered.
            QueryOptionsError: If the options are malformed.
            UnsupportedOperation: If a lookup or aggregate cannot be served.
        """
        ...

    def find_one(self, table: str, where: Mapping[str, Any]) -> Record | None:
        """Return the first record whose fields equal ``where``, or None."""
        ...

    def find_by_id(self, table: str, record_id: RecordId) -> Record | None:
        """Return the record with the given identifier, or None."""
        ...

    def save(self, table: str, record: Mapping[str, Any]) -> Record:
        """Insert or fully replace a record; returns the stored copy.

        Raises:
            SchemaError: Unregistered table, missing primary column or type mismatch.
            UniqueViolation: Another record holds a unique value.
        """
        ...

    def remove(self, table: str, record: Mapping[str, Any]) -> bool:
        """Delete a record by its identifier.

        Returns:
            True if a record was removed, False if none was stored.

        Raises:
            MissingIdentifierError: If the record carries no identifier.
        """
        ...

    def tables(self) -> list[str]:
        """Names of the registered tables."""
        ...

    def get_stats(self) -> dict[str, Any]:
        """Store statistics (record counts, index stats)."""
        ...
