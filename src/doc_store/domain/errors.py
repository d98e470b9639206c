"""Exception types raised by the document store.

Every engine failure derives from DocStoreError so callers can catch the
whole family at once. Errors are local to one operation: a failed mutation
leaves prior state untouched and a failed query returns no partial result.

Unknown fields in predicates are deliberately *not* errors; they evaluate to
no match.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "DocStoreError",
    "SchemaError",
    "UnknownTableError",
    "UniqueViolation",
    "UnsupportedOperation",
    "MissingIdentifierError",
    "RecordNotFoundError",
    "QueryOptionsError",
    "PersistenceError",
]


class DocStoreError(Exception):
    """Base class for all document store errors."""


class SchemaError(DocStoreError, ValueError):
    """Schema-level failure: unregistered table, bad primary key, type mismatch."""


class UnknownTableError(SchemaError):
    """Raised when a table name is not present in the schema map."""

    def __init__(self, table: str) -> None:
        super().__init__(f"Table '{table}' is not registered")
        self.table = table


class UniqueViolation(DocStoreError):
    """Raised when a write would give two records the same unique value."""

    def __init__(self, column: str, value: Any, table: str | None = None) -> None:
        where = f"{table}.{column}" if table else column
        super().__init__(f"Unique constraint violation: {where} = {value!r}")
        self.table = table
        self.column = column
        self.value = value


class UnsupportedOperation(DocStoreError):
    """Raised for lookups or aggregates the underlying structure cannot serve."""


class MissingIdentifierError(DocStoreError, ValueError):
    """Raised when an operation needs a primary value the record does not carry."""


class RecordNotFoundError(DocStoreError, LookupError):
    """Raised when a record expected to be stored is absent."""


class QueryOptionsError(DocStoreError, ValueError):
    """Raised for malformed query options."""


class PersistenceError(DocStoreError):
    """Raised when the snapshot collaborator fails to load or save."""
