"""Table schemas.

A TableSchema names a table and lists its column descriptors in declaration
order. Schemas are handed to the engine as an explicit mapping of table name
to schema; the engine never mutates them.

Example:
    >>> users = TableSchema.from_dict("users", {
    ...     "id": {"type": "number", "primary": True},
    ...     "email": {"type": "string", "unique": True, "index": True},
    ...     "role": {"type": "string", "index": True, "default": "user"},
    ... })
    >>> users.primary_key
    'id'
    >>> users.indexed_columns
    ('email', 'role')
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from doc_store.domain.errors import SchemaError, UnknownTableError
from doc_store.domain.value_objects import ColumnType, Record

_NO_DEFAULT = object()


@dataclass(frozen=True)
class ColumnDescriptor:
    """Per-column metadata.

    Attributes:
        type: Value type of the column.
        primary: Column holds the record identifier.
        unique: No two records may hold the same non-null value.
        indexed: Maintain a secondary index on the column.
        default: Value used when a saved record omits the column.
    """

    type: ColumnType
    primary: bool = False
    unique: bool = False
    indexed: bool = False
    default: Any = _NO_DEFAULT

    def __post_init__(self) -> None:
        if self.default is _NO_DEFAULT:
            return
        try:
            coerced = self.type.coerce(copy.deepcopy(self.default))
        except (TypeError, ValueError) as e:
            raise SchemaError(f"invalid default {self.default!r}: {e}") from e
        object.__setattr__(self, "default", coerced)

    @property
    def has_default(self) -> bool:
        return self.default is not _NO_DEFAULT

    @property
    def needs_index(self) -> bool:
        """Unique columns are always indexed."""
        return self.indexed or self.unique

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ColumnDescriptor:
        raw_type = data.get("type")
        try:
            column_type = raw_type if isinstance(raw_type, ColumnType) else ColumnType(raw_type)
        except ValueError:
            raise SchemaError(f"unknown column type: {raw_type!r}") from None
        return cls(
            type=column_type,
            primary=bool(data.get("primary", False)),
            unique=bool(data.get("unique", False)),
            indexed=bool(data.get("indexed", data.get("index", False))),
            default=data.get("default", _NO_DEFAULT),
        )


@dataclass(frozen=True)
class TableSchema:
    """Name and ordered column descriptors of one table."""

    name: str
    columns: Mapping[str, ColumnDescriptor] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.name:
            raise SchemaError("table name must be non-empty")
        object.__setattr__(self, "columns", dict(self.columns))
        primaries = [name for name, col in self.columns.items() if col.primary]
        if len(primaries) > 1:
            raise SchemaError(
                f"table '{self.name}' declares multiple primary columns: {primaries}"
            )

    @classmethod
    def from_dict(cls, name: str, columns: Mapping[str, Any]) -> TableSchema:
        """Build a schema from ``{column: {"type": ..., "primary": ...}}``."""
        descriptors: dict[str, ColumnDescriptor] = {}
        for col, spec in columns.items():
            if isinstance(spec, ColumnDescriptor):
                descriptors[col] = spec
                continue
            try:
                descriptors[col] = ColumnDescriptor.from_dict(spec)
            except SchemaError as e:
                raise SchemaError(f"{name}.{col}: {e}") from e
        return cls(name=name, columns=descriptors)

    @property
    def primary_key(self) -> str | None:
        for name, col in self.columns.items():
            if col.primary:
                return name
        return None

    def require_primary_key(self) -> str:
        primary = self.primary_key
        if primary is None:
            raise SchemaError(f"table '{self.name}' has no primary column")
        return primary

    @property
    def indexed_columns(self) -> tuple[str, ...]:
        return tuple(name for name, col in self.columns.items() if col.needs_index)

    @property
    def unique_columns(self) -> tuple[str, ...]:
        return tuple(name for name, col in self.columns.items() if col.unique)

    def has_column(self, name: str) -> bool:
        return name in self.columns

    def column_type(self, name: str) -> ColumnType | None:
        col = self.columns.get(name)
        return col.type if col else None

    def prepare_record(self, record: Mapping[str, Any]) -> Record:
        """Return a detached copy of ``record`` with defaults applied and values coerced.

        Fields not declared in the schema are kept as they are.

        Raises:
            SchemaError: If a declared column holds a value of the wrong type.
        """
        prepared: Record = copy.deepcopy(dict(record))
        for name, col in self.columns.items():
            if name in prepared:
                value = prepared[name]
            elif col.has_default:
                value = copy.deepcopy(col.default)
            else:
                continue
            try:
                prepared[name] = col.type.coerce(value)
            except (TypeError, ValueError) as e:
                raise SchemaError(f"{self.name}.{name}: {e}") from e
        return prepared


SchemaMap = Mapping[str, TableSchema]


def build_schema_map(*schemas: TableSchema) -> dict[str, TableSchema]:
    """Index schemas by table name.

    Raises:
        SchemaError: If two schemas share a table name.
    """
    result: dict[str, TableSchema] = {}
    for schema in schemas:
        if schema.name in result:
            raise SchemaError(f"table '{schema.name}' registered twice")
        result[schema.name] = schema
    return result


def resolve_schema(schemas: SchemaMap, table: str) -> TableSchema:
    """Look up a table's schema.

    Raises:
        UnknownTableError: If the table is not registered.
    """
    schema = schemas.get(table)
    if schema is None:
        raise UnknownTableError(table)
    return schema
