"""Unit tests for table schemas."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from doc_store.domain.entities import (
    ColumnDescriptor,
    TableSchema,
    build_schema_map,
    resolve_schema,
)
from doc_store.domain.errors import SchemaError, UnknownTableError
from doc_store.domain.value_objects import ColumnType


@pytest.mark.unit
class TestColumnDescriptor:
    """Tests for ColumnDescriptor."""

    def test_from_dict(self) -> None:
        col = ColumnDescriptor.from_dict({"type": "string", "unique": True, "index": True})
        assert col.type is ColumnType.STRING
        assert col.unique and col.indexed
        assert not col.primary
        assert not col.has_default

    def test_unique_implies_index(self) -> None:
        col = ColumnDescriptor(ColumnType.STRING, unique=True)
        assert col.needs_index

    def test_unknown_type(self) -> None:
        with pytest.raises(SchemaError, match="unknown column type"):
            ColumnDescriptor.from_dict({"type": "blob"})

    def test_default_is_coerced(self) -> None:
        col = ColumnDescriptor.from_dict({"type": "date", "default": "2024-01-01T00:00:00"})
        assert col.default == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert ColumnDescriptor(ColumnType.ARRAY, default=(1, 2)).default == [1, 2]

    @pytest.mark.parametrize(
        ("column_type", "default"),
        [("number", "oops"), ("number", float("nan")), ("date", "not-a-date"), ("boolean", 1)],
    )
    def test_wrong_typed_default_rejected(self, column_type: str, default: object) -> None:
        with pytest.raises(SchemaError, match="invalid default"):
            ColumnDescriptor.from_dict({"type": column_type, "default": default})

    def test_wrong_typed_default_names_column(self) -> None:
        with pytest.raises(SchemaError, match=r"t\.score: invalid default"):
            TableSchema.from_dict("t", {"score": {"type": "number", "default": "oops"}})


@pytest.mark.unit
class TestTableSchema:
    """Tests for TableSchema."""

    def test_properties(self, users_schema: TableSchema) -> None:
        assert users_schema.primary_key == "id"
        assert users_schema.indexed_columns == ("email", "role", "age", "active")
        assert users_schema.unique_columns == ("email",)
        assert users_schema.has_column("tags")
        assert users_schema.column_type("created") is ColumnType.DATE
        assert users_schema.column_type("nope") is None

    def test_multiple_primaries_rejected(self) -> None:
        with pytest.raises(SchemaError, match="multiple primary"):
            TableSchema.from_dict(
                "t",
                {"a": {"type": "number", "primary": True}, "b": {"type": "string", "primary": True}},
            )

    def test_require_primary_key(self) -> None:
        schema = TableSchema.from_dict("logs", {"msg": {"type": "string"}})
        assert schema.primary_key is None
        with pytest.raises(SchemaError, match="no primary column"):
            schema.require_primary_key()

    def test_prepare_record_applies_defaults(self, users_schema: TableSchema) -> None:
        prepared = users_schema.prepare_record({"email": "a@x"})
        assert prepared["role"] == "user"
        assert "age" not in prepared

    def test_prepare_record_coerces_date_default(self) -> None:
        schema = TableSchema.from_dict(
            "events",
            {"id": {"type": "number", "primary": True},
             "at": {"type": "date", "default": "2024-01-01T00:00:00"}},
        )
        prepared = schema.prepare_record({"id": 1})
        assert prepared["at"] == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_prepare_record_copies(self, users_schema: TableSchema) -> None:
        original = {"email": "a@x", "tags": ["x"], "profile": {"k": [1]}}
        prepared = users_schema.prepare_record(original)
        prepared["tags"].append("y")
        prepared["profile"]["k"].append(2)
        assert original == {"email": "a@x", "tags": ["x"], "profile": {"k": [1]}}

    def test_prepare_record_coerces(self, users_schema: TableSchema) -> None:
        prepared = users_schema.prepare_record({"created": "2024-03-01T10:00:00", "extra": 1})
        assert prepared["created"] == datetime(2024, 3, 1, 10, tzinfo=timezone.utc)
        assert prepared["extra"] == 1

    def test_prepare_record_type_mismatch(self, users_schema: TableSchema) -> None:
        with pytest.raises(SchemaError, match="users.age"):
            users_schema.prepare_record({"age": "old"})


@pytest.mark.unit
class TestSchemaMap:
    """Tests for schema map helpers."""

    def test_build_and_resolve(self, users_schema: TableSchema, posts_schema: TableSchema) -> None:
        schemas = build_schema_map(users_schema, posts_schema)
        assert resolve_schema(schemas, "posts") is posts_schema

    def test_duplicate_names(self, users_schema: TableSchema) -> None:
        with pytest.raises(SchemaError, match="registered twice"):
            build_schema_map(users_schema, users_schema)

    def test_unknown_table(self, users_schema: TableSchema) -> None:
        with pytest.raises(UnknownTableError) as exc_info:
            resolve_schema(build_schema_map(users_schema), "ghosts")
        assert exc_info.value.table == "ghosts"
        assert isinstance(exc_info.value, SchemaError)
