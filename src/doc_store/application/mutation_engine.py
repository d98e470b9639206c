"""Mutation engine and table store.

The TableStore owns every record and every secondary index. The
MutationEngine is the only writer: it applies save and remove so that
records and indexes change as a unit.

Mutation path (save):
    1. Resolve the schema; the table needs a primary column.
    2. Apply defaults and coerce declared columns.
    3. Generate the identifier when it is absent.
    4. Check every unique index against the new values.
    5. Capture the prior record, write the new one.
    6. Re-file the record in every index (old value out, new value in).
    7. Flush the snapshot when auto-persist is on.

All checks precede the first write, so a failed save leaves the store
exactly as it was. A failed flush undoes steps 5 and 6 before the
PersistenceError propagates; identifiers handed out are not reclaimed.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from doc_store.domain.entities.schema import SchemaMap, TableSchema, resolve_schema
from doc_store.domain.errors import (
    MissingIdentifierError,
    PersistenceError,
    SchemaError,
    UniqueViolation,
)
from doc_store.domain.services.btree_index import DEFAULT_MAX_KEYS
from doc_store.domain.services.identifiers import IdentifierGenerator
from doc_store.domain.services.secondary_index import TableIndexes
from doc_store.domain.value_objects import Record, RecordId, Snapshot, TableData
from doc_store.infrastructure.logging import get_logger

logger = get_logger(__name__)


@dataclass
class TableState:
    """Records, indexes and id generator of one registered table."""

    schema: TableSchema
    indexes: TableIndexes
    ids: IdentifierGenerator | None
    records: dict[RecordId, Record] = field(default_factory=dict)

    @classmethod
    def create(cls, schema: TableSchema, max_keys: int = DEFAULT_MAX_KEYS) -> TableState:
        primary = schema.primary_key
        id_type = schema.column_type(primary) if primary else None
        return cls(
            schema=schema,
            indexes=TableIndexes(schema, max_keys=max_keys),
            ids=IdentifierGenerator(schema.name, id_type) if id_type else None,
        )


class TableStore:
    """In-memory home of all records and indexes.

    A registered table gets its state on first access; querying a table
    that was never written yields no records. Records of tables missing
    from the schema map (found in a loaded snapshot) are kept verbatim so
    they survive the next flush.
    """

    def __init__(self, schemas: SchemaMap, max_keys: int = DEFAULT_MAX_KEYS) -> None:
        self._schemas = schemas
        self._max_keys = max_keys
        self._tables: dict[str, TableState] = {}
        self._foreign: dict[str, TableData] = {}

    @property
    def schemas(self) -> SchemaMap:
        return self._schemas

    def schema(self, table: str) -> TableSchema:
        """Raises UnknownTableError for unregistered tables."""
        return resolve_schema(self._schemas, table)

    def state(self, table: str) -> TableState:
        """Return the table's state, creating it on first use."""
        state = self._tables.get(table)
        if state is None:
            state = TableState.create(self.schema(table), self._max_keys)
            self._tables[table] = state
        return state

    def records(self, table: str) -> dict[RecordId, Record]:
        return self.state(table).records

    def count(self, table: str) -> int:
        state = self._tables.get(table)
        if state is None:
            self.schema(table)
            return 0
        return len(state.records)

    def get(self, table: str, rid: RecordId) -> Record | None:
        """Return the live record (not a copy) or None."""
        return self.state(table).records.get(rid)

    def snapshot(self) -> Snapshot:
        """Return the whole dataset, unregistered tables included.

        The returned mapping shares records with the store; persistence
        adapters serialise or copy it before keeping it.
        """
        result: Snapshot = {name: dict(data) for name, data in self._foreign.items()}
        for name, state in self._tables.items():
            result[name] = dict(state.records)
        return result

    def load(self, snapshot: Snapshot | None) -> None:
        """Replace the dataset with ``snapshot`` and rebuild every index.

        The new state is built aside and swapped in only when complete.

        Raises:
            PersistenceError: If a stored record cannot be accepted under its
                table's schema.
        """
        tables: dict[str, TableState] = {}
        foreign: dict[str, TableData] = {}
        for name, data in (snapshot or {}).items():
            schema = self._schemas.get(name)
            if schema is None:
                foreign[name] = copy.deepcopy(data)
                continue
            state = TableState.create(schema, self._max_keys)
            try:
                for key, raw in data.items():
                    rid, record = _load_record(schema, key, raw)
                    state.records[rid] = record
                    if state.ids is not None:
                        state.ids.observe(rid)
                state.indexes.rebuild(state.records)
            except (SchemaError, UniqueViolation, ValueError, TypeError) as e:
                raise PersistenceError(f"cannot load table '{name}': {e}") from e
            tables[name] = state
            logger.debug(
                "table_loaded",
                table=name,
                records=len(state.records),
                indexes=len(state.indexes),
            )
        self._tables = tables
        self._foreign = foreign

    def table_names(self) -> list[str]:
        """Names of tables holding state (registered tables first)."""
        return list(self._tables) + [t for t in self._foreign if t not in self._tables]

    def foreign_tables(self) -> list[str]:
        return list(self._foreign)


def _load_record(schema: TableSchema, key: Any, raw: Any) -> tuple[RecordId, Record]:
    if not isinstance(raw, Mapping):
        raise TypeError(f"record {key!r} is not an object")
    record = schema.prepare_record(raw)
    primary = schema.primary_key
    if primary is None:
        return key, record
    rid = record.get(primary)
    if rid is None:
        id_type = schema.column_type(primary)
        rid = id_type.parse_text(str(key)) if id_type else key
        record[primary] = rid
    return rid, record


class MutationEngine:
    """Applies save and remove while keeping indexes and uniqueness intact.

    Args:
        store: The table store to mutate.
        flush: Called after every successful mutation when ``auto_persist``
            is set; typically persists ``store.snapshot()``.
        auto_persist: Whether mutations flush.
    """

    def __init__(
        self,
        store: TableStore,
        flush: Callable[[], None] | None = None,
        auto_persist: bool = True,
    ) -> None:
        self._store = store
        self._flush = flush
        self.auto_persist = auto_persist

    def save(self, table: str, record: Mapping[str, Any]) -> Record:
        """Insert or fully replace a record.

        Returns:
            A copy of the stored record, identifier included.

        Raises:
            SchemaError: Unregistered table, no primary column, type mismatch,
                or an identifier type that cannot be generated.
            UniqueViolation: Another record holds one of the unique values.
            PersistenceError: The flush failed; the write has been undone.
        """
        schema = self._store.schema(table)
        primary = schema.require_primary_key()
        if not isinstance(record, Mapping):
            raise SchemaError(f"record for '{table}' must be a mapping, got {type(record).__name__}")

        state = self._store.state(table)
        ids = state.ids
        assert ids is not None
        prepared = schema.prepare_record(record)
        rid = prepared.get(primary)
        if rid is None:
            rid = ids.next_id()
            prepared[primary] = rid

        try:
            state.indexes.check_record(rid, prepared)
        except UniqueViolation as e:
            logger.info("unique_violation", table=table, column=e.column, value=repr(e.value))
            raise

        previous = state.records.get(rid)
        state.records[rid] = prepared
        if previous is not None:
            state.indexes.remove_record(rid, previous)
        state.indexes.add_record(rid, prepared)
        ids.observe(rid)

        logger.debug("record_saved", table=table, id=repr(rid), replaced=previous is not None)
        try:
            self._after_write()
        except PersistenceError:
            state.indexes.remove_record(rid, prepared)
            if previous is None:
                del state.records[rid]
            else:
                state.records[rid] = previous
                state.indexes.add_record(rid, previous)
            logger.warning("save_rolled_back", table=table, id=repr(rid))
            raise
        return copy.deepcopy(prepared)

    def remove(self, table: str, record: Mapping[str, Any]) -> bool:
        """Delete the record carrying ``record``'s identifier.

        Returns:
            True if a record was removed, False if no record had the id.

        Raises:
            SchemaError: Unregistered table or no primary column.
            MissingIdentifierError: ``record`` has no identifier.
            PersistenceError: The flush failed; the record has been put back.
        """
        rid = self.identifier_of(table, record)
        state = self._store.state(table)
        stored = state.records.get(rid)
        if stored is None:
            return False

        # Key order is only needed to undo a failed flush.
        order = list(state.records) if self._flushes else None
        state.indexes.remove_record(rid, stored)
        del state.records[rid]

        logger.debug("record_removed", table=table, id=repr(rid))
        try:
            self._after_write()
        except PersistenceError:
            restored = {key: stored if key == rid else state.records[key] for key in order or ()}
            state.records.clear()
            state.records.update(restored)
            state.indexes.add_record(rid, stored)
            logger.warning("remove_rolled_back", table=table, id=repr(rid))
            raise
        return True

    def identifier_of(self, table: str, record: Mapping[str, Any]) -> RecordId:
        """Return ``record``'s identifier, coerced by the primary column's type.

        Raises:
            SchemaError: Unregistered table or no primary column.
            MissingIdentifierError: ``record`` has no identifier.
        """
        schema = self._store.schema(table)
        primary = schema.require_primary_key()
        rid = record.get(primary) if isinstance(record, Mapping) else None
        if rid is None:
            raise MissingIdentifierError(f"record for '{table}' has no '{primary}' value")
        id_type = schema.column_type(primary)
        return id_type.coerce_literal(rid) if id_type else rid

    @property
    def _flushes(self) -> bool:
        return self.auto_persist and self._flush is not None

    def _after_write(self) -> None:
        if self._flushes:
            self._flush()
