"""Document Store - unified entry point for the embedded store.

This module provides the DocumentStore class that wires the table store,
mutation engine, query pipeline and snapshot persistence together.

Usage:
    from doc_store.application import DocumentStore
    from doc_store.adapters.outbound import JsonFileSnapshotStore
    from doc_store.domain.entities import TableSchema, build_schema_map

    users = TableSchema.from_dict("users", {
        "id": {"type": "number", "primary": True},
        "email": {"type": "string", "unique": True},
        "role": {"type": "string", "index": True, "default": "user"},
    })

    with DocumentStore(build_schema_map(users), JsonFileSnapshotStore("db.json")) as db:
        db.save("users", {"email": "a@x", "role": "admin"})
        admins = db.find("users", {"where": {"field": "role", "operator": "eq", "value": "admin"}})
        first = db.query("users").order_by("email", "desc").get_one()
"""

from __future__ import annotations

import copy
import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from doc_store.application.mutation_engine import MutationEngine, TableStore
from doc_store.application.query_pipeline import QueryPipeline, QueryResult
from doc_store.domain.entities.schema import SchemaMap
from doc_store.domain.errors import (
    DocStoreError,
    PersistenceError,
    RecordNotFoundError,
    UniqueViolation,
)
from doc_store.domain.services.btree_index import DEFAULT_MAX_KEYS
from doc_store.domain.value_objects import (
    BooleanOp,
    CompositeCondition,
    Condition,
    Operator,
    Pagination,
    QueryOptions,
    Record,
    RecordId,
    parse_query_options,
)
from doc_store.infrastructure.logging import get_logger, operation_context
from doc_store.infrastructure.tracing import trace_span

if TYPE_CHECKING:
    from doc_store.application.query_builder import QueryBuilder
    from doc_store.infrastructure.metrics import MetricsRegistry
    from doc_store.ports.outbound.snapshot_store import SnapshotStore

logger = get_logger(__name__)


class DocumentStore:
    """Embedded document store over an explicit schema map.

    The store must be started before use: ``start()`` loads the snapshot and
    rebuilds every index, ``stop()`` flushes it. Used as a context manager it
    does both.

    Thread Safety:
        None. Callers serialise all operations on one store.
    """

    def __init__(
        self,
        schemas: SchemaMap,
        snapshot_store: SnapshotStore | None = None,
        auto_persist: bool = True,
        metrics: MetricsRegistry | None = None,
        index_max_keys: int = DEFAULT_MAX_KEYS,
    ) -> None:
        """Initialize the document store.

        Args:
            schemas: Table name -> schema. Only these tables accept writes.
            snapshot_store: Persistence collaborator; None keeps data in memory only.
            auto_persist: Flush the snapshot after every mutation.
            metrics: Prometheus metrics registry; None disables metrics.
            index_max_keys: Keys per B+Tree node of ordered indexes.
        """
        self._schemas = schemas
        self._snapshot_store = snapshot_store
        self._metrics = metrics
        self._tables = TableStore(schemas, max_keys=index_max_keys)
        self._mutations = MutationEngine(
            self._tables, flush=self.flush, auto_persist=auto_persist
        )
        self._pipeline = QueryPipeline(self._tables)
        self._started = False

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def schemas(self) -> SchemaMap:
        return self._schemas

    @property
    def auto_persist(self) -> bool:
        return self._mutations.auto_persist

    def start(self) -> None:
        """Load the snapshot and rebuild indexes.

        Raises:
            RuntimeError: If already started.
            PersistenceError: If the snapshot cannot be loaded.
        """
        if self._started:
            raise RuntimeError("Document store already started")

        snapshot = None
        if self._snapshot_store is not None:
            try:
                snapshot = self._snapshot_store.load()
                self._tables.load(snapshot)
            except PersistenceError:
                self._count_load("error")
                logger.error("snapshot_load_failed", exc_info=True)
                raise
            self._count_load("success")
        else:
            self._tables.load(None)

        self._started = True
        self._refresh_record_gauges()
        logger.info(
            "document_store_started",
            tables=len(self._schemas),
            records=sum(self._tables.count(name) for name in self._schemas),
            unregistered=self._tables.foreign_tables(),
        )

    def stop(self) -> None:
        """Flush the snapshot and stop.

        Raises:
            RuntimeError: If not started.
        """
        self._require_started()
        try:
            if self._snapshot_store is not None:
                self.flush()
        finally:
            self._started = False
            logger.info("document_store_stopped")

    def __enter__(self) -> DocumentStore:
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def _require_started(self) -> None:
        if not self._started:
            raise RuntimeError("Document store not started")

    # Queries

    def execute(self, table: str, options: QueryOptions | Mapping[str, Any] | None = None) -> QueryResult:
        """Run a query and return rows together with access-path stats."""
        self._require_started()
        parsed = parse_query_options(options)
        start = time.perf_counter()
        with operation_context("find", table), trace_span("doc_store.find", {"table": table}) as span:
            try:
                result = self._pipeline.execute(table, parsed)
            except DocStoreError:
                self._count_query(table, "error")
                raise
            span.set_attribute("rows", len(result.rows))
        elapsed = time.perf_counter() - start

        self._count_query(table, "success", elapsed, result)
        logger.debug(
            "query_executed",
            table=table,
            rows=len(result.rows),
            index_lookups=result.stats.index_lookups,
            scans=result.stats.scans,
            elapsed_ms=round(elapsed * 1000, 3),
        )
        return result

    def find(
        self, table: str, options: QueryOptions | Mapping[str, Any] | None = None
    ) -> list[Record]:
        """Return the rows ``options`` selects from ``table``.

        ``options`` may be a QueryOptions value or its mapping form.
        """
        return self.execute(table, options).rows

    def find_one(self, table: str, where: Mapping[str, Any]) -> Record | None:
        """Return the first record whose fields equal every value in ``where``."""
        conditions = tuple(Condition(name, Operator.EQ, value) for name, value in where.items())
        if len(conditions) == 1:
            condition = conditions[0]
        else:
            condition = CompositeCondition(BooleanOp.AND, conditions)
        rows = self.find(table, QueryOptions(where=condition, pagination=Pagination(limit=1)))
        return rows[0] if rows else None

    def find_by_id(self, table: str, record_id: RecordId) -> Record | None:
        self._require_started()
        primary = self._tables.schema(table).require_primary_key()
        rid = self._mutations.identifier_of(table, {primary: record_id})
        record = self._tables.get(table, rid)
        return copy.deepcopy(record) if record is not None else None

    def reload(self, table: str, record: Mapping[str, Any]) -> Record:
        """Return a fresh copy of the stored version of ``record``.

        Raises:
            MissingIdentifierError: ``record`` has no identifier.
            RecordNotFoundError: No record with that identifier is stored.
        """
        self._require_started()
        rid = self._mutations.identifier_of(table, record)
        stored = self._tables.get(table, rid)
        if stored is None:
            raise RecordNotFoundError(f"{table} record {rid!r} not found")
        return copy.deepcopy(stored)

    def count(self, table: str) -> int:
        self._require_started()
        return self._tables.count(table)

    def query(self, table: str) -> QueryBuilder:
        """Start a fluent query against ``table``."""
        from doc_store.application.query_builder import QueryBuilder

        self._tables.schema(table)
        return QueryBuilder(self, table)

    def tables(self) -> list[str]:
        return list(self._schemas)

    # Mutations

    def save(self, table: str, record: Mapping[str, Any]) -> Record:
        """Insert or fully replace a record; returns the stored copy."""
        self._require_started()
        with operation_context("save", table), trace_span("doc_store.save", {"table": table}):
            try:
                saved = self._mutations.save(table, record)
            except UniqueViolation as e:
                self._count_mutation(table, "save", "conflict")
                if self._metrics is not None:
                    self._metrics.unique_violations_total.labels(table=table, column=e.column).inc()
                raise
            except DocStoreError:
                self._count_mutation(table, "save", "error")
                raise
        self._count_mutation(table, "save", "success")
        return saved

    def remove(self, table: str, record: Mapping[str, Any]) -> bool:
        """Delete ``record`` by identifier; False if it was not stored."""
        self._require_started()
        with operation_context("remove", table), trace_span("doc_store.remove", {"table": table}):
            try:
                removed = self._mutations.remove(table, record)
            except DocStoreError:
                self._count_mutation(table, "remove", "error")
                raise
        self._count_mutation(table, "remove", "success" if removed else "noop")
        return removed

    def flush(self) -> None:
        """Persist the whole dataset through the snapshot store.

        Raises:
            PersistenceError: If the snapshot store fails to save.
        """
        if self._snapshot_store is None:
            return
        start = time.perf_counter()
        try:
            self._snapshot_store.save(self._tables.snapshot())
        except PersistenceError:
            if self._metrics is not None:
                self._metrics.snapshot_flushes_total.labels(status="error").inc()
            logger.error("snapshot_flush_failed", exc_info=True)
            raise
        elapsed = time.perf_counter() - start
        if self._metrics is not None:
            self._metrics.snapshot_flushes_total.labels(status="success").inc()
            self._metrics.snapshot_flush_latency_seconds.observe(elapsed)
        logger.debug("snapshot_flushed", elapsed_ms=round(elapsed * 1000, 3))

    # Statistics

    def get_stats(self) -> dict[str, Any]:
        """Get store statistics.

        Returns:
            Dictionary with record counts and per-index statistics.
        """
        stats: dict[str, Any] = {
            "started": self._started,
            "auto_persist": self.auto_persist,
            "persistent": self._snapshot_store is not None,
            "tables": {},
            "unregistered_tables": self._tables.foreign_tables(),
        }
        for name in self._schemas:
            state = self._tables.state(name)
            stats["tables"][name] = {
                "records": len(state.records),
                "indexes": {
                    s.column: {
                        "mode": s.mode.value,
                        "unique": s.is_unique,
                        "keys": s.num_keys,
                        "entries": s.num_entries,
                        "lookups": s.lookups,
                    }
                    for s in state.indexes.stats()
                },
            }
        return stats

    # Metrics helpers

    def _count_query(
        self,
        table: str,
        status: str,
        elapsed: float | None = None,
        result: QueryResult | None = None,
    ) -> None:
        if self._metrics is None:
            return
        self._metrics.queries_total.labels(table=table, status=status).inc()
        if elapsed is not None:
            self._metrics.query_latency_seconds.labels(table=table).observe(elapsed)
        if result is not None:
            self._metrics.index_lookups_total.labels(table=table).inc(result.stats.index_lookups)
            self._metrics.full_scans_total.labels(table=table).inc(result.stats.scans)

    def _count_mutation(self, table: str, kind: str, status: str) -> None:
        if self._metrics is None:
            return
        self._metrics.mutations_total.labels(table=table, kind=kind, status=status).inc()
        if status == "success":
            self._metrics.records.labels(table=table).set(self._tables.count(table))

    def _count_load(self, status: str) -> None:
        if self._metrics is not None:
            self._metrics.snapshot_loads_total.labels(status=status).inc()

    def _refresh_record_gauges(self) -> None:
        if self._metrics is None:
            return
        for name in self._schemas:
            self._metrics.records.labels(table=name).set(self._tables.count(name))

