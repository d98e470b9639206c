"""Fluent query builder.

Accumulates QueryOptions through chained calls and runs them against the
store that created it:

    rows = (
        db.query("users")
        .where({"field": "role", "operator": "eq", "value": "admin"})
        .or_where(Condition("email", Operator.ENDS_WITH, "@corp.example"))
        .order_by("email", "desc")
        .limit(10)
        .get_many()
    )

``and_where`` / ``or_where`` combine with the condition already set
rather than replacing it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from doc_store.domain.value_objects import (
    AggregateFunction,
    BooleanOp,
    CompositeCondition,
    ConditionNode,
    JoinKind,
    Pagination,
    QueryOptions,
    Record,
    SortDirection,
)
from doc_store.domain.value_objects.query_options import (
    parse_condition,
    parse_group,
    parse_join,
    parse_sort,
)
from doc_store.ports.inbound.document_store import DocumentStorePort


ConditionLike = ConditionNode | Mapping[str, Any]


class QueryBuilder:
    """Chainable construction of a query against one table."""

    def __init__(self, store: DocumentStorePort, table: str) -> None:
        self._store = store
        self._table = table
        self._options = QueryOptions()

    @property
    def table(self) -> str:
        return self._table

    def select(self, *fields: str) -> QueryBuilder:
        self._options = replace(self._options, select=tuple(fields))
        return self

    def where(self, condition: ConditionLike) -> QueryBuilder:
        """Set the predicate, replacing any previous one."""
        self._options = replace(self._options, where=parse_condition(condition))
        return self

    def and_where(self, *conditions: ConditionLike) -> QueryBuilder:
        return self._combine(BooleanOp.AND, conditions)

    def or_where(self, *conditions: ConditionLike) -> QueryBuilder:
        return self._combine(BooleanOp.OR, conditions)

    def _combine(self, op: BooleanOp, conditions: tuple[ConditionLike, ...]) -> QueryBuilder:
        parsed = [parse_condition(c) for c in conditions]
        if self._options.where is not None:
            parsed.insert(0, self._options.where)
        if not parsed:
            return self
        where = parsed[0] if len(parsed) == 1 else CompositeCondition(op, tuple(parsed))
        self._options = replace(self._options, where=where)
        return self

    def order_by(self, field: str, direction: SortDirection | str = SortDirection.ASC) -> QueryBuilder:
        spec = parse_sort({"field": field, "direction": direction})
        self._options = replace(self._options, order_by=self._options.order_by + (spec,))
        return self

    def group_by(
        self,
        field: str,
        function: AggregateFunction | str | None = None,
        having: ConditionLike | None = None,
    ) -> QueryBuilder:
        spec = parse_group({"field": field, "function": function, "having": having})
        self._options = replace(self._options, group_by=self._options.group_by + (spec,))
        return self

    def join(
        self,
        table: str,
        field: str,
        alias: str | None = None,
        kind: JoinKind | str = JoinKind.INNER,
        on: ConditionLike | None = None,
    ) -> QueryBuilder:
        spec = parse_join({"table": table, "field": field, "alias": alias, "kind": kind, "on": on})
        self._options = replace(self._options, joins=self._options.joins + (spec,))
        return self

    def _paginate(self, **changes: int) -> QueryBuilder:
        current = self._options.pagination or Pagination()
        self._options = replace(self._options, pagination=replace(current, **changes))
        return self

    def limit(self, n: int) -> QueryBuilder:
        return self._paginate(limit=n)

    def offset(self, n: int) -> QueryBuilder:
        return self._paginate(offset=n)

    def page(self, n: int) -> QueryBuilder:
        return self._paginate(page=n)

    def get_options(self) -> QueryOptions:
        return self._options

    def get_many(self) -> list[Record]:
        return self._store.find(self._table, self._options)

    def get_one(self) -> Record | None:
        """Return the first row ``get_many`` would return, or None.

        The page window set by ``page``/``offset``/``limit`` is kept: the
        query runs with the window's skip and a limit of 1.
        """
        skip, take = (self._options.pagination or Pagination()).resolve()
        if take == 0:
            return None
        pagination = Pagination(offset=skip, limit=1)
        rows = self._store.find(self._table, replace(self._options, pagination=pagination))
        return rows[0] if rows else None
