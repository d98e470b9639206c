"""Query pipeline.

A query runs as a fixed chain of stages, each optional and each reading
only the previous stage's output:

    Filter -> Join -> Group -> Order -> Paginate -> Project

Stages materialise their output as a list of detached record copies, so
nothing a caller does with a result can reach the table store. Any error
aborts the whole query; no partial result is returned.
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from doc_store.domain.errors import UnsupportedOperation
from doc_store.domain.services.predicate_evaluator import PredicateEvaluator, matches
from doc_store.domain.services.secondary_index import freeze
from doc_store.domain.value_objects import (
    AggregateFunction,
    Condition,
    ConditionNode,
    GroupSpec,
    JoinKind,
    JoinSpec,
    Operator,
    Pagination,
    QueryOptions,
    Record,
    SortDirection,
    SortSpec,
)

if TYPE_CHECKING:
    from doc_store.application.mutation_engine import TableState, TableStore


@dataclass
class QueryStats:
    """Access-path counters collected while a query runs."""

    index_lookups: int = 0
    scans: int = 0

    def absorb(self, evaluator: PredicateEvaluator) -> None:
        self.index_lookups += evaluator.index_lookups
        self.scans += evaluator.scans


@dataclass
class QueryResult:
    """Rows produced by a query plus how they were found."""

    rows: list[Record] = field(default_factory=list)
    stats: QueryStats = field(default_factory=QueryStats)

    def __len__(self) -> int:
        return len(self.rows)


class Stage(ABC):
    """Base class for pipeline stages."""

    @abstractmethod
    def apply(self, rows: list[Record]) -> list[Record]:
        """Transform the previous stage's rows."""
        pass


class FilterStage(Stage):
    """Selects the table's records matching the predicate.

    The input rows are the whole table; selection goes through the predicate
    evaluator so indexed conditions avoid a scan.
    """

    def __init__(
        self, state: TableState, condition: ConditionNode | None, stats: QueryStats
    ) -> None:
        self._state = state
        self._condition = condition
        self._stats = stats

    def apply(self, rows: list[Record]) -> list[Record]:
        if self._condition is None:
            return copy.deepcopy(rows)
        evaluator = PredicateEvaluator(self._state.schema, self._state.records, self._state.indexes)
        selected = evaluator.select(self._condition)
        self._stats.absorb(evaluator)
        return copy.deepcopy(selected)


class JoinStage(Stage):
    """Attaches matching rows of another table under the join's alias.

    Without an ``on`` condition a row of the other table matches when its
    ``field`` equals the local record's primary value; the other table's
    index on ``field`` serves the lookup when it exists. With ``on`` the
    condition is evaluated over the local record merged with each candidate
    (local fields win).

    An inner join drops local rows without matches; a left join keeps
    them with ``[None]`` attached.
    """

    def __init__(
        self,
        spec: JoinSpec,
        local_primary: str | None,
        other: TableState,
        stats: QueryStats,
    ) -> None:
        self._spec = spec
        self._local_primary = local_primary
        self._other = other
        self._stats = stats

    def apply(self, rows: list[Record]) -> list[Record]:
        evaluator = PredicateEvaluator(self._other.schema, self._other.records, self._other.indexes)
        joined: list[Record] = []
        for row in rows:
            found = self._matches_for(row, evaluator)
            if not found:
                if self._spec.kind is JoinKind.INNER:
                    continue
                row[self._spec.target] = [None]
            else:
                row[self._spec.target] = copy.deepcopy(found)
            joined.append(row)
        self._stats.absorb(evaluator)
        return joined

    def _matches_for(self, row: Record, evaluator: PredicateEvaluator) -> list[Record]:
        if self._spec.on is not None:
            return [
                other
                for other in self._other.records.values()
                if matches(self._spec.on, {**other, **row})
            ]
        key = row.get(self._local_primary) if self._local_primary else None
        if key is None:
            return []
        return evaluator.select(Condition(self._spec.field, Operator.EQ, key))


def _numeric_values(spec: GroupSpec, values: list[Any]) -> list[Any]:
    present = [v for v in values if v is not None]
    for v in present:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise UnsupportedOperation(
                f"{spec.function.value}({spec.field}) needs numeric values, got {type(v).__name__}"
            )
    return present


def aggregate(spec: GroupSpec, rows: list[Record]) -> Any:
    """Compute ``spec``'s aggregate over one group's rows."""
    function = spec.function
    values = [row.get(spec.field) for row in rows]
    if function is AggregateFunction.COUNT:
        return len(rows)
    if function is AggregateFunction.DISTINCT:
        seen: dict[Any, Any] = {}
        for v in values:
            seen.setdefault(freeze(v), v)
        return list(seen.values())

    numbers = _numeric_values(spec, values)
    if function is AggregateFunction.SUM:
        return sum(numbers)
    if not numbers:
        return None
    if function is AggregateFunction.AVG:
        return sum(numbers) / len(numbers)
    if function is AggregateFunction.MIN:
        return min(numbers)
    return max(numbers)


class GroupStage(Stage):
    """Collapses rows sharing the grouping values into one row per group.

    Groups come out in first-seen order. Each output row holds the grouping
    fields plus one ``<fn>_<field>`` column per aggregate; groups failing a
    spec's ``having`` condition are dropped.
    """

    def __init__(self, specs: tuple[GroupSpec, ...]) -> None:
        self._specs = specs

    def apply(self, rows: list[Record]) -> list[Record]:
        groups: dict[tuple[Any, ...], list[Record]] = {}
        for row in rows:
            key = tuple(freeze(row.get(spec.field)) for spec in self._specs)
            groups.setdefault(key, []).append(row)

        result: list[Record] = []
        for members in groups.values():
            out: Record = {spec.field: members[0].get(spec.field) for spec in self._specs}
            for spec in self._specs:
                if spec.function is not None:
                    out[spec.aggregate_field] = aggregate(spec, members)
            if all(spec.having is None or matches(spec.having, out) for spec in self._specs):
                result.append(out)
        return result


class SortStage(Stage):
    """Stable multi-key sort.

    Missing and ``None`` values sort after present values ascending and
    before them descending.
    """

    def __init__(self, specs: tuple[SortSpec, ...]) -> None:
        self._specs = specs

    def apply(self, rows: list[Record]) -> list[Record]:
        ordered = list(rows)
        # Successive stable sorts, least significant key first.
        for spec in reversed(self._specs):
            try:
                ordered.sort(
                    key=lambda row, f=spec.field: _sort_key(row.get(f)),
                    reverse=spec.direction is SortDirection.DESC,
                )
            except TypeError as e:
                raise UnsupportedOperation(f"cannot order by '{spec.field}': {e}") from e
        return ordered


def _sort_key(value: Any) -> tuple[Any, ...]:
    return (1,) if value is None else (0, value)


class PaginateStage(Stage):
    def __init__(self, pagination: Pagination) -> None:
        self._pagination = pagination

    def apply(self, rows: list[Record]) -> list[Record]:
        skip, take = self._pagination.resolve()
        if take is None:
            return rows[skip:]
        return rows[skip : skip + take]


class ProjectStage(Stage):
    """Keeps only the listed fields, in listed order (absent fields as None)."""

    def __init__(self, fields: tuple[str, ...]) -> None:
        self._fields = fields

    def apply(self, rows: list[Record]) -> list[Record]:
        return [{name: row.get(name) for name in self._fields} for row in rows]


class QueryPipeline:
    """Builds and runs the stage chain for a query against one table."""

    def __init__(self, store: TableStore) -> None:
        self._store = store

    def execute(self, table: str, options: QueryOptions | None = None) -> QueryResult:
        """Run ``options`` against ``table``.

        Raises:
            SchemaError: The table or a joined table is not registered.
            QueryOptionsError: Malformed condition literals.
            UnsupportedOperation: Unservable lookup, aggregate or ordering.
        """
        options = options or QueryOptions()
        stats = QueryStats()
        stages = self.build_stages(table, options, stats)

        rows = list(self._store.records(table).values())
        for stage in stages:
            rows = stage.apply(rows)
        return QueryResult(rows=rows, stats=stats)

    def build_stages(self, table: str, options: QueryOptions, stats: QueryStats) -> list[Stage]:
        """Build the stage chain; joined tables are resolved up front."""
        state = self._store.state(table)
        stages: list[Stage] = [FilterStage(state, options.where, stats)]

        for spec in options.joins:
            other = self._store.state(spec.table)
            stages.append(JoinStage(spec, state.schema.primary_key, other, stats))

        if options.group_by:
            stages.append(GroupStage(options.group_by))
        if options.order_by:
            stages.append(SortStage(options.order_by))
        if options.pagination is not None:
            stages.append(PaginateStage(options.pagination))
        if options.select is not None:
            stages.append(ProjectStage(options.select))
        return stages
