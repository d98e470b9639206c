"""Query options value objects.

A QueryOptions value describes one read: predicate, joins, grouping,
ordering, pagination and projection. It is built by the caller (directly,
through the QueryBuilder, or parsed from a plain mapping) and consumed once
by the query pipeline.

The mapping form mirrors the JSON accepted by the REST adapter::

    {
        "where": {"operator": "and", "conditions": [
            {"field": "role", "operator": "eq", "value": "admin"},
            {"field": "email", "operator": "like", "value": "user"},
        ]},
        "orderBy": [{"field": "email", "direction": "desc"}],
        "pagination": {"limit": 10, "offset": 0},
        "select": ["email", "role"],
    }

Both camelCase (``orderBy``, ``groupBy``, ``startsWith``) and snake_case keys
are accepted.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from doc_store.domain.errors import QueryOptionsError


class Operator(Enum):
    """Simple condition operators."""

    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    LIKE = "like"
    IN = "in"
    NIN = "nin"
    BETWEEN = "between"
    EXISTS = "exists"
    NULL = "null"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"


# Operators the secondary index can answer directly.
INDEXABLE_OPERATORS = frozenset({Operator.EQ, Operator.GT, Operator.LT, Operator.BETWEEN})


class BooleanOp(Enum):
    """Composite condition operators."""

    AND = "and"
    OR = "or"
    NOT = "not"


class SortDirection(Enum):
    ASC = "asc"
    DESC = "desc"


class AggregateFunction(Enum):
    """Aggregates available to group specs."""

    COUNT = "count"
    SUM = "sum"
    AVG = "avg"
    MIN = "min"
    MAX = "max"
    DISTINCT = "distinct"


class JoinKind(Enum):
    INNER = "inner"
    LEFT = "left"


@dataclass(frozen=True)
class Condition:
    """A simple ``(field, operator, value)`` condition."""

    field: str
    operator: Operator
    value: Any = None


@dataclass(frozen=True)
class CompositeCondition:
    """A boolean combination of sub-conditions.

    ``NOT`` negates only ``conditions[0]``; it is a one-operand negation.
    """

    op: BooleanOp
    conditions: tuple[ConditionNode, ...] = ()


ConditionNode = Union[Condition, CompositeCondition]


@dataclass(frozen=True)
class SortSpec:
    field: str
    direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True)
class GroupSpec:
    """Grouping field with an optional aggregate and post-aggregation filter."""

    field: str
    function: AggregateFunction | None = None
    having: ConditionNode | None = None

    @property
    def aggregate_field(self) -> str | None:
        """Name of the synthesized aggregate column, e.g. ``count_role``."""
        if self.function is None:
            return None
        return f"{self.function.value}_{self.field}"


@dataclass(frozen=True)
class Pagination:
    page: int | None = None
    limit: int | None = None
    offset: int | None = None

    def __post_init__(self) -> None:
        for name in ("page", "limit", "offset"):
            value = getattr(self, name)
            if value is None:
                continue
            if not isinstance(value, int) or isinstance(value, bool):
                raise QueryOptionsError(f"pagination {name} must be an integer, got {value!r}")
            minimum = 1 if name == "page" else 0
            if value < minimum:
                raise QueryOptionsError(f"pagination {name} must be >= {minimum}, got {value}")

    def resolve(self) -> tuple[int, int | None]:
        """Return the ``(skip, take)`` pair; ``take`` None means all remaining."""
        if self.offset is not None:
            skip = self.offset
        elif self.page is not None and self.limit is not None:
            skip = (self.page - 1) * self.limit
        else:
            skip = 0
        return skip, self.limit


@dataclass(frozen=True)
class JoinSpec:
    """Attach rows of ``table`` whose ``field`` references the local record.

    Without ``on`` a row matches when ``row[field]`` equals the local record's
    primary value. With ``on`` the condition is evaluated over the local record
    merged with the candidate row (local fields take precedence).
    """

    table: str
    field: str
    alias: str | None = None
    kind: JoinKind = JoinKind.INNER
    on: ConditionNode | None = None

    @property
    def target(self) -> str:
        return self.alias or self.table


@dataclass(frozen=True)
class QueryOptions:
    where: ConditionNode | None = None
    joins: tuple[JoinSpec, ...] = ()
    group_by: tuple[GroupSpec, ...] = ()
    order_by: tuple[SortSpec, ...] = ()
    pagination: Pagination | None = None
    select: tuple[str, ...] | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> QueryOptions:
        return parse_query_options(data)


_BOOLEAN_OP_NAMES = frozenset(op.value for op in BooleanOp)

_OPERATOR_ALIASES = {
    "starts_with": Operator.STARTS_WITH,
    "startswith": Operator.STARTS_WITH,
    "ends_with": Operator.ENDS_WITH,
    "endswith": Operator.ENDS_WITH,
}


def _enum_value(enum_cls: type[Enum], raw: Any, what: str) -> Any:
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(raw)
    except ValueError:
        if isinstance(raw, str) and enum_cls is Operator and raw.lower() in _OPERATOR_ALIASES:
            return _OPERATOR_ALIASES[raw.lower()]
        raise QueryOptionsError(f"unknown {what}: {raw!r}") from None


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return default


def _as_list(raw: Any) -> list[Any]:
    if raw is None:
        return []
    if isinstance(raw, Sequence) and not isinstance(raw, (str, bytes)):
        return list(raw)
    return [raw]


def parse_condition(raw: Any) -> ConditionNode:
    """Parse a condition from a mapping (or pass a condition object through)."""
    if isinstance(raw, (Condition, CompositeCondition)):
        return raw
    if not isinstance(raw, Mapping):
        raise QueryOptionsError(f"condition must be a mapping, got {type(raw).__name__}")

    operator = raw.get("operator")
    operator_name = operator.value if isinstance(operator, Enum) else operator
    if "conditions" in raw or (isinstance(operator_name, str) and operator_name in _BOOLEAN_OP_NAMES):
        op = _enum_value(BooleanOp, operator, "boolean operator")
        subs = raw.get("conditions") or []
        if not isinstance(subs, Sequence) or isinstance(subs, (str, bytes)):
            raise QueryOptionsError("composite 'conditions' must be a list")
        return CompositeCondition(op=op, conditions=tuple(parse_condition(c) for c in subs))

    field_name = raw.get("field")
    if not isinstance(field_name, str) or not field_name:
        raise QueryOptionsError("condition requires a non-empty 'field'")
    if operator is None:
        raise QueryOptionsError(f"condition on '{field_name}' requires an 'operator'")
    return Condition(
        field=field_name,
        operator=_enum_value(Operator, operator, "operator"),
        value=raw.get("value"),
    )


def parse_sort(raw: Any) -> SortSpec:
    if isinstance(raw, SortSpec):
        return raw
    if isinstance(raw, str):
        return SortSpec(field=raw)
    if not isinstance(raw, Mapping) or not raw.get("field"):
        raise QueryOptionsError(f"invalid sort spec: {raw!r}")
    direction = _enum_value(SortDirection, raw.get("direction", "asc"), "sort direction")
    return SortSpec(field=raw["field"], direction=direction)


def parse_group(raw: Any) -> GroupSpec:
    if isinstance(raw, GroupSpec):
        return raw
    if isinstance(raw, str):
        return GroupSpec(field=raw)
    if not isinstance(raw, Mapping) or not raw.get("field"):
        raise QueryOptionsError(f"invalid group spec: {raw!r}")
    function = _pick(raw, "function", "fn")
    having = raw.get("having")
    return GroupSpec(
        field=raw["field"],
        function=None if function is None else _enum_value(AggregateFunction, function, "aggregate"),
        having=None if having is None else parse_condition(having),
    )


def parse_join(raw: Any) -> JoinSpec:
    if isinstance(raw, JoinSpec):
        return raw
    if not isinstance(raw, Mapping):
        raise QueryOptionsError(f"invalid join spec: {raw!r}")
    table = _pick(raw, "table", "entity")
    if not isinstance(table, str) or not raw.get("field"):
        raise QueryOptionsError("join requires 'table' and 'field'")
    on = raw.get("on")
    return JoinSpec(
        table=table,
        field=raw["field"],
        alias=raw.get("alias"),
        kind=_enum_value(JoinKind, _pick(raw, "kind", "type", default="inner"), "join kind"),
        on=None if on is None else parse_condition(on),
    )


def parse_pagination(raw: Any) -> Pagination:
    if isinstance(raw, Pagination):
        return raw
    if not isinstance(raw, Mapping):
        raise QueryOptionsError(f"invalid pagination: {raw!r}")
    return Pagination(page=raw.get("page"), limit=raw.get("limit"), offset=raw.get("offset"))


def parse_query_options(data: Mapping[str, Any] | QueryOptions | None) -> QueryOptions:
    """Build a QueryOptions value from its mapping form."""
    if data is None:
        return QueryOptions()
    if isinstance(data, QueryOptions):
        return data
    if not isinstance(data, Mapping):
        raise QueryOptionsError(f"query options must be a mapping, got {type(data).__name__}")

    where = data.get("where")
    pagination = data.get("pagination")
    select = data.get("select")
    return QueryOptions(
        where=None if where is None else parse_condition(where),
        joins=tuple(parse_join(j) for j in _as_list(data.get("joins"))),
        group_by=tuple(parse_group(g) for g in _as_list(_pick(data, "groupBy", "group_by"))),
        order_by=tuple(parse_sort(s) for s in _as_list(_pick(data, "orderBy", "order_by"))),
        pagination=None if pagination is None else parse_pagination(pagination),
        select=None if select is None else tuple(_as_list(select)),
    )
