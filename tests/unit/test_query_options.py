"""Unit tests for query options parsing."""

from __future__ import annotations

import pytest

from doc_store.domain.errors import QueryOptionsError
from doc_store.domain.value_objects import (
    AggregateFunction,
    BooleanOp,
    CompositeCondition,
    Condition,
    GroupSpec,
    JoinKind,
    Operator,
    Pagination,
    QueryOptions,
    SortDirection,
    parse_condition,
    parse_query_options,
)


@pytest.mark.unit
class TestParseCondition:
    """Tests for condition parsing."""

    def test_simple(self) -> None:
        cond = parse_condition({"field": "role", "operator": "eq", "value": "admin"})
        assert cond == Condition("role", Operator.EQ, "admin")

    def test_camel_and_snake_operators(self) -> None:
        assert parse_condition({"field": "a", "operator": "startsWith", "value": "x"}).operator is (
            Operator.STARTS_WITH
        )
        assert parse_condition({"field": "a", "operator": "ends_with", "value": "x"}).operator is (
            Operator.ENDS_WITH
        )

    def test_composite(self) -> None:
        cond = parse_condition(
            {
                "operator": "or",
                "conditions": [
                    {"field": "a", "operator": "gt", "value": 1},
                    {"operator": "not", "conditions": [{"field": "b", "operator": "null"}]},
                ],
            }
        )
        assert isinstance(cond, CompositeCondition)
        assert cond.op is BooleanOp.OR
        inner = cond.conditions[1]
        assert isinstance(inner, CompositeCondition) and inner.op is BooleanOp.NOT
        assert inner.conditions == (Condition("b", Operator.NULL),)

    def test_passthrough(self) -> None:
        cond = Condition("a", Operator.EQ, 1)
        assert parse_condition(cond) is cond

    @pytest.mark.parametrize(
        "raw",
        [
            {"field": "a", "operator": "approx", "value": 1},
            {"operator": "eq", "value": 1},
            {"field": "a"},
            {"operator": "xor", "conditions": []},
            "role = admin",
        ],
    )
    def test_invalid(self, raw: object) -> None:
        with pytest.raises(QueryOptionsError):
            parse_condition(raw)


@pytest.mark.unit
class TestPagination:
    """Tests for pagination resolution."""

    def test_offset_wins(self) -> None:
        assert Pagination(page=3, limit=10, offset=5).resolve() == (5, 10)

    def test_page_and_limit(self) -> None:
        assert Pagination(page=3, limit=10).resolve() == (20, 10)

    def test_defaults(self) -> None:
        assert Pagination().resolve() == (0, None)
        assert Pagination(page=2).resolve() == (0, None)

    @pytest.mark.parametrize(
        "kwargs",
        [{"page": 0}, {"limit": -1}, {"offset": -3}, {"limit": True}, {"limit": "10"}],
    )
    def test_invalid(self, kwargs: dict) -> None:
        with pytest.raises(QueryOptionsError):
            Pagination(**kwargs)


@pytest.mark.unit
class TestParseQueryOptions:
    """Tests for the mapping form of query options."""

    def test_full_mapping(self) -> None:
        options = parse_query_options(
            {
                "where": {"field": "role", "operator": "eq", "value": "admin"},
                "joins": {"entity": "posts", "field": "author_id", "alias": "posts", "type": "left"},
                "groupBy": [{"field": "role", "fn": "count"}],
                "orderBy": {"field": "email", "direction": "desc"},
                "pagination": {"limit": 5, "offset": 0},
                "select": ["role", "count_role"],
            }
        )
        assert options.where == Condition("role", Operator.EQ, "admin")
        assert options.joins[0].table == "posts"
        assert options.joins[0].kind is JoinKind.LEFT
        assert options.group_by == (GroupSpec("role", AggregateFunction.COUNT),)
        assert options.order_by[0].direction is SortDirection.DESC
        assert options.pagination == Pagination(limit=5, offset=0)
        assert options.select == ("role", "count_role")

    def test_snake_case_and_strings(self) -> None:
        options = parse_query_options({"order_by": "email", "group_by": "role"})
        assert options.order_by[0].field == "email"
        assert options.order_by[0].direction is SortDirection.ASC
        assert options.group_by[0].function is None

    def test_none_and_passthrough(self) -> None:
        assert parse_query_options(None) == QueryOptions()
        options = QueryOptions(select=("a",))
        assert parse_query_options(options) is options
        assert QueryOptions.from_mapping({"select": "a"}).select == ("a",)

    def test_having(self) -> None:
        options = parse_query_options(
            {
                "groupBy": {
                    "field": "role",
                    "function": "count",
                    "having": {"field": "count_role", "operator": "gt", "value": 1},
                }
            }
        )
        assert options.group_by[0].having == Condition("count_role", Operator.GT, 1)
        assert options.group_by[0].aggregate_field == "count_role"

    @pytest.mark.parametrize(
        "raw",
        [
            {"orderBy": {"field": "a", "direction": "sideways"}},
            {"groupBy": {"field": "a", "function": "median"}},
            {"joins": {"field": "a"}},
            {"pagination": 5},
            ["where"],
        ],
    )
    def test_invalid(self, raw: object) -> None:
        with pytest.raises(QueryOptionsError):
            parse_query_options(raw)
