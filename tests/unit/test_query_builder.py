"""Unit tests for the fluent query builder."""

from __future__ import annotations

import pytest

from doc_store.application import DocumentStore
from doc_store.domain.errors import QueryOptionsError, UnknownTableError
from doc_store.domain.value_objects import (
    AggregateFunction,
    BooleanOp,
    CompositeCondition,
    Condition,
    JoinKind,
    Operator,
    Pagination,
    SortDirection,
)

ADMIN = {"field": "role", "operator": "eq", "value": "admin"}


@pytest.mark.unit
class TestQueryBuilderOptions:
    """Tests for option accumulation."""

    def test_where_replaces(self, store: DocumentStore) -> None:
        builder = store.query("users").where(ADMIN).where(Condition("age", Operator.GT, 30))
        assert builder.get_options().where == Condition("age", Operator.GT, 30)

    def test_and_where_combines_with_where(self, store: DocumentStore) -> None:
        older = Condition("age", Operator.GT, 30)
        options = store.query("users").where(ADMIN).and_where(older).get_options()
        assert options.where == CompositeCondition(
            BooleanOp.AND, (Condition("role", Operator.EQ, "admin"), older)
        )

    def test_or_where_without_where(self, store: DocumentStore) -> None:
        options = store.query("users").or_where(ADMIN).get_options()
        assert options.where == Condition("role", Operator.EQ, "admin")

    def test_ordering_grouping_joins_accumulate(self, store: DocumentStore) -> None:
        options = (
            store.query("users")
            .order_by("role")
            .order_by("email", "desc")
            .group_by("role", "count")
            .join("posts", "author_id", alias="written", kind="left")
            .select("email", "role")
            .get_options()
        )
        assert [s.direction for s in options.order_by] == [SortDirection.ASC, SortDirection.DESC]
        assert options.group_by[0].function is AggregateFunction.COUNT
        assert options.joins[0].kind is JoinKind.LEFT
        assert options.joins[0].target == "written"
        assert options.select == ("email", "role")

    def test_pagination_merges(self, store: DocumentStore) -> None:
        options = store.query("users").limit(5).page(2).get_options()
        assert options.pagination == Pagination(page=2, limit=5)

    def test_invalid_values(self, store: DocumentStore) -> None:
        with pytest.raises(QueryOptionsError):
            store.query("users").order_by("email", "sideways")
        with pytest.raises(QueryOptionsError):
            store.query("users").limit(-1)
        with pytest.raises(QueryOptionsError):
            store.query("users").where({"field": "role", "operator": "matches", "value": "x"})

    def test_unknown_table(self, store: DocumentStore) -> None:
        with pytest.raises(UnknownTableError):
            store.query("comments")


@pytest.mark.unit
class TestQueryBuilderExecution:
    """Tests for running built queries."""

    def test_get_many(self, populated_store: DocumentStore) -> None:
        rows = populated_store.query("users").where(ADMIN).order_by("email", "desc").get_many()
        assert [r["id"] for r in rows] == [3, 1]

    def test_or_where_widens(self, populated_store: DocumentStore) -> None:
        rows = (
            populated_store.query("users")
            .where(ADMIN)
            .or_where({"field": "age", "operator": "lt", "value": 30})
            .get_many()
        )
        assert [r["id"] for r in rows] == [1, 2, 3]

    def test_get_one(self, populated_store: DocumentStore) -> None:
        builder = populated_store.query("users").order_by("age", "desc").limit(3)
        assert builder.get_one()["id"] == 4
        # get_one does not change the builder's own pagination.
        assert builder.get_options().pagination == Pagination(limit=3)

    def test_get_one_keeps_page_window(self, populated_store: DocumentStore) -> None:
        builder = populated_store.query("users").order_by("email").limit(2).page(2)
        assert [r["id"] for r in builder.get_many()] == [3, 4]
        assert builder.get_one()["id"] == 3

        assert populated_store.query("users").order_by("email").offset(1).get_one()["id"] == 2
        assert populated_store.query("users").limit(0).get_one() is None

    def test_get_one_without_match(self, populated_store: DocumentStore) -> None:
        assert populated_store.query("users").where(
            {"field": "email", "operator": "eq", "value": "nobody@example.com"}
        ).get_one() is None
