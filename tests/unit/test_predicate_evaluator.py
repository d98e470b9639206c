"""Unit tests for predicate evaluation."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from doc_store.domain.entities import TableSchema
from doc_store.domain.errors import QueryOptionsError, UnsupportedOperation
from doc_store.domain.services import PredicateEvaluator, TableIndexes, matches
from doc_store.domain.value_objects import (
    BooleanOp,
    CompositeCondition,
    Condition,
    Operator,
)


def cond(field: str, op: str, value: object = None) -> Condition:
    return Condition(field, Operator(op), value)


@pytest.fixture
def records() -> dict:
    return {
        1: {
            "id": 1,
            "email": "a@x",
            "role": "admin",
            "age": 30,
            "active": True,
            "tags": ["x", "y"],
            "created": datetime(2024, 1, 1, tzinfo=timezone.utc),
        },
        2: {"id": 2, "email": "b@x", "role": "user", "age": 25, "active": False, "tags": ["y"]},
        3: {"id": 3, "email": "c@x", "role": "admin", "age": None, "tags": []},
        4: {"id": 4, "email": "d@x", "role": "user", "profile": {"city": "Oslo"}},
    }


@pytest.fixture
def evaluator(users_schema: TableSchema, records: dict) -> PredicateEvaluator:
    indexes = TableIndexes(users_schema, max_keys=3)
    indexes.rebuild(records)
    return PredicateEvaluator(users_schema, records, indexes)


@pytest.mark.unit
class TestSimpleConditions:
    """Tests for simple condition semantics."""

    @pytest.mark.parametrize(
        "condition, expected",
        [
            (cond("role", "eq", "admin"), {1, 3}),
            (cond("role", "ne", "admin"), {2, 4}),
            (cond("age", "gt", 25), {1}),
            (cond("age", "gte", 25), {1, 2}),
            (cond("age", "lt", 30), {2}),
            (cond("age", "lte", 30), {1, 2}),
            (cond("age", "between", [25, 30]), {1, 2}),
            (cond("age", "eq", None), {3, 4}),
            (cond("age", "null"), {3, 4}),
            (cond("age", "exists"), {1, 2, 3}),
            (cond("email", "like", "b@"), {2}),
            (cond("email", "startsWith", "c"), {3}),
            (cond("email", "endsWith", "@x"), {1, 2, 3, 4}),
            (cond("role", "in", ["user"]), {2, 4}),
            (cond("role", "nin", ["user"]), {1, 3}),
            (cond("tags", "contains", "y"), {1, 2}),
            (cond("active", "eq", True), {1}),
            (cond("profile", "eq", {"city": "Oslo"}), {4}),
        ],
    )
    def test_operator(
        self, evaluator: PredicateEvaluator, condition: Condition, expected: set
    ) -> None:
        assert evaluator.evaluate(condition) == expected
        assert evaluator.evaluate(condition, use_index=False) == expected

    def test_unknown_field_matches_nothing(self, evaluator: PredicateEvaluator) -> None:
        assert evaluator.evaluate(cond("nickname", "eq", "x")) == set()
        assert evaluator.evaluate(cond("nickname", "null")) == set()

    def test_type_mismatch_literal_scans(self, evaluator: PredicateEvaluator) -> None:
        assert evaluator.evaluate(cond("age", "eq", "30")) == set()
        assert evaluator.index_lookups == 0
        assert evaluator.scans == 1

    def test_index_path_used(self, evaluator: PredicateEvaluator) -> None:
        evaluator.evaluate(cond("role", "eq", "admin"))
        evaluator.evaluate(cond("age", "between", [20, 40]))
        evaluator.evaluate(cond("age", "gte", 20))
        assert evaluator.index_lookups == 2
        assert evaluator.scans == 1

    def test_hashed_index_rejects_ordering(self, evaluator: PredicateEvaluator) -> None:
        with pytest.raises(UnsupportedOperation):
            evaluator.evaluate(cond("active", "gt", False))

    def test_date_literals_are_coerced(self, evaluator: PredicateEvaluator) -> None:
        condition = cond("created", "between", ["2023-12-31", "2024-01-02"])
        assert evaluator.evaluate(condition) == {1}

    def test_malformed_literals(self, evaluator: PredicateEvaluator) -> None:
        with pytest.raises(QueryOptionsError):
            evaluator.evaluate(cond("age", "between", 5))
        with pytest.raises(QueryOptionsError):
            evaluator.evaluate(cond("role", "in", "admin"))


@pytest.mark.unit
class TestCompositeConditions:
    """Tests for and / or / not."""

    def test_and_or(self, evaluator: PredicateEvaluator) -> None:
        admin = cond("role", "eq", "admin")
        older = cond("age", "gt", 25)
        young = cond("age", "lt", 30)
        assert evaluator.evaluate(CompositeCondition(BooleanOp.AND, (admin, older))) == {1}
        assert evaluator.evaluate(CompositeCondition(BooleanOp.OR, (admin, young))) == {1, 2, 3}

    def test_not_negates_first_only(self, evaluator: PredicateEvaluator) -> None:
        admin = cond("role", "eq", "admin")
        ignored = cond("role", "eq", "user")
        assert evaluator.evaluate(CompositeCondition(BooleanOp.NOT, (admin, ignored))) == {2, 4}

    def test_empty_composites(self, evaluator: PredicateEvaluator) -> None:
        assert evaluator.evaluate(CompositeCondition(BooleanOp.AND)) == {1, 2, 3, 4}
        assert evaluator.evaluate(CompositeCondition(BooleanOp.OR)) == set()
        with pytest.raises(QueryOptionsError):
            evaluator.evaluate(CompositeCondition(BooleanOp.NOT))

    def test_de_morgan(self, evaluator: PredicateEvaluator) -> None:
        a = cond("role", "eq", "admin")
        b = cond("age", "lt", 30)
        lhs = CompositeCondition(
            BooleanOp.NOT, (CompositeCondition(BooleanOp.OR, (a, b)),)
        )
        rhs = CompositeCondition(
            BooleanOp.AND,
            (CompositeCondition(BooleanOp.NOT, (a,)), CompositeCondition(BooleanOp.NOT, (b,))),
        )
        assert evaluator.evaluate(lhs) == evaluator.evaluate(rhs) == {4}

    def test_select_preserves_table_order(self, evaluator: PredicateEvaluator) -> None:
        rows = evaluator.select(cond("role", "in", ["user", "admin"]))
        assert [r["id"] for r in rows] == [1, 2, 3, 4]
        assert [r["id"] for r in evaluator.select(None)] == [1, 2, 3, 4]


@pytest.mark.unit
class TestMatches:
    """Tests for single-row evaluation."""

    def test_row_semantics(self) -> None:
        row = {"count_role": 2, "role": "admin"}
        assert matches(cond("count_role", "gt", 1), row)
        assert not matches(cond("missing", "exists"), row)
        assert matches(cond("missing", "null"), row)
        assert matches(
            CompositeCondition(
                BooleanOp.AND, (cond("role", "eq", "admin"), cond("count_role", "lte", 2))
            ),
            row,
        )
        assert not matches(CompositeCondition(BooleanOp.OR), row)

    def test_incomparable_values_do_not_match(self) -> None:
        assert not matches(cond("v", "gt", 1), {"v": "text"})
        assert not matches(cond("v", "lt", 1), {"v": None})
