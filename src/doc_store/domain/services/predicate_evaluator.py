"""Predicate evaluation.

Evaluates simple conditions ``(field, operator, value)`` and composite
``and``/``or``/``not`` conditions against one table, producing the set of
matching record ids.

Index-vs-scan heuristic:
    A simple condition uses the field's secondary index when one exists, the
    operator is ``eq``, ``gt``, ``lt`` or ``between``, and the literal is of
    the column's type. Everything else scans the table. Both paths return the
    same ids for the same condition.

Fields that are not declared in the table schema match no record.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from doc_store.domain.entities.schema import TableSchema
from doc_store.domain.errors import QueryOptionsError
from doc_store.domain.services.secondary_index import SecondaryIndex, TableIndexes
from doc_store.domain.value_objects import (
    INDEXABLE_OPERATORS,
    BooleanOp,
    ColumnType,
    CompositeCondition,
    Condition,
    ConditionNode,
    Operator,
    Record,
    RecordId,
)

_MISSING = object()
_COLLECTION_TYPES = (list, tuple, set, frozenset)


def _ordered(left: Any, op: Operator, right: Any) -> bool:
    if left is None or right is None:
        return False
    try:
        if op is Operator.GT:
            return left > right
        if op is Operator.GTE:
            return left >= right
        if op is Operator.LT:
            return left < right
        return left <= right
    except TypeError:
        return False


def _between_bounds(literal: Any) -> tuple[Any, Any]:
    if not isinstance(literal, (list, tuple)) or len(literal) != 2:
        raise QueryOptionsError(f"'between' expects a [low, high] pair, got {literal!r}")
    return literal[0], literal[1]


def _members(literal: Any, operator: Operator) -> Sequence[Any]:
    if not isinstance(literal, _COLLECTION_TYPES):
        raise QueryOptionsError(f"'{operator.value}' expects a list of values, got {literal!r}")
    return list(literal)


def apply_operator(operator: Operator, value: Any, literal: Any) -> bool:
    """Apply ``operator`` to one field value.

    ``value`` is the record's field value, or the module's missing sentinel
    when the record has no such field.
    """
    present = value is not _MISSING
    current = value if present else None

    if operator is Operator.EQ:
        return current == literal
    if operator is Operator.NE:
        return not current == literal
    if operator in (Operator.GT, Operator.GTE, Operator.LT, Operator.LTE):
        return _ordered(current, operator, literal)
    if operator is Operator.BETWEEN:
        low, high = _between_bounds(literal)
        return _ordered(current, Operator.GTE, low) and _ordered(current, Operator.LTE, high)
    if operator is Operator.IN:
        return current in _members(literal, operator)
    if operator is Operator.NIN:
        return current not in _members(literal, operator)
    if operator is Operator.EXISTS:
        return present
    if operator is Operator.NULL:
        return current is None
    if operator is Operator.CONTAINS:
        return isinstance(current, (list, tuple)) and literal in current
    if current is None:
        return False
    # Literal substring / prefix / suffix tests, no wildcard patterns.
    if operator is Operator.LIKE:
        return str(literal) in str(current)
    if operator is Operator.STARTS_WITH:
        return str(current).startswith(str(literal))
    if operator is Operator.ENDS_WITH:
        return str(current).endswith(str(literal))
    raise QueryOptionsError(f"unsupported operator: {operator!r}")


def matches(condition: ConditionNode, row: Mapping[str, Any]) -> bool:
    """Evaluate ``condition`` against a single row mapping (scan semantics)."""
    if isinstance(condition, CompositeCondition):
        if condition.op is BooleanOp.AND:
            return all(matches(c, row) for c in condition.conditions)
        if condition.op is BooleanOp.OR:
            return any(matches(c, row) for c in condition.conditions)
        if not condition.conditions:
            raise QueryOptionsError("'not' requires one sub-condition")
        return not matches(condition.conditions[0], row)
    return apply_operator(condition.operator, row.get(condition.field, _MISSING), condition.value)


def _coerce_literal(column_type: ColumnType, operator: Operator, literal: Any) -> Any:
    """Bring query literals of date columns to the stored representation."""
    if column_type is not ColumnType.DATE:
        return literal
    if operator in (Operator.BETWEEN, Operator.IN, Operator.NIN) and isinstance(literal, (list, tuple)):
        return [column_type.coerce_literal(v) for v in literal]
    return column_type.coerce_literal(literal)


class PredicateEvaluator:
    """Evaluates conditions over one table's records and indexes.

    Attributes:
        index_lookups: Simple conditions answered by an index.
        scans: Simple conditions answered by a full scan.
    """

    def __init__(
        self,
        schema: TableSchema,
        records: Mapping[RecordId, Record],
        indexes: TableIndexes | None = None,
    ) -> None:
        self._schema = schema
        self._records = records
        self._indexes = indexes
        self.index_lookups = 0
        self.scans = 0

    def evaluate(self, condition: ConditionNode, use_index: bool = True) -> set[RecordId]:
        """Return the ids of records satisfying ``condition``.

        Args:
            condition: Simple or composite condition.
            use_index: Set False to force the full-scan path.

        Raises:
            UnsupportedOperation: Ordering lookup on a hashed-only index.
            QueryOptionsError: Malformed literal or empty ``not``.
        """
        if isinstance(condition, CompositeCondition):
            return self._evaluate_composite(condition, use_index)
        return self._evaluate_simple(condition, use_index)

    def select(self, condition: ConditionNode | None) -> list[Record]:
        """Return matching records in table order (all records without a condition)."""
        if condition is None:
            return list(self._records.values())
        ids = self.evaluate(condition)
        return [record for rid, record in self._records.items() if rid in ids]

    def _evaluate_composite(self, condition: CompositeCondition, use_index: bool) -> set[RecordId]:
        parts = [self.evaluate(c, use_index) for c in condition.conditions]
        if condition.op is BooleanOp.AND:
            if not parts:
                return set(self._records)
            result = parts[0]
            for part in parts[1:]:
                result &= part
            return result
        if condition.op is BooleanOp.OR:
            return set().union(*parts)
        if not parts:
            raise QueryOptionsError("'not' requires one sub-condition")
        # One-operand negation: only the first sub-condition participates.
        return set(self._records) - parts[0]

    def _evaluate_simple(self, condition: Condition, use_index: bool) -> set[RecordId]:
        column_type = self._schema.column_type(condition.field)
        if column_type is None:
            return set()

        literal = _coerce_literal(column_type, condition.operator, condition.value)
        index = self._indexes.get(condition.field) if (use_index and self._indexes) else None
        if index is not None and self._index_eligible(column_type, condition.operator, literal):
            self.index_lookups += 1
            return self._lookup(index, condition.operator, literal)

        self.scans += 1
        return {
            rid
            for rid, record in self._records.items()
            if apply_operator(condition.operator, record.get(condition.field, _MISSING), literal)
        }

    @staticmethod
    def _index_eligible(column_type: ColumnType, operator: Operator, literal: Any) -> bool:
        if operator not in INDEXABLE_OPERATORS:
            return False
        if operator is Operator.BETWEEN:
            return (
                isinstance(literal, (list, tuple))
                and len(literal) == 2
                and all(v is not None and column_type.accepts(v) for v in literal)
            )
        return column_type.accepts(literal)

    @staticmethod
    def _lookup(index: SecondaryIndex, operator: Operator, literal: Any) -> set[RecordId]:
        if operator is Operator.EQ:
            return index.find_equal(literal)
        if operator is Operator.GT:
            return index.find_greater_than(literal)
        if operator is Operator.LT:
            return index.find_less_than(literal)
        low, high = literal
        return index.find_range(low, high)
