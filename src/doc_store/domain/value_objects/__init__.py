"""Value objects for the document store domain.

Value objects are immutable types that represent domain concepts.

Exports:
    Column types:
        - ColumnType: Value type tag of a column (number, string, ...)
        - IndexMode: Lookup representations of a secondary index

    Query options:
        - QueryOptions, Condition, CompositeCondition, JoinSpec, GroupSpec,
          SortSpec, Pagination and their enums
        - parse_query_options / parse_condition: build them from mappings

    Identifiers:
        - RecordId, Record, TableData, Snapshot
"""

from doc_store.domain.value_objects.column_types import ColumnType, IndexMode
from doc_store.domain.value_objects.identifiers import (
    Record,
    RecordId,
    Snapshot,
    TableData,
)
from doc_store.domain.value_objects.query_options import (
    INDEXABLE_OPERATORS,
    AggregateFunction,
    BooleanOp,
    CompositeCondition,
    Condition,
    ConditionNode,
    GroupSpec,
    JoinKind,
    JoinSpec,
    Operator,
    Pagination,
    QueryOptions,
    SortDirection,
    SortSpec,
    parse_condition,
    parse_query_options,
)

__all__ = [
    # Column types
    "ColumnType",
    "IndexMode",
    # Identifiers
    "Record",
    "RecordId",
    "Snapshot",
    "TableData",
    # Query options
    "INDEXABLE_OPERATORS",
    "AggregateFunction",
    "BooleanOp",
    "CompositeCondition",
    "Condition",
    "ConditionNode",
    "GroupSpec",
    "JoinKind",
    "JoinSpec",
    "Operator",
    "Pagination",
    "QueryOptions",
    "SortDirection",
    "SortSpec",
    "parse_condition",
    "parse_query_options",
]
