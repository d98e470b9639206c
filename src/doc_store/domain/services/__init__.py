"""Domain services for the document store.

Services implement the index structures and predicate evaluation that
the application layer composes into queries and mutations.
"""

from doc_store.domain.services.btree_index import BPlusTree
from doc_store.domain.services.identifiers import IdentifierGenerator
from doc_store.domain.services.predicate_evaluator import (
    PredicateEvaluator,
    apply_operator,
    matches,
)
from doc_store.domain.services.secondary_index import (
    IndexStats,
    SecondaryIndex,
    TableIndexes,
    freeze,
)

__all__ = [
    "BPlusTree",
    "IdentifierGenerator",
    "IndexStats",
    "PredicateEvaluator",
    "SecondaryIndex",
    "TableIndexes",
    "apply_operator",
    "freeze",
    "matches",
]
