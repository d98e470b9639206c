"""Application layer for the document store.

The application layer orchestrates domain logic to fulfill use cases:
mutations go through the MutationEngine, reads through the QueryPipeline.

Exports:
    DocumentStore:
        - DocumentStore: Main entry point for the store
        - QueryBuilder: Fluent query construction
    Query pipeline:
        - QueryPipeline: Builds and runs the stage chain
        - QueryResult, QueryStats: Rows plus access-path counters
        - Stage and the Filter/Join/Group/Sort/Paginate/Project stages
    Mutation engine:
        - MutationEngine: save / remove with index maintenance
        - TableStore, TableState: In-memory records and indexes
"""

from doc_store.application.document_store import DocumentStore
from doc_store.application.mutation_engine import MutationEngine, TableState, TableStore
from doc_store.application.query_builder import QueryBuilder
from doc_store.application.query_pipeline import (
    FilterStage,
    GroupStage,
    JoinStage,
    PaginateStage,
    ProjectStage,
    QueryPipeline,
    QueryResult,
    QueryStats,
    SortStage,
    Stage,
)

__all__ = [
    "DocumentStore",
    "QueryBuilder",
    "MutationEngine",
    "TableStore",
    "TableState",
    "QueryPipeline",
    "QueryResult",
    "QueryStats",
    "Stage",
    "FilterStage",
    "JoinStage",
    "GroupStage",
    "SortStage",
    "PaginateStage",
    "ProjectStage",
]
