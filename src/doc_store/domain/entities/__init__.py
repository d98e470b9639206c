"""Domain entities for the document store.

Exports:
    Schema:
        - ColumnDescriptor: Per-column type and constraint flags
        - TableSchema: Table name plus ordered column descriptors
        - build_schema_map / resolve_schema: Explicit schema map helpers

    B+Tree Nodes:
        - BTreeLeafNode: Leaf node storing key -> id-set buckets
        - BTreeInternalNode: Internal node with separator keys
        - NodeType: Enum for node types
"""

from doc_store.domain.entities.btree_node import (
    BTreeInternalNode,
    BTreeLeafNode,
    NodeType,
)
from doc_store.domain.entities.schema import (
    ColumnDescriptor,
    SchemaMap,
    TableSchema,
    build_schema_map,
    resolve_schema,
)

__all__ = [
    # Schema
    "ColumnDescriptor",
    "SchemaMap",
    "TableSchema",
    "build_schema_map",
    "resolve_schema",
    # B+Tree Nodes
    "BTreeLeafNode",
    "BTreeInternalNode",
    "NodeType",
]
