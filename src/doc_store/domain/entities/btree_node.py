"""B+Tree node structures for the ordered secondary index.

Key properties:
    - Every key lives in a leaf together with its bucket of record ids
    - Internal nodes only contain separator keys and child references
    - Leaf nodes are linked for sequential range scans

References:
    - Bayer & McCreight, "B+Trees" (1972)
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from doc_store.domain.value_objects import RecordId


class NodeType(IntEnum):
    """Type of B+Tree node."""

    INTERNAL = 0
    LEAF = 1


@dataclass(eq=False)
class BTreeLeafNode:
    """A leaf node in a B+Tree.

    Leaf nodes map each key to the set of record ids holding that key.
    Keys are kept sorted; ``values[i]`` is the bucket for ``keys[i]``.

    Attributes:
        keys: Sorted keys stored in this node.
        values: Id buckets corresponding to keys.
        parent: Parent internal node (None for the root).
        next: Right sibling leaf (None if last).
        prev: Left sibling leaf (None if first).
    """

    keys: list[Any] = field(default_factory=list)
    values: list[set[RecordId]] = field(default_factory=list)
    parent: BTreeInternalNode | None = None
    next: BTreeLeafNode | None = None
    prev: BTreeLeafNode | None = None

    node_type = NodeType.LEAF

    @property
    def is_leaf(self) -> bool:
        return True

    @property
    def num_keys(self) -> int:
        return len(self.keys)

    def _position(self, key: Any) -> int | None:
        pos = bisect_left(self.keys, key)
        if pos < len(self.keys) and self.keys[pos] == key:
            return pos
        return None

    def search(self, key: Any) -> set[RecordId] | None:
        """Return the bucket for ``key`` or None."""
        pos = self._position(key)
        return None if pos is None else self.values[pos]

    def insert(self, key: Any, bucket: set[RecordId]) -> bool:
        """Insert a new key with its bucket, keeping keys sorted.

        Returns:
            True if inserted, False if the key already exists.
        """
        pos = bisect_left(self.keys, key)
        if pos < len(self.keys) and self.keys[pos] == key:
            return False
        self.keys.insert(pos, key)
        self.values.insert(pos, bucket)
        return True

    def delete(self, key: Any) -> bool:
        """Delete a key and its bucket.

        Returns:
            True if deleted, False if the key was not present.
        """
        pos = self._position(key)
        if pos is None:
            return False
        self.keys.pop(pos)
        self.values.pop(pos)
        return True


@dataclass(eq=False)
class BTreeInternalNode:
    """An internal node in a B+Tree.

    A node with N keys has N+1 children. All keys in ``children[i]`` are
    less than ``keys[i]``, and all keys in ``children[i+1]`` are >= ``keys[i]``.
    """

    keys: list[Any] = field(default_factory=list)
    children: list[BTreeNode] = field(default_factory=list)
    parent: BTreeInternalNode | None = None

    node_type = NodeType.INTERNAL

    @property
    def is_leaf(self) -> bool:
        return False

    @property
    def num_keys(self) -> int:
        return len(self.keys)

    def find_child(self, key: Any) -> BTreeNode:
        """Return the child that should contain ``key``."""
        return self.children[bisect_right(self.keys, key)]

    def insert_child(self, key: Any, left_child: BTreeNode, right_child: BTreeNode) -> None:
        """Insert a separator key after a child split.

        ``left_child`` is already present; ``right_child`` is the new node.
        """
        if not self.children:
            self.children = [left_child, right_child]
            self.keys = [key]
            return

        pos = self.children.index(left_child)
        self.keys.insert(pos, key)
        self.children.insert(pos + 1, right_child)


BTreeNode = BTreeLeafNode | BTreeInternalNode
