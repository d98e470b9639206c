"""In-memory B+Tree keyed by column value.

Backs the ordered representation of a secondary index. Each key maps to a
bucket (set) of record ids, so non-unique columns need a single entry per
distinct value.

Key features:
    - O(log n) search, insert, delete
    - Range scans via linked leaf nodes
    - Keys whose bucket empties are removed (bounded memory for sparse values)

Deletion does not merge underfull nodes; empty leaves stay linked and are
skipped by scans.

References:
    - Bayer & McCreight, "B+Trees" (1972)
"""

from __future__ import annotations

from typing import Any, Iterator

from doc_store.domain.entities.btree_node import (
    BTreeInternalNode,
    BTreeLeafNode,
    BTreeNode,
)
from doc_store.domain.value_objects import RecordId

# Maximum keys per node (fanout - 1)
DEFAULT_MAX_KEYS = 32


class BPlusTree:
    """An ordered map from key to a set of record ids.

    Attributes:
        max_keys: Maximum keys per node before it splits.
    """

    def __init__(self, max_keys: int = DEFAULT_MAX_KEYS) -> None:
        if max_keys < 3:
            raise ValueError(f"max_keys must be >= 3, got {max_keys}")
        self.max_keys = max_keys
        self._root: BTreeNode = BTreeLeafNode()
        self._height = 1
        self._num_keys = 0
        self._num_entries = 0

    @property
    def height(self) -> int:
        return self._height

    @property
    def num_entries(self) -> int:
        """Total (key, id) pairs stored."""
        return self._num_entries

    def __len__(self) -> int:
        """Number of distinct keys."""
        return self._num_keys

    def _find_leaf(self, key: Any) -> BTreeLeafNode:
        """Traverse from the root to the leaf that should contain ``key``."""
        node = self._root
        while not node.is_leaf:
            assert isinstance(node, BTreeInternalNode)
            node = node.find_child(key)
        assert isinstance(node, BTreeLeafNode)
        return node

    def _leftmost_leaf(self) -> BTreeLeafNode:
        node = self._root
        while not node.is_leaf:
            assert isinstance(node, BTreeInternalNode)
            node = node.children[0]
        assert isinstance(node, BTreeLeafNode)
        return node

    def search(self, key: Any) -> set[RecordId] | None:
        """Return the live bucket for ``key``, or None if absent."""
        return self._find_leaf(key).search(key)

    def add(self, key: Any, rid: RecordId) -> None:
        """Add ``rid`` to the bucket of ``key``, creating the key if needed."""
        leaf = self._find_leaf(key)
        bucket = leaf.search(key)
        if bucket is not None:
            if rid not in bucket:
                bucket.add(rid)
                self._num_entries += 1
            return

        leaf.insert(key, {rid})
        self._num_keys += 1
        self._num_entries += 1
        if leaf.num_keys > self.max_keys:
            self._split_leaf(leaf)

    def discard(self, key: Any, rid: RecordId) -> bool:
        """Remove ``rid`` from the bucket of ``key``.

        Drops the key entirely when its bucket becomes empty.

        Returns:
            True if the id was present.
        """
        leaf = self._find_leaf(key)
        bucket = leaf.search(key)
        if bucket is None or rid not in bucket:
            return False
        bucket.discard(rid)
        self._num_entries -= 1
        if not bucket:
            leaf.delete(key)
            self._num_keys -= 1
        return True

    def _split_leaf(self, leaf: BTreeLeafNode) -> None:
        """Move the upper half of an overfull leaf into a new right sibling."""
        mid = len(leaf.keys) // 2
        new_leaf = BTreeLeafNode(
            keys=leaf.keys[mid:],
            values=leaf.values[mid:],
            parent=leaf.parent,
        )
        leaf.keys = leaf.keys[:mid]
        leaf.values = leaf.values[:mid]

        new_leaf.next = leaf.next
        new_leaf.prev = leaf
        if leaf.next is not None:
            leaf.next.prev = new_leaf
        leaf.next = new_leaf

        self._insert_into_parent(leaf, new_leaf.keys[0], new_leaf)

    def _insert_into_parent(self, left: BTreeNode, key: Any, right: BTreeNode) -> None:
        """Register ``right`` next to ``left`` in their parent under separator ``key``."""
        parent = left.parent
        if parent is None:
            new_root = BTreeInternalNode()
            new_root.insert_child(key, left, right)
            left.parent = new_root
            right.parent = new_root
            self._root = new_root
            self._height += 1
            return

        parent.insert_child(key, left, right)
        right.parent = parent
        if parent.num_keys > self.max_keys:
            self._split_internal(parent)

    def _split_internal(self, node: BTreeInternalNode) -> None:
        """Split an overfull internal node; the middle key moves up."""
        mid = len(node.keys) // 2
        separator = node.keys[mid]

        new_node = BTreeInternalNode(
            keys=node.keys[mid + 1 :],
            children=node.children[mid + 1 :],
            parent=node.parent,
        )
        node.keys = node.keys[:mid]
        node.children = node.children[: mid + 1]

        for child in new_node.children:
            child.parent = new_node

        self._insert_into_parent(node, separator, new_node)

    def range_scan(
        self,
        low: Any = None,
        high: Any = None,
        include_low: bool = True,
        include_high: bool = True,
    ) -> Iterator[tuple[Any, set[RecordId]]]:
        """Yield ``(key, bucket)`` pairs in key order within the given bounds.

        Args:
            low: Lower bound (None for unbounded).
            high: Upper bound (None for unbounded).
            include_low: Include the low bound in results.
            include_high: Include the high bound in results.
        """
        leaf: BTreeLeafNode | None = (
            self._find_leaf(low) if low is not None else self._leftmost_leaf()
        )
        while leaf is not None:
            for key, bucket in zip(leaf.keys, leaf.values):
                if low is not None:
                    if key < low or (not include_low and key == low):
                        continue
                if high is not None:
                    if key > high or (not include_high and key == high):
                        return
                yield key, bucket
            leaf = leaf.next

    def items(self) -> Iterator[tuple[Any, set[RecordId]]]:
        """Yield every ``(key, bucket)`` pair in key order."""
        yield from self.range_scan()

    def clear(self) -> None:
        self._root = BTreeLeafNode()
        self._height = 1
        self._num_keys = 0
        self._num_entries = 0
