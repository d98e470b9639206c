"""Secondary indexes.

A SecondaryIndex maps the values of one column to the set of record ids
currently holding each value. Depending on the column type it keeps an
ordered representation (B+Tree, exact and range lookups), a hashed one
(exact lookups only), or both.

Invariant maintained together with the mutation engine: for every record
``r`` and indexed column ``c``, ``r.id`` appears in exactly one bucket, the
one for ``r.get(c)``. Records missing the column are filed under ``None``.
``None`` never takes part in ordered lookups and is exempt from uniqueness.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Hashable

from doc_store.domain.entities.schema import TableSchema
from doc_store.domain.errors import UniqueViolation, UnsupportedOperation
from doc_store.domain.services.btree_index import DEFAULT_MAX_KEYS, BPlusTree
from doc_store.domain.value_objects import IndexMode, Record, RecordId


def freeze(value: Any) -> Hashable:
    """Return a hashable stand-in for ``value`` (lists and dicts included).

    Two values freeze to the same key only if they compare equal, so dict
    keys keep their type and lists stay distinct from tuples.
    """
    if isinstance(value, dict):
        return ("__dict__", frozenset((freeze(k), freeze(v)) for k, v in value.items()))
    if isinstance(value, list):
        return ("__list__", tuple(freeze(v) for v in value))
    if isinstance(value, tuple):
        return ("__tuple__", tuple(freeze(v) for v in value))
    if isinstance(value, set):
        return ("__set__", frozenset(freeze(v) for v in value))
    return value


@dataclass
class IndexStats:
    """Statistics for index monitoring."""

    column: str
    mode: IndexMode
    is_unique: bool
    num_keys: int
    num_entries: int
    lookups: int


class SecondaryIndex:
    """Value -> ids index over one column.

    Attributes:
        table: Table being indexed.
        column: Column being indexed.
        mode: Which lookup representations are maintained.
        is_unique: Whether the index enforces uniqueness.
    """

    def __init__(
        self,
        table: str,
        column: str,
        mode: IndexMode,
        is_unique: bool = False,
        max_keys: int = DEFAULT_MAX_KEYS,
    ) -> None:
        self.table = table
        self.column = column
        self.mode = mode
        self.is_unique = is_unique
        self._tree = BPlusTree(max_keys) if mode.is_ordered else None
        self._hash: dict[Hashable, set[RecordId]] | None = {} if mode.is_hashed else None
        self._nulls: set[RecordId] = set()
        self._lookups = 0

    def _bucket(self, value: Any) -> set[RecordId] | None:
        if value is None:
            return self._nulls
        if self._hash is not None:
            return self._hash.get(freeze(value))
        assert self._tree is not None
        return self._tree.search(value)

    def would_violate(self, value: Any, rid: RecordId) -> bool:
        """Return True if adding ``rid`` under ``value`` would break uniqueness."""
        if not self.is_unique or value is None:
            return False
        bucket = self._bucket(value)
        return bool(bucket) and any(other != rid for other in bucket)

    def add(self, value: Any, rid: RecordId) -> None:
        """Insert ``rid`` under ``value`` in every maintained representation.

        Raises:
            UniqueViolation: If the index is unique and ``value`` is already
                held by a record. Nothing is modified in that case.
        """
        if self.is_unique and value is not None and self._bucket(value):
            raise UniqueViolation(self.column, value, table=self.table)

        if value is None:
            self._nulls.add(rid)
            return
        if self._tree is not None:
            self._tree.add(value, rid)
        if self._hash is not None:
            self._hash.setdefault(freeze(value), set()).add(rid)

    def remove(self, value: Any, rid: RecordId) -> None:
        """Remove ``rid`` from ``value``; drops the value once no id holds it."""
        if value is None:
            self._nulls.discard(rid)
            return
        if self._tree is not None:
            self._tree.discard(value, rid)
        if self._hash is not None:
            key = freeze(value)
            bucket = self._hash.get(key)
            if bucket is not None:
                bucket.discard(rid)
                if not bucket:
                    del self._hash[key]

    def find_equal(self, value: Any) -> set[RecordId]:
        self._lookups += 1
        bucket = self._bucket(value)
        return set(bucket) if bucket else set()

    def _require_ordered(self, operation: str) -> BPlusTree:
        if self._tree is None:
            raise UnsupportedOperation(
                f"{operation} lookup not supported on hashed index {self.table}.{self.column}"
            )
        return self._tree

    def _collect(
        self,
        tree: BPlusTree,
        low: Any,
        high: Any,
        include_low: bool = True,
        include_high: bool = True,
    ) -> set[RecordId]:
        self._lookups += 1
        result: set[RecordId] = set()
        for _, bucket in tree.range_scan(low, high, include_low, include_high):
            result.update(bucket)
        return result

    def find_greater_than(self, value: Any) -> set[RecordId]:
        """Ids whose value is strictly greater than ``value``."""
        tree = self._require_ordered("greater-than")
        if value is None:
            return set()
        return self._collect(tree, value, None, include_low=False)

    def find_less_than(self, value: Any) -> set[RecordId]:
        """Ids whose value is strictly less than ``value``."""
        tree = self._require_ordered("less-than")
        if value is None:
            return set()
        return self._collect(tree, None, value, include_high=False)

    def find_range(self, low: Any, high: Any) -> set[RecordId]:
        """Ids whose value lies in ``[low, high]`` (inclusive both ends)."""
        tree = self._require_ordered("range")
        if low is None or high is None or high < low:
            return set()
        return self._collect(tree, low, high)

    def entries(self) -> Iterable[tuple[Any, set[RecordId]]]:
        """Yield ``(value, ids)`` pairs; ``None`` first, then in key order when ordered."""
        if self._nulls:
            yield None, set(self._nulls)
        if self._tree is not None:
            for key, bucket in self._tree.items():
                yield key, set(bucket)
        elif self._hash is not None:
            for key, bucket in self._hash.items():
                yield key, set(bucket)

    def clear(self) -> None:
        if self._tree is not None:
            self._tree.clear()
        if self._hash is not None:
            self._hash.clear()
        self._nulls.clear()

    @property
    def stats(self) -> IndexStats:
        if self._tree is not None:
            num_keys = len(self._tree)
            num_entries = self._tree.num_entries
        else:
            assert self._hash is not None
            num_keys = len(self._hash)
            num_entries = sum(len(b) for b in self._hash.values())
        if self._nulls:
            num_keys += 1
            num_entries += len(self._nulls)
        return IndexStats(
            column=self.column,
            mode=self.mode,
            is_unique=self.is_unique,
            num_keys=num_keys,
            num_entries=num_entries,
            lookups=self._lookups,
        )


class TableIndexes:
    """All secondary indexes of one table, built from its schema."""

    def __init__(self, schema: TableSchema, max_keys: int = DEFAULT_MAX_KEYS) -> None:
        self.schema = schema
        self._indexes: dict[str, SecondaryIndex] = {
            name: SecondaryIndex(
                table=schema.name,
                column=name,
                mode=col.type.index_mode,
                is_unique=col.unique,
                max_keys=max_keys,
            )
            for name, col in schema.columns.items()
            if col.needs_index
        }

    def get(self, column: str) -> SecondaryIndex | None:
        return self._indexes.get(column)

    def __contains__(self, column: object) -> bool:
        return column in self._indexes

    def __iter__(self):
        return iter(self._indexes.values())

    def __len__(self) -> int:
        return len(self._indexes)

    def check_record(self, rid: RecordId, record: Record) -> None:
        """Raise UniqueViolation if ``record`` cannot be filed under ``rid``."""
        for index in self._indexes.values():
            value = record.get(index.column)
            if index.would_violate(value, rid):
                raise UniqueViolation(index.column, value, table=self.schema.name)

    def add_record(self, rid: RecordId, record: Record) -> None:
        for index in self._indexes.values():
            index.add(record.get(index.column), rid)

    def remove_record(self, rid: RecordId, record: Record) -> None:
        for index in self._indexes.values():
            index.remove(record.get(index.column), rid)

    def rebuild(self, records: Mapping[RecordId, Record]) -> None:
        """Discard every entry and re-file all ``records``."""
        for index in self._indexes.values():
            index.clear()
        for rid, record in records.items():
            self.add_record(rid, record)

    def stats(self) -> list[IndexStats]:
        return [index.stats for index in self._indexes.values()]
