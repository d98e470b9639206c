"""Record identifier generation.

Numeric primary columns get a per-table monotonic counter; string primary
columns get UUID4 hex strings. The counter observes every explicit numeric id
(saved or loaded) so generated ids never collide with existing ones.
"""

from __future__ import annotations

import uuid

from doc_store.domain.errors import SchemaError
from doc_store.domain.value_objects import ColumnType, RecordId


class IdentifierGenerator:
    """Generates fresh identifiers for one table."""

    def __init__(self, table: str, column_type: ColumnType) -> None:
        self.table = table
        self.column_type = column_type
        self._last = 0

    def observe(self, rid: RecordId) -> None:
        """Account for an identifier assigned outside the generator."""
        if (
            self.column_type is ColumnType.NUMBER
            and isinstance(rid, (int, float))
            and not isinstance(rid, bool)
            and rid > self._last
        ):
            self._last = int(rid)

    def next_id(self) -> RecordId:
        """Return an identifier unused by this table.

        Raises:
            SchemaError: If ids of the column's type cannot be generated.
        """
        if self.column_type is ColumnType.NUMBER:
            self._last += 1
            return self._last
        if self.column_type is ColumnType.STRING:
            return uuid.uuid4().hex
        raise SchemaError(
            f"cannot generate identifiers for {self.column_type.value} primary column "
            f"of table '{self.table}'"
        )

    def reset(self) -> None:
        self._last = 0
