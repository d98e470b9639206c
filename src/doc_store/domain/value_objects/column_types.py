"""Tagged column types.

Every declared column carries one of these types. The type decides how a
value is validated on save, how query literals are compared, and which
lookup mode the column's secondary index uses.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any


class IndexMode(Enum):
    """Lookup representations maintained by a secondary index."""

    ORDERED = "ordered"  # exact + range lookups
    HASHED = "hashed"  # exact lookups only
    BOTH = "both"

    @property
    def is_ordered(self) -> bool:
        return self is not IndexMode.HASHED

    @property
    def is_hashed(self) -> bool:
        return self is not IndexMode.ORDERED


class ColumnType(Enum):
    """Value type tag of a column."""

    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    DATE = "date"
    OBJECT = "object"
    ARRAY = "array"

    @property
    def index_mode(self) -> IndexMode:
        """Index representation suited to this type."""
        if self in (ColumnType.NUMBER, ColumnType.DATE):
            return IndexMode.ORDERED
        if self is ColumnType.STRING:
            return IndexMode.BOTH
        return IndexMode.HASHED

    @property
    def is_orderable(self) -> bool:
        return self.index_mode.is_ordered

    def accepts(self, value: Any) -> bool:
        """Return True if ``value`` is a literal of this type.

        ``None`` is accepted by every type.
        """
        if value is None:
            return True
        if self is ColumnType.NUMBER:
            return _is_number(value)
        if self is ColumnType.STRING:
            return isinstance(value, str)
        if self is ColumnType.BOOLEAN:
            return isinstance(value, bool)
        if self is ColumnType.DATE:
            return isinstance(value, datetime) and value.tzinfo is not None
        if self is ColumnType.OBJECT:
            return isinstance(value, dict)
        return isinstance(value, list)

    def coerce(self, value: Any) -> Any:
        """Normalize ``value`` to this type.

        Raises:
            TypeError: If the value cannot represent this type.
            ValueError: If a number is not finite or a date string is malformed.
        """
        if value is None:
            return None
        if self is ColumnType.DATE:
            return _coerce_datetime(value)
        if self is ColumnType.NUMBER and isinstance(value, float) and not math.isfinite(value):
            raise ValueError(f"not a finite number: {value!r}")
        if self is ColumnType.ARRAY and isinstance(value, tuple):
            return list(value)
        if not self.accepts(value):
            raise TypeError(
                f"expected {self.value}, got {type(value).__name__}"
            )
        return value

    def coerce_literal(self, value: Any) -> Any:
        """Best-effort coercion of a query literal; returns it unchanged on failure."""
        try:
            return self.coerce(value)
        except (TypeError, ValueError):
            return value

    def parse_text(self, raw: str) -> Any:
        """Parse a textual representation (path segment, JSON key) of a value."""
        if self is ColumnType.NUMBER:
            try:
                return int(raw)
            except ValueError:
                number = float(raw)
                if not math.isfinite(number):
                    raise ValueError(f"not a finite number: {raw!r}")
                return number
        if self is ColumnType.BOOLEAN:
            lowered = raw.lower()
            if lowered in ("true", "1"):
                return True
            if lowered in ("false", "0"):
                return False
            raise ValueError(f"not a boolean: {raw!r}")
        if self is ColumnType.DATE:
            return _coerce_datetime(raw)
        return raw


def _is_number(value: Any) -> bool:
    # NaN and infinities have no place in an ordered index.
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, int) and not isinstance(value, bool)


def _coerce_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value)
    else:
        raise TypeError(f"expected date, got {type(value).__name__}")
    # Naive datetimes are taken as UTC so every stored date stays comparable.
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
