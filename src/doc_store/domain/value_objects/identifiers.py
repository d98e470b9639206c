"""Type aliases for records and their identifiers."""

from __future__ import annotations

from collections.abc import Hashable
from typing import Any, Dict

RecordId = Hashable
"""Value of a record's primary field. Stable for the record's lifetime."""

Record = Dict[str, Any]
"""A stored document: field name -> value."""

TableData = Dict[RecordId, Record]
"""All records of one table keyed by identifier, in insertion order."""

Snapshot = Dict[str, TableData]
"""The whole dataset: table name -> table data."""
