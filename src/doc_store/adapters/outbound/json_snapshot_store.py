"""JSON file snapshot adapter.

Implements SnapshotStore as a single JSON document on the local
filesystem. The whole dataset is rewritten on every save.

Usage:
    store = JsonFileSnapshotStore("/path/to/db.json")
    store.save({"users": {1: {"id": 1, "email": "a@x"}}})
    snapshot = store.load()

File layout:
    {
        "data": {
            "users": {
                "1": {"id": 1, "email": "a@x", "created": "2024-01-01T00:00:00+00:00"}
            }
        }
    }

Record ids become JSON object keys (strings). Datetimes are written as
ISO-8601 strings; the engine turns them back into datetimes for ``date``
columns on load.
"""

from __future__ import annotations

import json
import os
import tempfile
from datetime import date, datetime
from pathlib import Path
from typing import Any

from doc_store.domain.errors import PersistenceError
from doc_store.domain.value_objects import Snapshot
from doc_store.infrastructure.logging import get_logger

logger = get_logger(__name__)


def _encode_value(value: Any) -> Any:
    """``json.dumps`` hook for values JSON has no native form for."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class JsonFileSnapshotStore:
    """File-based implementation of SnapshotStore.

    Writes go to a temporary file in the same directory which then replaces
    the snapshot atomically, so a failed save never leaves a truncated file.

    Attributes:
        path: Location of the snapshot file.
    """

    def __init__(self, path: str | Path, indent: int | None = 2, fsync: bool = True) -> None:
        """Initialize the snapshot store.

        Args:
            path: Snapshot file path. Parent directories are created on save.
            indent: JSON indent; None writes compact JSON.
            fsync: Sync the temporary file to disk before replacing.
        """
        self._path = Path(path)
        self._indent = indent
        self._fsync = fsync

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Snapshot | None:
        """Read the snapshot file.

        Returns:
            The snapshot, or None if the file does not exist.

        Raises:
            PersistenceError: If the file cannot be read or is not valid JSON.
        """
        if not self._path.exists():
            return None
        try:
            with self._path.open("r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"cannot read snapshot {self._path}: {e}") from e

        if not isinstance(document, dict) or "data" not in document:
            logger.warning("snapshot_missing_data_key", path=str(self._path))
            return {}

        data = document["data"]
        if not isinstance(data, dict) or not all(isinstance(t, dict) for t in data.values()):
            raise PersistenceError(f"malformed snapshot {self._path}: 'data' must map tables to records")
        return data

    def save(self, snapshot: Snapshot) -> None:
        """Write the snapshot, replacing the previous file atomically.

        Raises:
            PersistenceError: If serialization or the write fails.
        """
        document = {
            "data": {
                table: {str(rid): record for rid, record in records.items()}
                for table, records in snapshot.items()
            }
        }
        try:
            payload = json.dumps(document, indent=self._indent, default=_encode_value)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"cannot encode snapshot: {e}") from e

        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                if self._fsync:
                    os.fsync(f.fileno())
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as e:
            raise PersistenceError(f"cannot write snapshot {self._path}: {e}") from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

    def clear(self) -> None:
        """Delete the snapshot file if it exists."""
        self._path.unlink(missing_ok=True)
