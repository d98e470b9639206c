"""In-memory snapshot adapter.

Keeps the last saved snapshot as a deep copy. Useful for tests and for
embedding the store without touching the filesystem.
"""

from __future__ import annotations

import copy

from doc_store.domain.value_objects import Snapshot


class InMemorySnapshotStore:
    """In-memory implementation of SnapshotStore.

    Attributes:
        saves: Number of completed saves.
    """

    def __init__(self, initial: Snapshot | None = None) -> None:
        self._snapshot: Snapshot | None = copy.deepcopy(initial) if initial is not None else None
        self.saves = 0

    def load(self) -> Snapshot | None:
        return copy.deepcopy(self._snapshot)

    def save(self, snapshot: Snapshot) -> None:
        self._snapshot = copy.deepcopy(snapshot)
        self.saves += 1

    def clear(self) -> None:
        self._snapshot = None
