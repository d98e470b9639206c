"""Snapshot store port for dataset persistence.

This outbound port defines the contract for loading and saving the whole
dataset as one snapshot ``{table: {id: record}}``. The engine flushes the
complete snapshot after each mutation (when auto-persist is on) and loads
it once on start.

Implementations decide the on-disk representation; the engine only sees
plain mappings.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from doc_store.domain.value_objects import Snapshot


@runtime_checkable
class SnapshotStore(Protocol):
    """Protocol for snapshot persistence.

    Thread Safety:
        Not required. The engine serialises all calls.
    """

    def load(self) -> Snapshot | None:
        """Load the last saved snapshot.

        Returns:
            The snapshot, or None if nothing has been saved yet.

        Raises:
            PersistenceError: If stored data cannot be read or decoded.
        """
        ...

    def save(self, snapshot: Snapshot) -> None:
        """Replace the stored snapshot.

        A failed save must leave the previously stored snapshot intact.

        Raises:
            PersistenceError: If the snapshot cannot be written.
        """
        ...
