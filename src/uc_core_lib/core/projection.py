"""Projection Store

The in-memory, authoritative mapping from collection and record id to the
current Case. Everything downstream (filters, statistics, the transition
executor) reads from here.

Rules:
- Only this store inserts, updates or removes cases
- Order is kept exactly as the feed delivered it; the store never re-sorts
- ``replace_all`` swaps a whole collection in one step
- ``apply_local`` reflects an optimistic write immediately; the next feed
  batch is authoritative and overwrites it
- All mutations are serialized under one lock and snapshots are immutable
  tuples, so readers never see a half-applied batch
"""

import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from uc_core_lib.models.case import CaseBase

logger = logging.getLogger(__name__)

Mutation = Callable[[CaseBase], CaseBase]
ChangeListener = Callable[[str], Any]


class ProjectionStore:
    """Single-writer in-memory projection of remote case collections"""

    def __init__(self):
        self._lock = threading.RLock()
        self._snapshots: Dict[str, Tuple[CaseBase, ...]] = {}
        self._index: Dict[str, Dict[str, int]] = {}
        self._listeners: List[ChangeListener] = []

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def replace_all(self, collection: str, cases: Iterable[CaseBase]) -> None:
        """Replace the contents of ``collection`` with ``cases``, in order."""
        snapshot = tuple(cases)
        index = {case.id: position for position, case in enumerate(snapshot)}
        with self._lock:
            self._snapshots[collection] = snapshot
            self._index[collection] = index
        logger.debug(f"Projection '{collection}' replaced with {len(snapshot)} cases")
        self._notify(collection)

    def apply_local(self, collection: str, record_id: str, mutation: Mutation) -> CaseBase:
        """Apply ``mutation`` to one case and publish the result.

        Args:
            collection: Collection holding the case
            record_id: Case id
            mutation: Function from the current case to its replacement;
                must keep the same id

        Returns:
            The updated case

        Raises:
            KeyError: If the case is not in the projection
            ValueError: If the mutation changes the case id
        """
        with self._lock:
            position = self._index.get(collection, {}).get(record_id)
            if position is None:
                raise KeyError(f"Record {record_id} not found in '{collection}'")

            snapshot = self._snapshots[collection]
            updated = mutation(snapshot[position])
            if updated.id != record_id:
                raise ValueError(f"Mutation changed record id {record_id} -> {updated.id}")

            self._snapshots[collection] = snapshot[:position] + (updated,) + snapshot[position + 1:]

        logger.debug(f"Projection '{collection}' applied local change to {record_id}")
        self._notify(collection)
        return updated

    def clear(self, collection: Optional[str] = None) -> None:
        with self._lock:
            targets = [collection] if collection else list(self._snapshots)
            for name in targets:
                self._snapshots.pop(name, None)
                self._index.pop(name, None)
        for name in targets:
            self._notify(name)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, collection: str) -> Tuple[CaseBase, ...]:
        """Ordered, immutable snapshot of a collection (empty if unknown)."""
        with self._lock:
            return self._snapshots.get(collection, ())

    def get_case(self, collection: str, record_id: str) -> Optional[CaseBase]:
        with self._lock:
            position = self._index.get(collection, {}).get(record_id)
            if position is None:
                return None
            return self._snapshots[collection][position]

    def find(
        self, record_id: str, collection: Optional[str] = None
    ) -> Optional[Tuple[str, CaseBase]]:
        """Locate a case by id, optionally restricted to one collection.

        Returns:
            (collection, case) or None
        """
        with self._lock:
            names = [collection] if collection else list(self._snapshots)
            for name in names:
                case = self.get_case(name, record_id)
                if case is not None:
                    return name, case
        return None

    def collections(self) -> List[str]:
        with self._lock:
            return list(self._snapshots)

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def add_listener(self, listener: ChangeListener) -> None:
        """Register a callback invoked with the collection id after each change."""
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self, collection: str) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(collection)
            except Exception as e:
                # the change is already committed
                logger.error(
                    f"Projection listener {listener!r} failed for '{collection}': {e}",
                    exc_info=True,
                )
