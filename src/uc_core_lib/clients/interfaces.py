"""
Remote record store interfaces.

The engine consumes, but does not own, a document store with three
capabilities: full-snapshot subscription, field-level patch, and append.
Implementations must raise ``RecordStoreError`` for transport failures so the
engine can map them onto its own error taxonomy.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Mapping


@dataclass(frozen=True)
class RawRecord:
    """Document as delivered by the store, before normalization"""

    id: str
    data: Dict[str, Any] = field(default_factory=dict)


class RecordStore(ABC):
    """Write/query side of the remote store"""

    @abstractmethod
    async def query(
        self, collection: str, order_by: str = "timestamp", descending: bool = True
    ) -> List[RawRecord]:
        """Return every live document of ``collection`` in the given order."""

    @abstractmethod
    async def patch(self, collection: str, record_id: str, fields: Mapping[str, Any]) -> None:
        """Update only ``fields`` of one document. Last write wins."""

    @abstractmethod
    async def add(self, collection: str, document: Mapping[str, Any]) -> str:
        """Append a document and return its store-assigned id.

        ``collection`` may be a sub-collection path, e.g.
        ``notifications/123456789/records``.
        """


class SnapshotSource(ABC):
    """Subscription side of the remote store"""

    @abstractmethod
    def subscribe(
        self, collection: str, order_by: str = "timestamp", descending: bool = True
    ) -> AsyncIterator[List[RawRecord]]:
        """Yield the full ordered set of live documents after every change.

        The first batch is the state at subscription time. Errors raised while
        iterating end the subscription.
        """
