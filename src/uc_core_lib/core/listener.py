"""Change Feed Listener

Consumes full-snapshot batches for one collection and feeds them, normalized
and de-duplicated, into the Projection Store. On failure the store keeps its
last-known-good contents; the error is logged and handed to the caller.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from uc_core_lib.clients.interfaces import RawRecord, SnapshotSource
from uc_core_lib.core.exceptions import SubscriptionError
from uc_core_lib.core.projection import ProjectionStore
from uc_core_lib.models.case import CaseBase, CaseKind, normalize_case
from uc_core_lib.models.common import utc_now

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[SubscriptionError], None]


def normalize_batch(
    kind: CaseKind, records: Iterable[RawRecord], now: Optional[datetime] = None
) -> List[CaseBase]:
    """Normalize one feed batch, keeping the first occurrence of each id."""
    now = now or utc_now()
    seen = set()
    cases = []
    for record in records:
        if record.id in seen:
            logger.warning(f"Duplicate record {record.id} in {kind.value} batch, keeping first")
            continue
        seen.add(record.id)
        cases.append(normalize_case(kind, record.id, record.data, now=now))
    return cases


class ChangeFeedListener:
    """Keeps one projection collection in sync with its remote collection.

    Usage:
        listener = ChangeFeedListener(source, store, "leaks", CaseKind.LEAK_REPORT)
        await listener.subscribe()
        ...
        await listener.unsubscribe()
    """

    def __init__(
        self,
        source: SnapshotSource,
        store: ProjectionStore,
        collection: str,
        kind: CaseKind,
        on_error: Optional[ErrorCallback] = None,
        order_by: str = "timestamp",
    ):
        self.source = source
        self.store = store
        self.collection = collection
        self.kind = CaseKind(kind)
        self.on_error = on_error
        self.order_by = order_by

        self.last_error: Optional[SubscriptionError] = None
        self.batches_applied = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def subscribe(self) -> None:
        """Start consuming batches in a background task. No-op if already running."""
        if self.active:
            return
        self.last_error = None
        self._task = asyncio.create_task(
            self._run(), name=f"change-feed:{self.collection}"
        )
        logger.info(f"Subscribed to '{self.collection}' ordered by {self.order_by} desc")

    async def unsubscribe(self) -> None:
        """Stop batch delivery. Safe to call repeatedly."""
        task, self._task = self._task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info(f"Unsubscribed from '{self.collection}'")

    async def wait(self) -> None:
        """Wait until the subscription ends on its own (source exhausted or failed)."""
        if self._task is not None:
            await asyncio.shield(self._task)

    def apply_batch(self, records: Iterable[RawRecord]) -> bool:
        """Normalize a batch and replace the collection with it.

        Returns:
            False if the batch matched the current projection and was skipped
        """
        cases = normalize_batch(self.kind, records)
        if tuple(cases) == self.store.get(self.collection) and self.batches_applied:
            logger.debug(f"Batch for '{self.collection}' unchanged, skipping")
            return False
        self.store.replace_all(self.collection, cases)
        self.batches_applied += 1
        return True

    async def _run(self) -> None:
        try:
            async for batch in self.source.subscribe(
                self.collection, order_by=self.order_by, descending=True
            ):
                self.apply_batch(batch)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._fail(e)

    def _fail(self, exc: Exception) -> None:
        error = SubscriptionError(self.collection, str(exc) or type(exc).__name__)
        error.__cause__ = exc
        self.last_error = error
        logger.error(
            f"Change feed for '{self.collection}' failed, keeping last snapshot "
            f"({len(self.store.get(self.collection))} cases): {exc}"
        )
        if self.on_error is not None:
            try:
                self.on_error(error)
            except Exception as callback_error:
                logger.error(f"on_error callback for '{self.collection}' raised: {callback_error}")
