import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional

import pytest

from uc_core_lib.clients.interfaces import RawRecord, RecordStore, SnapshotSource
from uc_core_lib.core.exceptions import RecordStoreError

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class FakeRecordStore(RecordStore):
    """In-memory record store that logs every call."""

    def __init__(self, documents: Optional[Dict[str, List[RawRecord]]] = None, log: Optional[list] = None):
        self.documents = documents or {}
        self.log = log if log is not None else []
        self.patches: List[tuple] = []
        self.added: List[tuple] = []
        self.fail_patch: Optional[Exception] = None
        self.fail_add: Optional[Exception] = None
        self.patch_gate: Optional[asyncio.Event] = None
        self._next_id = 0

    async def query(self, collection, order_by="timestamp", descending=True):
        self.log.append(("query", collection))
        return list(self.documents.get(collection, []))

    async def patch(self, collection, record_id, fields: Mapping[str, Any]):
        if self.patch_gate is not None:
            await self.patch_gate.wait()
        self.log.append(("patch", collection, record_id))
        if self.fail_patch is not None:
            raise self.fail_patch
        self.patches.append((collection, record_id, dict(fields)))

    async def add(self, collection, document: Mapping[str, Any]):
        self.log.append(("add", collection))
        if self.fail_add is not None:
            raise self.fail_add
        self._next_id += 1
        notification_id = f"n-{self._next_id}"
        self.added.append((collection, notification_id, dict(document)))
        return notification_id


_CLOSE = object()


class FakeSnapshotSource(SnapshotSource):
    """Snapshot source fed by the test through push()/fail()/close()."""

    def __init__(self):
        self.queues: Dict[str, asyncio.Queue] = {}
        self.subscriptions: List[str] = []
        self.closed: List[str] = []

    def _queue(self, collection) -> asyncio.Queue:
        if collection not in self.queues:
            self.queues[collection] = asyncio.Queue()
        return self.queues[collection]

    def push(self, collection: str, records: List[RawRecord]) -> None:
        self._queue(collection).put_nowait(list(records))

    def fail(self, collection: str, exc: Exception) -> None:
        self._queue(collection).put_nowait(exc)

    def close(self, collection: str) -> None:
        self._queue(collection).put_nowait(_CLOSE)

    async def subscribe(self, collection, order_by="timestamp", descending=True):
        self.subscriptions.append(collection)
        queue = self._queue(collection)
        try:
            while True:
                item = await queue.get()
                if item is _CLOSE:
                    return
                if isinstance(item, Exception):
                    raise item
                yield item
        finally:
            self.closed.append(collection)


async def settle(rounds: int = 5) -> None:
    """Let background tasks drain their queues."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def raw_request(record_id: str = "req-1", **fields) -> RawRecord:
    data = {
        "serviceId": "SR-1001",
        "accountNumber": "123456789",
        "type": "Maintenance",
        "subject": "No water pressure",
        "description": "Pressure dropped since Monday",
        "email": "juan@example.com",
        "status": "pending",
        "timestamp": NOW - timedelta(hours=2),
        "attachmentUri": "",
    }
    data.update(fields)
    return RawRecord(id=record_id, data=data)


def raw_leak(record_id: str = "leak-1", **fields) -> RawRecord:
    data = {
        "accountNumber": "987654321",
        "address": "12 Mabini St, Barangay 4",
        "imageUrl": "https://cdn.example.com/leak.jpg",
        "leakDescription": "Pipe burst near the meter",
        "timestamp": NOW - timedelta(days=1),
        "uniqueUserId": "user-42",
        "resolved": False,
        "rejected": False,
    }
    data.update(fields)
    return RawRecord(id=record_id, data=data)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def call_log():
    return []


@pytest.fixture
def record_store(call_log):
    return FakeRecordStore(log=call_log)


@pytest.fixture
def snapshot_source():
    return FakeSnapshotSource()


@pytest.fixture
def store_error():
    return RecordStoreError("503 Service Unavailable", status_code=503)
