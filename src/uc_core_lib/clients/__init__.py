"""Clients for the remote record store."""

from uc_core_lib.clients.base import BaseServiceClient
from uc_core_lib.clients.interfaces import RawRecord, RecordStore, SnapshotSource
from uc_core_lib.clients.record_store_client import RecordStoreClient

__all__ = [
    "BaseServiceClient",
    "RawRecord",
    "RecordStore",
    "SnapshotSource",
    "RecordStoreClient",
]
