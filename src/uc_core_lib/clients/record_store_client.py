"""HTTP client for the console's record store."""

import logging
from typing import Any, List, Mapping, Optional
from urllib.parse import quote

import httpx

from uc_core_lib.clients.base import BaseServiceClient
from uc_core_lib.clients.interfaces import RawRecord, RecordStore
from uc_core_lib.core.exceptions import RecordStoreError

logger = logging.getLogger(__name__)


def _store_error(action: str, exc: httpx.HTTPError) -> RecordStoreError:
    status_code = None
    if isinstance(exc, httpx.HTTPStatusError):
        status_code = exc.response.status_code
    return RecordStoreError(f"{action} failed: {exc}", status_code=status_code)


class RecordStoreClient(BaseServiceClient, RecordStore):
    """Async HTTP client for the document store backing the console.

    Documents are addressed by collection path and id. Patches are
    field-level; the store applies last-write-wins and no concurrency token
    is sent.

    Usage:
        client = RecordStoreClient(base_url="http://record-store:8000", user_id="staff-7")
        records = await client.query("requests")
        await client.patch("requests", records[0].id, {"status": "completed"})
    """

    def __init__(
        self,
        base_url: str = "http://record-store:8000",
        timeout: float = 30.0,
        user_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(base_url=base_url, timeout=timeout, user_id=user_id, transport=transport)

    async def query(
        self, collection: str, order_by: str = "timestamp", descending: bool = True
    ) -> List[RawRecord]:
        """Get all documents of a collection.

        Args:
            collection: Collection path
            order_by: Field to order by (default: timestamp)
            descending: Newest first when ordering by timestamp

        Returns:
            Documents in store order

        Raises:
            RecordStoreError: On transport or HTTP error
        """
        params = {"orderBy": order_by, "direction": "desc" if descending else "asc"}
        try:
            async with self._get_client() as client:
                response = await client.get(
                    self._url(f"collections/{collection}/documents"),
                    params=params,
                    headers=self._headers(),
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            raise _store_error(f"Query of '{collection}'", e) from e
        except ValueError as e:
            raise RecordStoreError(f"Query of '{collection}' returned invalid JSON") from e

        documents = payload.get("documents", []) if isinstance(payload, dict) else payload
        records = []
        for document in documents or []:
            if not isinstance(document, dict) or "id" not in document:
                logger.warning(f"Skipping document without id in '{collection}'")
                continue
            records.append(RawRecord(id=str(document["id"]), data=document.get("fields") or {}))
        return records

    async def patch(self, collection: str, record_id: str, fields: Mapping[str, Any]) -> None:
        """Update selected fields of a document.

        Raises:
            RecordStoreError: On transport or HTTP error
        """
        try:
            async with self._get_client() as client:
                response = await client.patch(
                    self._url(f"collections/{collection}/documents/{quote(record_id, safe='')}"),
                    json=dict(fields),
                    headers=self._headers(),
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise _store_error(f"Patch of {collection}/{record_id}", e) from e

    async def add(self, collection: str, document: Mapping[str, Any]) -> str:
        """Append a document to a collection.

        Returns:
            Store-assigned document id

        Raises:
            RecordStoreError: On transport or HTTP error
        """
        try:
            async with self._get_client() as client:
                response = await client.post(
                    self._url(f"collections/{collection}/documents"),
                    json=dict(document),
                    headers=self._headers(),
                )
                response.raise_for_status()
                return str(response.json()["id"])
        except httpx.HTTPError as e:
            raise _store_error(f"Append to '{collection}'", e) from e
        except (KeyError, TypeError, ValueError) as e:
            raise RecordStoreError(f"Append to '{collection}' returned no document id") from e
