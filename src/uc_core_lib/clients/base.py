"""Base HTTP client for the console's backing services."""

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class BaseServiceClient:
    """Base class for async HTTP clients used by the console.

    The acting staff member is propagated via X-User-* headers so the
    backing service can attribute writes.

    Usage:
        class RecordStoreClient(BaseServiceClient, RecordStore):
            async def patch(self, collection, record_id, fields):
                async with self._get_client() as client:
                    response = await client.patch(
                        self._url(f"collections/{collection}/documents/{record_id}"),
                        json=dict(fields),
                        headers=self._headers(),
                    )
                    response.raise_for_status()
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        user_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize service client.

        Args:
            base_url: Service base URL (e.g., http://record-store:8000)
            timeout: Request timeout in seconds (default: 30.0)
            user_id: Staff user attributed to writes made through this client
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.user_id = user_id
        self._transport = transport

        logger.info(f"Initialized {self.__class__.__name__} with base_url={self.base_url}")

    def _url(self, path: str) -> str:
        return f"{self.base_url}/api/v1/{path.lstrip('/')}"

    def _headers(self) -> Dict[str, Any]:
        """Generate request headers carrying the acting staff member."""
        headers = {
            "Content-Type": "application/json",
        }

        if self.user_id:
            headers["X-User-ID"] = self.user_id

        return headers

    def _get_client(self) -> httpx.AsyncClient:
        """Get HTTP client instance with configured timeout.

        Returns:
            Configured AsyncClient ready for use with async context manager
        """
        if self._transport is not None:
            return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return httpx.AsyncClient(timeout=self.timeout)
