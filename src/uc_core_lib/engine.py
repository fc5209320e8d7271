"""CaseEngine - one console session's view of requests and leak reports.

Wires the feed listeners, projection, views and transition executor
together for the two case collections.

Usage:
    async with await CaseEngine.connect(user_id="staff-7") as engine:
        requests = engine.live_view(engine.config.requests_collection)
        outcome = await engine.request_transition("req-1", "completed", remarks="fixed")
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple

from uc_core_lib.clients.interfaces import RecordStore, SnapshotSource
from uc_core_lib.clients.record_store_client import RecordStoreClient
from uc_core_lib.config import EngineConfig
from uc_core_lib.core.exceptions import SubscriptionError
from uc_core_lib.core.filtering import CaseView, apply_filters, summarize
from uc_core_lib.core.listener import ChangeFeedListener
from uc_core_lib.core.notifications import NotificationEmitter
from uc_core_lib.core.projection import ProjectionStore
from uc_core_lib.core.transitions import TransitionExecutor, TransitionOutcome
from uc_core_lib.infrastructure.change_stream import RedisSnapshotSource
from uc_core_lib.infrastructure.redis_setup import get_redis_client
from uc_core_lib.models.case import CaseBase, CaseKind
from uc_core_lib.models.filters import CaseStats, FilterCriteria, FilteredView

logger = logging.getLogger(__name__)


class CaseEngine:
    """Projection, views and transitions for the request and leak collections"""

    def __init__(
        self,
        store: RecordStore,
        source: SnapshotSource,
        config: Optional[EngineConfig] = None,
        on_feed_error: Optional[Callable[[SubscriptionError], None]] = None,
    ):
        self.config = config or EngineConfig()
        self.store = store
        self.source = source
        self.projection = ProjectionStore()
        self.emitter = NotificationEmitter(store, collection=self.config.notifications_collection)
        self.executor = TransitionExecutor(store, self.projection, self.emitter)

        self.kinds: Dict[str, CaseKind] = {
            self.config.requests_collection: CaseKind.SERVICE_REQUEST,
            self.config.leaks_collection: CaseKind.LEAK_REPORT,
        }
        self.listeners: Dict[str, ChangeFeedListener] = {
            collection: ChangeFeedListener(
                source, self.projection, collection, kind, on_error=on_feed_error
            )
            for collection, kind in self.kinds.items()
        }
        self._redis: Any = None

    @classmethod
    async def connect(
        cls,
        config: Optional[EngineConfig] = None,
        user_id: Optional[str] = None,
        on_feed_error: Optional[Callable[[SubscriptionError], None]] = None,
        **redis_options: Any,
    ) -> "CaseEngine":
        """Build an engine against the HTTP record store and Redis change channel.

        Args:
            config: Engine settings (default: from environment)
            user_id: Staff member attributed to writes
            on_feed_error: Called when a collection's subscription fails
            **redis_options: Passed to ``get_redis_client``
        """
        config = config or EngineConfig.from_env()
        client = RecordStoreClient(
            base_url=config.record_store_url,
            timeout=config.record_store_timeout,
            user_id=user_id,
        )
        redis = await get_redis_client(**redis_options)
        source = RedisSnapshotSource(redis, client, channel_prefix=config.feed_channel_prefix)

        engine = cls(client, source, config=config, on_feed_error=on_feed_error)
        engine._redis = redis
        return engine

    async def start(self) -> None:
        """Subscribe to both collections."""
        for listener in self.listeners.values():
            await listener.subscribe()
        logger.info(f"CaseEngine started for {', '.join(self.listeners)}")

    async def stop(self) -> None:
        """Unsubscribe and release connections. Safe to call repeatedly."""
        for listener in self.listeners.values():
            await listener.unsubscribe()
        if self._redis is not None:
            redis, self._redis = self._redis, None
            await redis.aclose()
        logger.info("CaseEngine stopped")

    async def __aenter__(self) -> "CaseEngine":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    def kind_of(self, collection: str) -> CaseKind:
        try:
            return self.kinds[collection]
        except KeyError:
            raise ValueError(
                f"Unknown collection: {collection}. Known collections: {list(self.kinds)}"
            ) from None

    def cases(self, collection: str) -> Tuple[CaseBase, ...]:
        return self.projection.get(collection)

    def view(
        self,
        collection: str,
        criteria: Optional[FilterCriteria] = None,
        now: Optional[datetime] = None,
    ) -> FilteredView:
        self.kind_of(collection)
        return apply_filters(self.cases(collection), criteria or FilterCriteria(), now=now)

    def stats(self, collection: str, now: Optional[datetime] = None) -> CaseStats:
        return summarize(self.cases(collection), kind=self.kind_of(collection), now=now)

    def live_view(self, collection: str, criteria: Optional[FilterCriteria] = None) -> CaseView:
        """A CaseView that tracks this collection until closed."""
        return CaseView(self.projection, collection, self.kind_of(collection), criteria=criteria)

    def feed_errors(self) -> Dict[str, SubscriptionError]:
        return {
            collection: listener.last_error
            for collection, listener in self.listeners.items()
            if listener.last_error is not None
        }

    async def request_transition(
        self,
        record_id: str,
        new_status: Any,
        remarks: Optional[str] = None,
        collection: Optional[str] = None,
    ) -> TransitionOutcome:
        if collection is not None:
            self.kind_of(collection)
        return await self.executor.request_transition(
            record_id, new_status, remarks=remarks, collection=collection
        )
