"""Full-snapshot subscriptions driven by Redis pub/sub.

Writers to the record store publish a message on ``{prefix}:{collection}``
after each change. The message body is ignored: every message triggers a
re-query of the whole collection, so subscribers always receive complete,
ordered batches rather than diffs.
"""

import logging
from typing import AsyncIterator, List

from redis.asyncio import Redis

from uc_core_lib.clients.interfaces import RawRecord, RecordStore, SnapshotSource

logger = logging.getLogger(__name__)


class RedisSnapshotSource(SnapshotSource):
    """SnapshotSource backed by a RecordStore plus a Redis change channel"""

    def __init__(self, redis: Redis, store: RecordStore, channel_prefix: str = "records"):
        self.redis = redis
        self.store = store
        self.channel_prefix = channel_prefix

    def channel(self, collection: str) -> str:
        return f"{self.channel_prefix}:{collection}"

    async def subscribe(
        self, collection: str, order_by: str = "timestamp", descending: bool = True
    ) -> AsyncIterator[List[RawRecord]]:
        channel = self.channel(collection)
        pubsub = self.redis.pubsub(ignore_subscribe_messages=True)

        # Subscribe before the initial query so no change slips in between
        await pubsub.subscribe(channel)
        logger.info(f"Listening for changes on {channel}")
        try:
            yield await self.store.query(collection, order_by=order_by, descending=descending)

            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                logger.debug(f"Change signalled on {channel}, re-querying '{collection}'")
                yield await self.store.query(collection, order_by=order_by, descending=descending)
        finally:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()
            logger.info(f"Stopped listening on {channel}")
