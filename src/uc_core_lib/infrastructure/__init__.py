"""Infrastructure adapters: Redis connectivity and change subscriptions."""

from uc_core_lib.infrastructure.change_stream import RedisSnapshotSource
from uc_core_lib.infrastructure.redis_setup import get_redis_client, parse_sentinel_hosts

__all__ = [
    "RedisSnapshotSource",
    "get_redis_client",
    "parse_sentinel_hosts",
]
