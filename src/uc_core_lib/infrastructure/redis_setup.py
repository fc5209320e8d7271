"""Redis connection factory for the change notification channel.

Record store writers publish on ``{prefix}:{collection}`` after every change;
the console only needs a subscriber connection. Supports:
- Standalone Redis (development/self-hosted)
- Redis Sentinel (HA deployments)
"""

import logging
import os
from typing import List, Optional, Tuple

from redis.asyncio import Redis
from redis.asyncio.sentinel import Sentinel

from uc_core_lib.utils import service_startup_retry

logger = logging.getLogger(__name__)

DEFAULT_SENTINEL_PORT = 26379


def parse_sentinel_hosts(hosts_str: str) -> List[Tuple[str, int]]:
    """Parse a comma-separated "host:port" list.

    Example:
        >>> parse_sentinel_hosts("sentinel1:26379, sentinel2")
        [('sentinel1', 26379), ('sentinel2', 26379)]
    """
    sentinels = []
    for entry in hosts_str.split(","):
        entry = entry.strip()
        if not entry:
            continue
        host, sep, port = entry.rpartition(":")
        if sep:
            sentinels.append((host, int(port)))
        else:
            sentinels.append((entry, DEFAULT_SENTINEL_PORT))
    return sentinels


@service_startup_retry
async def _verify_redis_connection(client: Redis) -> None:
    await client.ping()
    logger.info("Redis connection verified")


async def get_redis_client(
    mode: Optional[str] = None,
    host: Optional[str] = None,
    port: Optional[int] = None,
    db: Optional[int] = None,
    password: Optional[str] = None,
    sentinel_hosts: Optional[str] = None,
    master_set: Optional[str] = None,
    health_check_interval: int = 30,
) -> Redis:
    """Create and verify a Redis client.

    Explicit arguments win over environment variables.

    Environment Variables:
        REDIS_MODE: "standalone" (default) or "sentinel"
        REDIS_HOST / REDIS_PORT: standalone address (default localhost:6379)
        REDIS_DB: database index (default 0)
        REDIS_PASSWORD: optional password
        REDIS_SENTINEL_HOSTS: "host:port" list, required in sentinel mode
        REDIS_MASTER_SET: sentinel master name (default "mymaster")

    Raises:
        ValueError: If sentinel mode is selected without sentinel hosts
        ConnectionError: If Redis cannot be reached after retries
    """
    mode = (mode or os.getenv("REDIS_MODE", "standalone")).lower()
    db_index = db if db is not None else int(os.getenv("REDIS_DB", "0"))
    password = password or os.getenv("REDIS_PASSWORD")

    logger.info(f"Initializing Redis client in {mode} mode")

    if mode == "sentinel":
        hosts = parse_sentinel_hosts(sentinel_hosts or os.getenv("REDIS_SENTINEL_HOSTS", ""))
        if not hosts:
            raise ValueError("REDIS_SENTINEL_HOSTS is required for sentinel mode")
        master_name = master_set or os.getenv("REDIS_MASTER_SET", "mymaster")

        sentinel = Sentinel(
            hosts,
            sentinel_kwargs={"password": password} if password else {},
            health_check_interval=health_check_interval,
        )
        client = sentinel.master_for(
            master_name,
            db=db_index,
            password=password,
            decode_responses=True,
            health_check_interval=health_check_interval,
        )
        target = f"sentinel master={master_name} db={db_index}"
    else:
        redis_host = host or os.getenv("REDIS_HOST", "localhost")
        redis_port = port if port is not None else int(os.getenv("REDIS_PORT", "6379"))
        client = Redis(
            host=redis_host,
            port=redis_port,
            db=db_index,
            password=password,
            decode_responses=True,
            health_check_interval=health_check_interval,
            socket_connect_timeout=5,
        )
        target = f"{redis_host}:{redis_port}/{db_index}"

    await _verify_redis_connection(client)
    logger.info(f"Redis connection established: {target}")
    return client
