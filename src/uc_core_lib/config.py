"""Engine configuration.

Values come from explicit arguments first, then environment variables, then
defaults, so the same code runs under docker-compose, Kubernetes or a local
shell without changes.

Environment Variables:
    RECORD_STORE_URL: Record store base URL (default: http://record-store:8000)
    RECORD_STORE_TIMEOUT: Request timeout in seconds (default: 30)
    REQUESTS_COLLECTION: Service request collection (default: requests)
    LEAKS_COLLECTION: Leak report collection (default: leaks)
    NOTIFICATIONS_COLLECTION: Notification root collection (default: notifications)
    FEED_CHANNEL_PREFIX: Redis change channel prefix (default: records)

Redis connection settings are read by ``uc_core_lib.infrastructure.redis_setup``.
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float, environ: Mapping[str, str]) -> float:
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid {name} '{raw}', using {default}")
        return default


@dataclass(frozen=True)
class EngineConfig:
    """Connection and collection settings for one console session"""

    record_store_url: str = "http://record-store:8000"
    record_store_timeout: float = 30.0
    requests_collection: str = "requests"
    leaks_collection: str = "leaks"
    notifications_collection: str = "notifications"
    feed_channel_prefix: str = "records"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "EngineConfig":
        """Build a config from the environment; keyword overrides win."""
        environ = os.environ if environ is None else environ
        defaults = cls()
        values = dict(
            record_store_url=environ.get("RECORD_STORE_URL") or defaults.record_store_url,
            record_store_timeout=_env_float(
                "RECORD_STORE_TIMEOUT", defaults.record_store_timeout, environ
            ),
            requests_collection=environ.get("REQUESTS_COLLECTION") or defaults.requests_collection,
            leaks_collection=environ.get("LEAKS_COLLECTION") or defaults.leaks_collection,
            notifications_collection=(
                environ.get("NOTIFICATIONS_COLLECTION") or defaults.notifications_collection
            ),
            feed_channel_prefix=environ.get("FEED_CHANNEL_PREFIX") or defaults.feed_channel_prefix,
        )
        values.update({key: value for key, value in overrides.items() if value is not None})
        config = cls(**values)
        logger.info(
            f"EngineConfig loaded: record_store_url={config.record_store_url}, "
            f"collections=({config.requests_collection}, {config.leaks_collection})"
        )
        return config
