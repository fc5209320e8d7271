"""Retry policy for startup connectivity checks.

Only connection verification is retried. Record writes are never retried
automatically: a failed status update is surfaced to staff, who decide
whether to try again.
"""

import logging

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

logger = logging.getLogger(__name__)

STARTUP_MAX_ATTEMPTS = 5

# Wait 2s, 4s, 8s, 16s between attempts; give up after 5 and re-raise
service_startup_retry = retry(
    stop=stop_after_attempt(STARTUP_MAX_ATTEMPTS),
    wait=wait_exponential(multiplier=1, min=2, max=32),
    retry=retry_if_exception_type(
        (RedisConnectionError, RedisTimeoutError, ConnectionError, OSError, TimeoutError)
    ),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
