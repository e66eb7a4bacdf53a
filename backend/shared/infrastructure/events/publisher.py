"""
Event publishing with retry.

Publishes an already-serialized event to a Redis channel, retrying with
exponential backoff before giving up and re-raising the last error.
"""

from __future__ import annotations

import asyncio
import random

import redis.asyncio as redis

from shared.config.settings import settings
from shared.config.logging import get_logger

logger = get_logger(__name__)

# Redis accepts far larger messages; this keeps one bad payload from flooding subscribers
MAX_EVENT_SIZE = 64 * 1024


def retry_delay(attempt: int, base_delay: float) -> float:
    """Exponential backoff with up to 25% jitter."""
    delay = base_delay * (2 ** attempt)
    return delay + random.uniform(0, delay * 0.25)


async def publish_event(
    redis_client: redis.Redis,
    channel: str,
    event_json: str,
    event_type: str,
) -> int:
    """
    Publish a JSON event to a Redis channel.

    Returns:
        Number of subscribers that received the message.

    Raises:
        ValueError: If the event is larger than MAX_EVENT_SIZE.
        Exception: The last Redis error once all retries are exhausted.
    """
    size = len(event_json.encode("utf-8"))
    if size > MAX_EVENT_SIZE:
        raise ValueError(f"Event {event_type} exceeds max size: {size} > {MAX_EVENT_SIZE} bytes")

    max_retries = settings.redis_publish_max_retries
    last_error: Exception | None = None
    for attempt in range(max_retries):
        try:
            return await redis_client.publish(channel, event_json)
        except Exception as e:
            last_error = e
            if attempt < max_retries - 1:
                delay = retry_delay(attempt, settings.redis_publish_retry_delay)
                logger.warning(
                    "Redis publish failed, retrying",
                    channel=channel,
                    event_type=event_type,
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    delay_seconds=round(delay, 2),
                    error=str(e),
                )
                await asyncio.sleep(delay)
            else:
                logger.error(
                    "Redis publish failed after all retries",
                    channel=channel,
                    event_type=event_type,
                    error=str(e),
                )

    raise last_error  # type: ignore[misc]
