"""
Change-feed fan-out over Redis pub/sub.

- channels.py: Channel naming per branch / franchise
- redis_pool.py: Lazily created async client
- publisher.py: publish_event with retry and size check
"""

from .channels import channel_branch_changes, channel_franchise_changes
from .redis_pool import get_redis_pool, close_redis_pool
from .publisher import publish_event, retry_delay, MAX_EVENT_SIZE

__all__ = [
    "channel_branch_changes",
    "channel_franchise_changes",
    "get_redis_pool",
    "close_redis_pool",
    "publish_event",
    "retry_delay",
    "MAX_EVENT_SIZE",
]
