"""
Process-wide async Redis client.

Created on first use and shared by the outbox processor, the WebSocket
relay and the health check. close_redis_pool() runs at shutdown.
"""

from __future__ import annotations

import asyncio

import redis.asyncio as redis

from shared.config.logging import get_logger
from shared.config.settings import REDIS_URL, settings

logger = get_logger(__name__)

_client: redis.Redis | None = None
_client_lock: asyncio.Lock | None = None


def _lock() -> asyncio.Lock:
    # Created lazily so it belongs to the running event loop
    global _client_lock
    if _client_lock is None:
        _client_lock = asyncio.Lock()
    return _client_lock


def _connect() -> redis.Redis:
    return redis.from_url(
        REDIS_URL,
        decode_responses=True,
        max_connections=settings.redis_pool_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_timeout,
        health_check_interval=30,
    )


async def get_redis_pool() -> redis.Redis:
    global _client
    if _client is None:
        async with _lock():
            if _client is None:
                _client = _connect()
                logger.info("Redis client created", max_connections=settings.redis_pool_max_connections)
    return _client


async def close_redis_pool() -> None:
    global _client, _client_lock
    client, _client = _client, None
    _client_lock = None
    if client is not None:
        await client.aclose()
        logger.info("Redis client closed")
