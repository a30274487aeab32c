"""Redis configuration and helpers."""
from __future__ import annotations

import os

from redis import Redis
from redis.asyncio import Redis as AsyncRedis

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
REDIS_SESSION_CHANNEL_PREFIX = os.getenv("REDIS_SESSION_CHANNEL_PREFIX", "session")
DEFAULT_SESSION_ID = os.getenv("DEFAULT_SESSION_ID", "classroom")
# Seconds, applied to connect and to each command
REDIS_SOCKET_TIMEOUT = float(os.getenv("REDIS_SOCKET_TIMEOUT", "2.0"))


def session_channel(session_id: str) -> str:
    """Build pub/sub channel name for a session snapshot stream."""
    return f"{REDIS_SESSION_CHANNEL_PREFIX}:{session_id}"


def create_redis_client() -> Redis:
    """Create a sync Redis client (subscribers and tooling)."""
    return Redis.from_url(
        REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=REDIS_SOCKET_TIMEOUT,
        socket_timeout=REDIS_SOCKET_TIMEOUT,
    )


def create_async_redis_client() -> AsyncRedis:
    """Create an async Redis client for snapshot publishing."""
    return AsyncRedis.from_url(
        REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=REDIS_SOCKET_TIMEOUT,
        socket_timeout=REDIS_SOCKET_TIMEOUT,
    )
