"""Redis pub/sub publisher for session snapshots."""
from __future__ import annotations

import asyncio
import json
import logging

from redis.exceptions import RedisError

from common.config import create_async_redis_client, session_channel
from common.types import SessionSnapshot

logger = logging.getLogger(__name__)


class SessionPublisher:
    """Publishes snapshots over an asyncio Redis client.

    `submit` is the store listener: it only enqueues, and a background task
    sends in merge order. When Redis falls behind, the oldest pending
    snapshot is dropped.
    """

    def __init__(self, session_id: str, max_pending: int = 16):
        self.session_id = session_id
        self._redis = create_async_redis_client()
        self._max_pending = max_pending
        self._pending: asyncio.Queue | None = None
        self._sender: asyncio.Task | None = None

    async def publish(self, payload: dict) -> bool:
        try:
            await self._redis.publish(session_channel(self.session_id), json.dumps(payload))
            return True
        except (RedisError, OSError) as exc:
            logger.warning("Redis publish failed for session '%s': %s", self.session_id, exc)
            return False

    async def publish_snapshot(self, snapshot: SessionSnapshot) -> bool:
        return await self.publish({"type": "session", **snapshot.model_dump(mode="json")})

    def submit(self, snapshot: SessionSnapshot) -> None:
        """Queue a snapshot for publishing. Must be called on the event loop."""
        if self._sender is None:
            self._pending = asyncio.Queue(maxsize=self._max_pending)
            self._sender = asyncio.get_running_loop().create_task(
                self._drain(), name=f"session-publisher-{self.session_id}"
            )
        if self._pending.full():
            self._pending.get_nowait()
            logger.debug("Publisher backlog full; dropped oldest snapshot")
        self._pending.put_nowait(snapshot)

    async def _drain(self) -> None:
        while True:
            snapshot = await self._pending.get()
            await self.publish_snapshot(snapshot)

    async def close(self) -> None:
        if self._sender is not None:
            self._sender.cancel()
            await asyncio.gather(self._sender, return_exceptions=True)
            self._sender = None
        try:
            await self._redis.aclose()
        except Exception as exc:
            logger.debug("Error closing Redis client for session '%s': %s", self.session_id, exc)
