"""
RedisSessionStore — Sessions as JSON strings in Redis.

  - Finite TTLs are written with PX (whole milliseconds, at least 1), so Redis expires them
  - The client connects lazily on first use; `close()` releases the pool
  - Payloads that fail to parse raise, the FormSet wraps them in SessionError
"""
from __future__ import annotations

import math
from typing import Optional

import structlog

from models.schemas import Session
from sessions.store_base import SessionStore, is_infinite

logger = structlog.get_logger()


class RedisSessionStore(SessionStore):

    def __init__(self, redis_url: str = "redis://localhost:6379", client=None):
        self._redis_url = redis_url
        self._redis = client

    async def connect(self):
        import redis.asyncio as aioredis
        self._redis = aioredis.from_url(
            self._redis_url,
            decode_responses=True,
            max_connections=20,
        )
        await self._redis.ping()
        logger.info("redis_session_store_connected", url=self._redis_url)

    async def close(self):
        if self._redis:
            await self._redis.close()
            self._redis = None

    async def _client(self):
        if self._redis is None:
            await self.connect()
        return self._redis

    async def get(self, key: str) -> Optional[Session]:
        client = await self._client()
        data = await client.get(key)
        if not data:
            return None
        return Session.model_validate_json(data)

    async def put(self, key: str, session: Session, ttl: Optional[float] = None) -> None:
        client = await self._client()
        payload = session.model_dump_json()
        if is_infinite(ttl):
            await client.set(key, payload)
        else:
            await client.set(key, payload, px=max(1, math.ceil(ttl)))

    async def delete(self, key: str) -> bool:
        client = await self._client()
        return bool(await client.delete(key))
