"""
MemorySessionStore — Dict-backed session store for development and testing.

Features:
  - Zero dependencies (no Redis)
  - Sessions stored serialized, so callers never share a mutable instance
  - TTL honoured on read; expired entries swept on every write
  - All data lost on process restart

Best for: local development, unit tests, single-worker bots.
"""
from __future__ import annotations

import time
from typing import Any, Optional

import structlog

from models.schemas import Session
from sessions.store_base import SessionStore, is_infinite

logger = structlog.get_logger()


class MemorySessionStore(SessionStore):

    def __init__(self):
        self._sessions: dict[str, tuple[dict[str, Any], Optional[float]]] = {}  # key → (data, expires_at)
        logger.info("memory_session_store_initialized")

    @staticmethod
    def _now() -> float:
        return time.monotonic()

    async def get(self, key: str) -> Optional[Session]:
        entry = self._sessions.get(key)
        if entry is None:
            return None
        data, expires_at = entry
        if expires_at is not None and self._now() >= expires_at:
            del self._sessions[key]
            logger.debug("session_expired", key=key)
            return None
        return Session.model_validate(data)

    async def put(self, key: str, session: Session, ttl: Optional[float] = None) -> None:
        now = self._now()
        self._sweep(now)
        expires_at = None if is_infinite(ttl) else now + ttl / 1000.0
        self._sessions[key] = (session.model_dump(mode="json"), expires_at)

    async def delete(self, key: str) -> bool:
        entry = self._sessions.pop(key, None)
        if entry is None:
            return False
        _, expires_at = entry
        return expires_at is None or self._now() < expires_at

    def _sweep(self, now: float) -> None:
        """Drop every expired entry, including those no caller reads again."""
        expired = [k for k, (_, exp) in self._sessions.items() if exp is not None and now >= exp]
        for key in expired:
            del self._sessions[key]
        if expired:
            logger.debug("sessions_swept", count=len(expired))

    def stats(self) -> dict[str, int]:
        return {"sessions": len(self._sessions)}
