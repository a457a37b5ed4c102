"""
Abstract Session Store — Interface for all session storage backends.

Implementations:
  - MemorySessionStore (dict-based, single-process, no persistence)
  - RedisSessionStore  (redis.asyncio, shared across workers)

Keys are opaque strings (the FormSet passes prefix + chat id). `ttl` is in
milliseconds; None or math.inf keeps the session until it is deleted.
"""
from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Optional

from models.schemas import Session


def is_infinite(ttl: Optional[float]) -> bool:
    return ttl is None or ttl == math.inf


class SessionStore(ABC):
    """Interface that all session store backends must implement."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Session]:
        ...

    @abstractmethod
    async def put(self, key: str, session: Session, ttl: Optional[float] = None) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove the session. Returns whether one was stored."""
        ...
