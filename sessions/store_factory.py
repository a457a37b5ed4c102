"""
Store Factory — Create the right session store backend from configuration.

Configuration in settings.yaml:
    store:
      #   "memory" — In-memory dict (development, testing)
      #   "redis"  — Redis (multiple workers sharing sessions)
      backend: "memory"
      redis_url: "redis://localhost:6379"

Usage:
    from sessions.store_factory import create_store
    store = create_store({"backend": "redis", "redis_url": "redis://cache:6379"})
"""
from __future__ import annotations

from typing import Any, Union

import structlog

from config.settings import StoreConfig
from sessions.store_base import SessionStore

logger = structlog.get_logger()


def create_store(config: Union[StoreConfig, dict[str, Any], None] = None) -> SessionStore:
    """
    Factory: create the appropriate session store backend.

    Args:
        config: StoreConfig, or dict with keys:
            backend: "memory" | "redis"  (default: "memory")
            redis_url: str (for redis backend)
    """
    if isinstance(config, StoreConfig):
        config = {"backend": config.backend, "redis_url": config.redis_url}
    config = config or {}
    backend = config.get("backend", "memory")

    if backend == "redis":
        from sessions.store_redis import RedisSessionStore
        url = config.get("redis_url", "redis://localhost:6379")
        store = RedisSessionStore(redis_url=url)
        logger.info("store_created", backend="redis", url=url)

    elif backend == "memory":
        from sessions.store_memory import MemorySessionStore
        store = MemorySessionStore()
        logger.info("store_created", backend="memory")

    else:
        raise ValueError(f"Unknown session store backend '{backend}'")

    return store
