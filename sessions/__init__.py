"""
Session stores — Pluggable persistence for in-progress form runs.

Quick start:
  from sessions import create_store
  store = create_store({"backend": "memory"})
  await store.put("form:42", session, ttl=60_000)
"""
from sessions.store_base import SessionStore
from sessions.store_memory import MemorySessionStore
from sessions.store_redis import RedisSessionStore
from sessions.store_factory import create_store

__all__ = [
    "SessionStore",
    "MemorySessionStore",
    "RedisSessionStore",
    "create_store",
]
