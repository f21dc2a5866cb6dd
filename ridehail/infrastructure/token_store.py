"""
Token storage -- where the signed-in session survives between runs.

The bearer token is kept under the key ``token`` and the cached user
profile (JSON) under ``user``.  Stores are async so the Redis-backed one
and the in-memory one are interchangeable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

import redis.asyncio as aioredis

TOKEN_KEY = "token"
USER_KEY = "user"


class TokenStore(ABC):
    @abstractmethod
    async def get(self, key: str) -> Optional[str]: ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None: ...

    @abstractmethod
    async def delete(self, key: str) -> None: ...


class InMemoryTokenStore(TokenStore):
    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


class RedisTokenStore(TokenStore):
    """Keys are namespaced with ``prefix`` so several clients can share a DB."""

    def __init__(self, client: aioredis.Redis, prefix: str = "ridehail"):
        self.redis = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def get(self, key: str) -> Optional[str]:
        return await self.redis.get(self._key(key))

    async def set(self, key: str, value: str) -> None:
        await self.redis.set(self._key(key), value)

    async def delete(self, key: str) -> None:
        await self.redis.delete(self._key(key))
