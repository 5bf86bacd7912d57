from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, Optional

from redis.exceptions import ResponseError


WRONGTYPE = "WRONGTYPE Operation against a key holding the wrong kind of value"


def _encode(value: Any) -> str:
    # redis stores bytes; with decode_responses every value comes back as str
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


class AsyncMemoryRedis:
    """In-process stand-in for ``redis.asyncio.Redis(decode_responses=True)``.

    One keyspace holds strings, hashes and sets side by side, so a key has a
    single type and ``delete`` drops it whatever it holds. Only the commands
    the repository issues are implemented.
    """

    def __init__(self) -> None:
        self._data: Dict[str, Any] = {}
        self._expires_at: Dict[str, float] = {}
        self._lock = asyncio.Lock()

    def _evict_expired(self) -> None:
        now = time.time()
        for key in [k for k, when in self._expires_at.items() if when <= now]:
            self._data.pop(key, None)
            del self._expires_at[key]

    def _read(self, key: str, kind: type) -> Any:
        self._evict_expired()
        value = self._data.get(key)
        if value is not None and not isinstance(value, kind):
            raise ResponseError(WRONGTYPE)
        return value

    def _writable(self, key: str, kind: type) -> Any:
        value = self._read(key, kind)
        if value is None:
            value = self._data[key] = kind()
        return value

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None

    # strings

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            return self._read(key, str)

    async def set(self, key: str, value: Any, nx: bool | None = None) -> bool | None:
        async with self._lock:
            self._evict_expired()
            if nx and key in self._data:
                return None
            self._data[key] = _encode(value)
            self._expires_at.pop(key, None)
            return True

    async def setex(self, key: str, ttl_seconds: int, value: Any) -> bool:
        async with self._lock:
            self._data[key] = _encode(value)
            self._expires_at[key] = time.time() + ttl_seconds
            return True

    async def incr(self, key: str) -> int:
        async with self._lock:
            count = int(self._read(key, str) or 0) + 1
            self._data[key] = str(count)
            return count

    # hashes

    async def hset(self, key: str, mapping: Dict[str, Any]) -> int:
        async with self._lock:
            fields = self._writable(key, dict)
            new_fields = sum(1 for name in mapping if name not in fields)
            fields.update((name, _encode(v)) for name, v in mapping.items())
            return new_fields

    async def hget(self, key: str, field: str) -> Optional[str]:
        async with self._lock:
            return (self._read(key, dict) or {}).get(field)

    async def hgetall(self, key: str) -> Dict[str, str]:
        async with self._lock:
            return dict(self._read(key, dict) or {})

    async def hincrby(self, key: str, field: str, amount: int = 1) -> int:
        async with self._lock:
            fields = self._writable(key, dict)
            total = int(fields.get(field, 0)) + amount
            fields[field] = str(total)
            return total

    # sets

    async def sadd(self, key: str, *members: Any) -> int:
        async with self._lock:
            current = self._writable(key, set)
            fresh = {_encode(m) for m in members} - current
            current |= fresh
            return len(fresh)

    async def srem(self, key: str, *members: Any) -> int:
        async with self._lock:
            current = self._read(key, set)
            if not current:
                return 0
            gone = current & {_encode(m) for m in members}
            current -= gone
            if not current:
                del self._data[key]
            return len(gone)

    async def smembers(self, key: str) -> set[str]:
        async with self._lock:
            return set(self._read(key, set) or ())

    async def sismember(self, key: str, member: Any) -> bool:
        async with self._lock:
            return _encode(member) in (self._read(key, set) or ())

    async def scard(self, key: str) -> int:
        async with self._lock:
            return len(self._read(key, set) or ())

    # keys

    async def delete(self, *keys: str) -> int:
        async with self._lock:
            self._evict_expired()
            removed = 0
            for key in keys:
                if self._data.pop(key, None) is not None:
                    removed += 1
                self._expires_at.pop(key, None)
            return removed
