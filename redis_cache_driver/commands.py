"""
Bounded redis commands.

Each helper issues one command with its own deadline and reports a missing
key as ``KeyNotFound`` instead of the sentinel redis-py returns for it.
"""

import asyncio
from typing import Awaitable, TypeVar

from redis.asyncio import Redis

T = TypeVar("T")


class KeyNotFound(Exception):
    """Raised when a command addresses a key the server does not hold"""

    def __init__(self, key: str):
        super().__init__(f"Key not found: {key}")
        self.key = key


async def _bounded(awaitable: Awaitable[T], timeout: float) -> T:
    return await asyncio.wait_for(awaitable, timeout=timeout)


async def ping(client: Redis, timeout: float) -> None:
    await _bounded(client.ping(), timeout)


async def set_value(client: Redis, key: str, value: str, timeout: float) -> None:
    await _bounded(client.set(key, value), timeout)


async def expire(client: Redis, key: str, seconds: int, timeout: float) -> None:
    if not await _bounded(client.expire(key, seconds), timeout):
        raise KeyNotFound(key)


async def persist(client: Redis, key: str, timeout: float) -> None:
    # PERSIST answers 0 both for a missing key and for a key without expiry,
    # so its result cannot tell a race apart from a plain no-op.
    await _bounded(client.persist(key), timeout)


async def get(client: Redis, key: str, timeout: float) -> str:
    value = await _bounded(client.get(key), timeout)
    if value is None:
        raise KeyNotFound(key)
    return value


async def delete(client: Redis, key: str, timeout: float) -> int:
    removed = await _bounded(client.delete(key), timeout)
    if not removed:
        raise KeyNotFound(key)
    return removed
