import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Protocol, TypeVar

from .errors import DisconnectError

logger = logging.getLogger(__name__)

D = TypeVar("D", bound="CacheDriver")


class CacheDriver(Protocol):
    """
    Shape every cache driver exposes to the caching layer.

    Drivers are immutable values: ``connect`` and ``disconnect`` return a new
    driver and leave the receiver untouched, so callers keep the returned
    value and drop the old one.
    """

    async def connect(self: D) -> D:
        ...

    async def disconnect(self: D) -> D:
        ...

    async def set(
        self,
        resource_type: str,
        key: str,
        value: str,
        ttl: Optional[int] = None,
    ) -> None:
        ...

    async def get(self, resource_type: str, key: str) -> str:
        ...

    async def delete(self, resource_type: str, key: str) -> None:
        ...


@asynccontextmanager
async def connected(driver: D) -> AsyncIterator[D]:
    """Connect on entry, yield the connected driver, disconnect on exit"""
    live = await driver.connect()
    try:
        yield live
    except BaseException:
        # Keep the caller's exception; a failed disconnect is only logged.
        try:
            await live.disconnect()
        except DisconnectError as e:
            logger.warning("Failed to disconnect after an error: %r", e)
        raise
    await live.disconnect()
