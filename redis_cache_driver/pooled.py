import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from typing import AsyncIterator, Optional, Type

from redis.asyncio import BlockingConnectionPool, Redis

from . import operations
from .config import Config, connection_kwargs, startup_options
from .errors import (
    AlreadyConnected,
    ConnectDriverError,
    DeleteDriverError,
    DisconnectDriverError,
    DriverError,
    GetDriverError,
    NotConnected,
    PoolError,
    SetDriverError,
    ShutdownError,
    StartError,
)
from .translate import CLIENT_ERRORS

POOL_START_TIMEOUT_MS = 1000
DRAIN_POLL_INTERVAL = 0.01


@dataclass(frozen=True)
class PooledRedisDriver:
    """
    Cache driver backed by a bounded pool of redis connections.

    Every operation checks out one connection for its whole duration and
    returns it afterwards, whatever the outcome. A connected driver can be
    shared between tasks; the pool hands each of them its own connection and
    makes callers wait, up to the configured timeout, once all
    ``config.pool_size`` connections are in use.
    """

    config: Config = field(default_factory=Config)
    connection: Optional[Redis] = None
    logger: Optional[logging.Logger] = field(default=None, compare=False, repr=False)

    @property
    def _logger(self) -> logging.Logger:
        return self.logger or logging.getLogger(__name__)

    def is_connected(self) -> bool:
        return self.connection is not None

    def _new_pool(self) -> BlockingConnectionPool:
        return BlockingConnectionPool(
            host=self.config.host,
            port=self.config.port,
            max_connections=self.config.pool_size,
            timeout=self.config.timeout,
            decode_responses=True,
            **connection_kwargs(startup_options(self.config)),
        )

    async def connect(self) -> "PooledRedisDriver":
        """Start the pool, check it can reach redis, return the connected driver"""
        if self.connection is not None:
            raise AlreadyConnected("Driver is already connected")

        config = self.config
        self._logger.debug(
            "Starting pool of %s connections to redis at %s:%s",
            config.pool_size,
            config.host,
            config.port,
        )

        pool = self._new_pool()
        client = Redis(connection_pool=pool)
        try:
            await asyncio.wait_for(
                self._check_startup(client), timeout=POOL_START_TIMEOUT_MS / 1000
            )
        except CLIENT_ERRORS as e:
            self._logger.error(
                "Failed to start redis pool for %s:%s: %r", config.host, config.port, e
            )
            await self._discard(pool)
            raise ConnectDriverError(StartError()) from e

        self._logger.debug("Redis pool started for %s:%s", config.host, config.port)
        return replace(self, connection=client)

    async def _check_startup(self, client: Redis) -> None:
        async with client.client() as lease:
            await lease.ping()

    async def _discard(self, pool: BlockingConnectionPool) -> None:
        try:
            await pool.disconnect()
        except CLIENT_ERRORS as e:
            self._logger.debug("Error discarding unused redis pool: %r", e)

    async def disconnect(self) -> "PooledRedisDriver":
        """Shut the pool down and return the disconnected driver"""
        if self.connection is None:
            raise NotConnected("Driver is not connected")

        self._logger.debug("Shutting down redis pool")
        pool = self.connection.connection_pool
        try:
            await asyncio.wait_for(self._drain(pool), timeout=self.config.timeout)
        except CLIENT_ERRORS as e:
            self._logger.error("Failed to shut down redis pool: %r", e)
            raise DisconnectDriverError(ShutdownError()) from e

        self._logger.debug("Redis pool shut down")
        return replace(self, connection=None)

    async def _drain(self, pool: BlockingConnectionPool) -> None:
        # Checked out connections are left to finish their command; they are
        # closed once they come back to the pool.
        await pool.disconnect(inuse_connections=False)
        while pool._in_use_connections:
            await asyncio.sleep(DRAIN_POLL_INTERVAL)
        await pool.disconnect()

    @asynccontextmanager
    async def _checkout(self, error_class: Type[DriverError]) -> AsyncIterator[Redis]:
        client = operations.require_connection(self.connection)
        lease = client.client()
        try:
            try:
                await asyncio.wait_for(lease.initialize(), timeout=self.config.timeout)
            except CLIENT_ERRORS as e:
                self._logger.warning("Could not check out a pooled connection: %r", e)
                raise error_class(PoolError(e)) from e
            yield lease
        finally:
            await lease.aclose()

    async def set(
        self,
        resource_type: str,
        key: str,
        value: str,
        ttl: Optional[int] = None,
    ) -> None:
        """
        Store ``value`` under ``resource_type:key``.

        SET and the following EXPIRE or PERSIST run on the same pooled
        connection, but not atomically.

        Raises:
            CacheValidationError: If ttl is given but is not a positive int
            SetDriverError: If the checkout or either command fails
        """
        operations.validate_ttl(ttl)
        async with self._checkout(SetDriverError) as client:
            await operations.set_entry(
                client, resource_type, key, value, ttl, self.config.timeout, self._logger
            )

    async def get(self, resource_type: str, key: str) -> str:
        async with self._checkout(GetDriverError) as client:
            return await operations.get_entry(
                client, resource_type, key, self.config.timeout, self._logger
            )

    async def delete(self, resource_type: str, key: str) -> None:
        async with self._checkout(DeleteDriverError) as client:
            await operations.delete_entry(
                client, resource_type, key, self.config.timeout, self._logger
            )
