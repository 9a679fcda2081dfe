import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from redis.asyncio import Redis

from . import commands, operations
from .config import Config, connection_kwargs, startup_options
from .errors import (
    AlreadyConnected,
    ConnectDriverError,
    DisconnectDriverError,
    NotConnected,
    ShutdownError,
)
from .translate import CLIENT_ERRORS, translate_error


@dataclass(frozen=True)
class RedisDriver:
    """
    Cache driver backed by one long-lived redis connection.

    The driver is an immutable value. ``connect`` and ``disconnect`` return a
    new driver; the one they are called on is left as it was.

    The connection carries no locking of its own: callers sharing one
    connected driver across tasks must serialize their calls.
    """

    config: Config = field(default_factory=Config)
    connection: Optional[Redis] = None
    logger: Optional[logging.Logger] = field(default=None, compare=False, repr=False)

    @property
    def _logger(self) -> logging.Logger:
        return self.logger or logging.getLogger(__name__)

    def is_connected(self) -> bool:
        return self.connection is not None

    def _new_client(self) -> Redis:
        return Redis(
            host=self.config.host,
            port=self.config.port,
            single_connection_client=True,
            decode_responses=True,
            **connection_kwargs(startup_options(self.config)),
        )

    async def connect(self) -> "RedisDriver":
        """Open the connection and return the connected driver"""
        if self.connection is not None:
            raise AlreadyConnected("Driver is already connected")

        config = self.config
        self._logger.debug("Connecting to redis at %s:%s", config.host, config.port)

        client = self._new_client()
        try:
            # The first command opens the socket and runs AUTH.
            await commands.ping(client, config.timeout)
        except CLIENT_ERRORS as e:
            self._logger.error(
                "Failed to connect to redis at %s:%s: %r", config.host, config.port, e
            )
            await self._discard(client)
            raise ConnectDriverError(translate_error(e)) from e

        self._logger.debug("Successfully connected to redis at %s:%s", config.host, config.port)
        return replace(self, connection=client)

    async def _discard(self, client: Redis) -> None:
        try:
            await client.aclose()
        except CLIENT_ERRORS as e:
            self._logger.debug("Error closing unused redis client: %r", e)

    async def disconnect(self) -> "RedisDriver":
        """Close the connection and return the disconnected driver"""
        if self.connection is None:
            raise NotConnected("Driver is not connected")

        self._logger.debug("Closing connection to redis")
        try:
            await asyncio.wait_for(self.connection.aclose(), timeout=self.config.timeout)
        except CLIENT_ERRORS as e:
            self._logger.error("Failed to close redis connection: %r", e)
            raise DisconnectDriverError(ShutdownError()) from e

        self._logger.debug("Redis connection closed")
        return replace(self, connection=None)

    async def set(
        self,
        resource_type: str,
        key: str,
        value: str,
        ttl: Optional[int] = None,
    ) -> None:
        """
        Store ``value`` under ``resource_type:key``.

        Args:
            ttl: Seconds until the key expires; None keeps it forever and
                clears any expiry left from an earlier set

        Raises:
            CacheValidationError: If ttl is given but is not a positive int,
                checked before anything is sent
            SetDriverError: If either the SET or the expiry update fails.
                The value may already be written when this is raised.
        """
        client = operations.require_connection(self.connection)
        operations.validate_ttl(ttl)
        await operations.set_entry(
            client, resource_type, key, value, ttl, self.config.timeout, self._logger
        )

    async def get(self, resource_type: str, key: str) -> str:
        """
        Raises:
            GotTooFewRecords: If nothing is stored under the key
            GetDriverError: If redis could not answer
        """
        client = operations.require_connection(self.connection)
        return await operations.get_entry(
            client, resource_type, key, self.config.timeout, self._logger
        )

    async def delete(self, resource_type: str, key: str) -> None:
        """Remove the key; removing a missing key succeeds"""
        client = operations.require_connection(self.connection)
        await operations.delete_entry(
            client, resource_type, key, self.config.timeout, self._logger
        )
