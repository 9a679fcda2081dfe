"""
Cache semantics shared by both drivers.

Each function runs against a single redis client that is already bound to
one connection, and raises the driver error for its operation.
"""

import logging
from typing import Optional, TypeVar

from redis.asyncio import Redis

from . import commands
from .commands import KeyNotFound
from .errors import (
    CacheValidationError,
    DeleteDriverError,
    DriverInvariantError,
    GetDriverError,
    GotTooFewRecords,
    SetDriverError,
    UnknownResponseError,
)
from .keys import compose_key
from .translate import CLIENT_ERRORS, translate_error

C = TypeVar("C")


def require_connection(connection: Optional[C]) -> C:
    if connection is None:
        raise DriverInvariantError("Cache operation issued on a driver that is not connected")
    return connection


def validate_ttl(ttl: Optional[int]) -> None:
    if ttl is None:
        return
    if isinstance(ttl, bool) or not isinstance(ttl, int):
        raise CacheValidationError("TTL must be an integer number of seconds")
    if ttl <= 0:
        raise CacheValidationError("TTL must be positive")


async def set_entry(
    client: Redis,
    resource_type: str,
    key: str,
    value: str,
    ttl: Optional[int],
    timeout: float,
    logger: logging.Logger,
) -> None:
    composed = compose_key(resource_type, key)
    logger.debug("Setting value for key: %s, ttl: %s", composed, ttl)

    try:
        await commands.set_value(client, composed, value, timeout)
    except CLIENT_ERRORS as e:
        logger.warning("SET failed for key %s: %r", composed, e)
        raise SetDriverError(translate_error(e)) from e

    try:
        if ttl is None:
            await commands.persist(client, composed, timeout)
        else:
            await commands.expire(client, composed, ttl, timeout)
    except KeyNotFound as e:
        # Expired or deleted between SET and EXPIRE.
        logger.warning("Key %s vanished before its expiry could be set", composed)
        raise SetDriverError(UnknownResponseError()) from e
    except CLIENT_ERRORS as e:
        logger.warning("Setting expiry failed for key %s: %r", composed, e)
        raise SetDriverError(translate_error(e)) from e

    logger.debug("Successfully set value for key: %s", composed)


async def get_entry(
    client: Redis,
    resource_type: str,
    key: str,
    timeout: float,
    logger: logging.Logger,
) -> str:
    composed = compose_key(resource_type, key)
    logger.debug("Getting value for key: %s", composed)

    try:
        value = await commands.get(client, composed, timeout)
    except KeyNotFound as e:
        logger.debug("Cache miss for key: %s", composed)
        raise GotTooFewRecords(f"No value stored for key: {composed}") from e
    except CLIENT_ERRORS as e:
        logger.warning("GET failed for key %s: %r", composed, e)
        raise GetDriverError(translate_error(e)) from e

    logger.debug("Cache hit for key: %s", composed)
    return value


async def delete_entry(
    client: Redis,
    resource_type: str,
    key: str,
    timeout: float,
    logger: logging.Logger,
) -> None:
    composed = compose_key(resource_type, key)
    logger.debug("Deleting key: %s", composed)

    try:
        await commands.delete(client, composed, timeout)
    except KeyNotFound:
        logger.debug("Key %s was already absent", composed)
        return
    except CLIENT_ERRORS as e:
        logger.warning("DEL failed for key %s: %r", composed, e)
        raise DeleteDriverError(translate_error(e)) from e

    logger.debug("Successfully deleted key: %s", composed)
