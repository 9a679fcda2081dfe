import asyncio

from redis import exceptions as redis_errors

from .commands import KeyNotFound
from .errors import (
    ActorError,
    ConnectionError,
    DriverInvariantError,
    RedisError,
    ServerError,
    TCPError,
    UnknownResponseError,
)

# Everything the redis client can fail with during a command. Anything else
# is a bug and propagates untranslated.
CLIENT_ERRORS = (
    redis_errors.RedisError,
    redis_errors.ChildDeadlockedError,
    asyncio.TimeoutError,
    TimeoutError,
    OSError,
)


def translate_error(exc: BaseException) -> RedisError:
    """
    Map an error raised by the redis client onto a ``RedisError`` variant.

    A missing key is not an error here: every call site decides what a
    missing key means for it before reaching this function.
    """
    if isinstance(exc, KeyNotFound):
        raise DriverInvariantError(
            f"Key not found reached error translation: {exc.key}"
        ) from exc

    if isinstance(exc, redis_errors.ChildDeadlockedError):
        return ActorError()
    # AuthenticationError is a ConnectionError subclass, check it first
    if isinstance(exc, (redis_errors.AuthenticationError, redis_errors.ResponseError)):
        return ServerError(str(exc))
    if isinstance(exc, redis_errors.TimeoutError):
        return TCPError(exc)
    if isinstance(exc, redis_errors.ConnectionError):
        return ConnectionError()
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError, OSError)):
        return TCPError(exc)
    return UnknownResponseError()
