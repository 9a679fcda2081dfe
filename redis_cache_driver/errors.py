from dataclasses import dataclass


@dataclass(frozen=True)
class RedisError:
    """Base of the closed set of reasons a redis operation can fail"""


@dataclass(frozen=True)
class StartError(RedisError):
    """The connection or pool failed to initialize"""


@dataclass(frozen=True)
class ActorError(RedisError):
    """The underlying worker failed"""


@dataclass(frozen=True)
class ConnectionError(RedisError):
    """
    A connection to the server could not be established.

    Shadows the builtin of the same name wherever it is imported unqualified,
    including through ``from redis_cache_driver import *``.
    """


@dataclass(frozen=True)
class TCPError(RedisError):
    """Transport-level failure"""

    inner: BaseException


@dataclass(frozen=True)
class ServerError(RedisError):
    """The server answered with an explicit error"""

    message: str


@dataclass(frozen=True)
class ShutdownError(RedisError):
    """The connection or pool failed to shut down cleanly"""


@dataclass(frozen=True)
class PoolError(RedisError):
    """A pooled connection could not be checked out"""

    inner: BaseException


@dataclass(frozen=True)
class UnknownResponseError(RedisError):
    """The response could not be interpreted"""


class CacheError(Exception):
    """Base exception for cache driver operations"""


class CacheValidationError(CacheError, ValueError):
    """Raised when input validation fails"""


class DriverInvariantError(AssertionError):
    """Raised when the driver reaches a state its callers must never produce"""


class ConnectError(CacheError):
    """Raised when connect does not complete"""


class DisconnectError(CacheError):
    """Raised when disconnect does not complete"""


class SetError(CacheError):
    """Raised when set does not complete"""


class GetError(CacheError):
    """Raised when get does not complete"""


class DeleteError(CacheError):
    """Raised when delete does not complete"""


class AlreadyConnected(ConnectError):
    """Raised when connecting a driver that already holds a connection"""


class NotConnected(DisconnectError):
    """Raised when disconnecting a driver that holds no connection"""


class GotTooFewRecords(GetError):
    """Raised when a requested key is not in the cache"""


class DriverError(CacheError):
    """
    Failure reported by redis, carrying the translated reason.

    ``error`` is always one of the ``RedisError`` variants, so callers can
    branch on ``isinstance(exc.error, ...)`` without parsing messages.
    """

    operation = "operation"

    def __init__(self, error: RedisError):
        super().__init__(f"{self.operation} failed: {error!r}")
        self.error = error


class ConnectDriverError(DriverError, ConnectError):
    operation = "connect"


class DisconnectDriverError(DriverError, DisconnectError):
    operation = "disconnect"


class SetDriverError(DriverError, SetError):
    operation = "set"


class GetDriverError(DriverError, GetError):
    operation = "get"


class DeleteDriverError(DriverError, DeleteError):
    operation = "delete"
