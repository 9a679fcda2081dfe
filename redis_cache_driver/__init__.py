from .config import Auth, AuthWithUsername, Config, Timeout, startup_options
from .driver import RedisDriver
from .errors import (
    ActorError,
    AlreadyConnected,
    CacheError,
    CacheValidationError,
    ConnectDriverError,
    ConnectError,
    ConnectionError,
    DeleteDriverError,
    DeleteError,
    DisconnectDriverError,
    DisconnectError,
    DriverError,
    DriverInvariantError,
    GetDriverError,
    GetError,
    GotTooFewRecords,
    NotConnected,
    PoolError,
    RedisError,
    ServerError,
    SetDriverError,
    SetError,
    ShutdownError,
    StartError,
    TCPError,
    UnknownResponseError,
)
from .interface import CacheDriver, connected
from .keys import compose_key
from .pooled import PooledRedisDriver

__all__ = [
    'RedisDriver',
    'PooledRedisDriver',
    'CacheDriver',
    'connected',
    'Config',
    'Auth',
    'AuthWithUsername',
    'Timeout',
    'startup_options',
    'compose_key',
    'CacheError',
    'CacheValidationError',
    'DriverInvariantError',
    'ConnectError',
    'DisconnectError',
    'SetError',
    'GetError',
    'DeleteError',
    'AlreadyConnected',
    'NotConnected',
    'GotTooFewRecords',
    'DriverError',
    'ConnectDriverError',
    'DisconnectDriverError',
    'SetDriverError',
    'GetDriverError',
    'DeleteDriverError',
    'RedisError',
    'StartError',
    'ActorError',
    'ConnectionError',
    'TCPError',
    'ServerError',
    'ShutdownError',
    'PoolError',
    'UnknownResponseError',
]
