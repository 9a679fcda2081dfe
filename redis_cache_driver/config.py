from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Tuple, Union
from urllib.parse import unquote

from .errors import CacheValidationError

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 6379
DEFAULT_TIMEOUT_MS = 5000
DEFAULT_POOL_SIZE = 10


@dataclass(frozen=True)
class Config:
    """
    Connection parameters for a redis cache driver.

    ``pool_size`` is only used by the pooled driver.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    pool_size: int = DEFAULT_POOL_SIZE
    username: Optional[str] = None
    password: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.host:
            raise CacheValidationError("Server host cannot be empty")
        if not (1 <= self.port <= 65535):
            raise CacheValidationError("Server port must be between 1 and 65535")
        if self.timeout_ms <= 0:
            raise CacheValidationError("Timeout must be positive")
        if self.pool_size <= 0:
            raise CacheValidationError("Pool size must be positive")

    @property
    def timeout(self) -> float:
        """Timeout in seconds, as asyncio and redis-py expect it"""
        return self.timeout_ms / 1000

    @classmethod
    def from_url(cls, server_address: str, **overrides: Any) -> "Config":
        """
        Build a config from a server address.

        Accepts ``host``, ``host:port``, ``[::1]:port`` and
        ``redis://[user[:password]@]host[:port]``. Keyword overrides win over
        anything parsed from the address.
        """
        host, port, username, password = parse_server_address(server_address)
        config = cls(host=host, port=port, username=username, password=password)
        return replace(config, **overrides) if overrides else config


def parse_server_address(
    server_address: str,
) -> Tuple[str, int, Optional[str], Optional[str]]:
    address = server_address.strip()
    if not address:
        raise CacheValidationError("Server address cannot be empty")

    username: Optional[str] = None
    password: Optional[str] = None

    if "://" in address:
        scheme, address = address.split("://", 1)
        if scheme != "redis":
            raise CacheValidationError(f"Unsupported scheme: {scheme}")
        address = address.split("/", 1)[0]
        if "@" in address:
            userinfo, address = address.rsplit("@", 1)
            if ":" in userinfo:
                user_part, password_part = userinfo.split(":", 1)
                password = unquote(password_part)
            else:
                user_part = userinfo
            username = unquote(user_part) or None

    if address.startswith("["):
        bracket_end = address.find("]")
        if bracket_end == -1:
            raise CacheValidationError("Invalid IPv6 server address")
        host = address[1:bracket_end]
        port_part = address[bracket_end + 1 :]
        if not port_part:
            port = DEFAULT_PORT
        elif port_part.startswith(":"):
            port = _parse_port(port_part[1:])
        else:
            raise CacheValidationError("Invalid IPv6 server address")
    elif ":" in address:
        host, port_part = address.rsplit(":", 1)
        port = _parse_port(port_part)
    else:
        host = address
        port = DEFAULT_PORT

    if not host:
        raise CacheValidationError("Server host cannot be empty")

    return host, port, username, password


def _parse_port(value: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise CacheValidationError(f"Invalid server port: {value!r}") from exc


@dataclass(frozen=True)
class Timeout:
    milliseconds: int


@dataclass(frozen=True)
class Auth:
    password: str


@dataclass(frozen=True)
class AuthWithUsername:
    username: str
    password: str


Option = Union[Timeout, Auth, AuthWithUsername]


def startup_options(config: Config) -> List[Option]:
    """Options a new connection is started with, auth first when present"""
    options: List[Option] = [Timeout(config.timeout_ms)]

    if config.username is not None:
        auth: Option = AuthWithUsername(config.username, config.password or "")
        options.insert(0, auth)
    elif config.password is not None:
        options.insert(0, Auth(config.password))

    return options


def connection_kwargs(options: List[Option]) -> Dict[str, Any]:
    """Translate startup options into redis-py connection arguments"""
    kwargs: Dict[str, Any] = {}
    for option in options:
        if isinstance(option, Timeout):
            seconds = option.milliseconds / 1000
            kwargs["socket_timeout"] = seconds
            kwargs["socket_connect_timeout"] = seconds
        elif isinstance(option, AuthWithUsername):
            kwargs["username"] = option.username
            kwargs["password"] = option.password
        elif isinstance(option, Auth):
            kwargs["password"] = option.password
    return kwargs
