import asyncio
from unittest.mock import AsyncMock, MagicMock, call, patch

import pytest
from redis import exceptions as redis_errors
from redis.asyncio import BlockingConnectionPool, Connection, Redis

from redis_cache_driver import (
    AlreadyConnected,
    Config,
    ConnectDriverError,
    DeleteDriverError,
    DisconnectDriverError,
    DriverInvariantError,
    GetDriverError,
    GotTooFewRecords,
    NotConnected,
    PoolError,
    PooledRedisDriver,
    ServerError,
    SetDriverError,
    ShutdownError,
    StartError,
    TCPError,
    UnknownResponseError,
)
from redis_cache_driver.pooled import POOL_START_TIMEOUT_MS


def make_lease():
    """Create a mocked client bound to one pooled connection."""
    lease = MagicMock()
    lease.__aenter__.return_value = lease
    lease.initialize = AsyncMock(return_value=lease)
    lease.aclose = AsyncMock()
    lease.ping = AsyncMock(return_value=True)
    lease.set = AsyncMock(return_value=True)
    lease.expire = AsyncMock(return_value=True)
    lease.persist = AsyncMock(return_value=True)
    lease.get = AsyncMock(return_value="value")
    lease.delete = AsyncMock(return_value=1)
    return lease


def make_client(lease=None):
    """Create a mocked pool-backed client that hands out ``lease``."""
    client = MagicMock()
    client.client.return_value = lease or make_lease()
    client.connection_pool.disconnect = AsyncMock()
    client.connection_pool._in_use_connections = set()
    return client


class TestPooledDriverLifecycle:
    """Test pool startup and shutdown."""

    @pytest.mark.asyncio
    async def test_connect(self):
        """Test connect sizes the pool and checks one connection."""
        config = Config(pool_size=4, timeout_ms=3000, password="pass")
        pool = MagicMock()
        client = make_client()

        with patch(
            "redis_cache_driver.pooled.BlockingConnectionPool", return_value=pool
        ) as mock_pool, patch(
            "redis_cache_driver.pooled.Redis", return_value=client
        ) as mock_redis:
            live = await PooledRedisDriver(config).connect()

        mock_pool.assert_called_once_with(
            host="localhost",
            port=6379,
            max_connections=4,
            timeout=3.0,
            decode_responses=True,
            password="pass",
            socket_timeout=3.0,
            socket_connect_timeout=3.0,
        )
        mock_redis.assert_called_once_with(connection_pool=pool)
        client.client.return_value.ping.assert_awaited_once()
        assert live.connection is client
        assert live.is_connected()

    @pytest.mark.asyncio
    async def test_connect_twice(self):
        driver = PooledRedisDriver(connection=make_client())
        with patch("redis_cache_driver.pooled.BlockingConnectionPool") as mock_pool:
            with pytest.raises(AlreadyConnected):
                await driver.connect()
            mock_pool.assert_not_called()

    @pytest.mark.asyncio
    async def test_connect_start_failure(self):
        """Test a pool that cannot reach redis fails with StartError."""
        pool = MagicMock()
        pool.disconnect = AsyncMock()
        lease = make_lease()
        lease.__aenter__.side_effect = redis_errors.ConnectionError("Connection refused")
        client = make_client(lease)

        with patch(
            "redis_cache_driver.pooled.BlockingConnectionPool", return_value=pool
        ), patch("redis_cache_driver.pooled.Redis", return_value=client):
            with pytest.raises(ConnectDriverError) as exc_info:
                await PooledRedisDriver().connect()

        assert exc_info.value.error == StartError()
        assert isinstance(exc_info.value.__cause__, redis_errors.ConnectionError)
        pool.disconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connect_start_timeout(self):
        """Test pool startup is bounded by its own timeout."""
        assert POOL_START_TIMEOUT_MS == 1000
        pool = MagicMock()
        pool.disconnect = AsyncMock()
        lease = make_lease()

        async def hang():
            await asyncio.sleep(10)

        lease.ping = AsyncMock(side_effect=hang)

        with patch(
            "redis_cache_driver.pooled.BlockingConnectionPool", return_value=pool
        ), patch(
            "redis_cache_driver.pooled.Redis", return_value=make_client(lease)
        ), patch("redis_cache_driver.pooled.POOL_START_TIMEOUT_MS", 20):
            with pytest.raises(ConnectDriverError) as exc_info:
                await PooledRedisDriver().connect()

        assert exc_info.value.error == StartError()

    @pytest.mark.asyncio
    async def test_disconnect(self):
        """Test disconnect leaves checked out connections alone."""
        client = make_client()
        driver = PooledRedisDriver(connection=client)

        closed = await driver.disconnect()

        assert client.connection_pool.disconnect.await_args_list == [
            call(inuse_connections=False),
            call(),
        ]
        assert closed.connection is None
        assert driver.connection is client

    @pytest.mark.asyncio
    async def test_disconnect_twice(self):
        closed = await PooledRedisDriver(connection=make_client()).disconnect()
        with pytest.raises(NotConnected):
            await closed.disconnect()

    @pytest.mark.asyncio
    async def test_disconnect_failure(self):
        client = make_client()
        client.connection_pool.disconnect.side_effect = redis_errors.ConnectionError("x")
        with pytest.raises(DisconnectDriverError) as exc_info:
            await PooledRedisDriver(connection=client).disconnect()
        assert exc_info.value.error == ShutdownError()

    @pytest.mark.asyncio
    async def test_disconnect_waits_for_checked_out_connection(self):
        """Test a connection in use during disconnect is closed once it is returned."""
        pool = BlockingConnectionPool(max_connections=2)
        busy = Connection()
        busy.disconnect = AsyncMock()
        pool._in_use_connections.add(busy)
        driver = PooledRedisDriver(connection=Redis(connection_pool=pool))

        async def finish_command():
            await asyncio.sleep(0.05)
            busy.disconnect.assert_not_awaited()
            await pool.release(busy)

        releaser = asyncio.ensure_future(finish_command())
        closed = await driver.disconnect()
        await releaser

        assert closed.connection is None
        assert not pool._in_use_connections
        busy.disconnect.assert_awaited()

    @pytest.mark.asyncio
    async def test_disconnect_times_out_on_connection_never_returned(self):
        pool = BlockingConnectionPool(max_connections=2)
        busy = Connection()
        busy.disconnect = AsyncMock()
        pool._in_use_connections.add(busy)
        driver = PooledRedisDriver(Config(timeout_ms=50), connection=Redis(connection_pool=pool))

        with pytest.raises(DisconnectDriverError) as exc_info:
            await driver.disconnect()

        assert exc_info.value.error == ShutdownError()
        busy.disconnect.assert_not_awaited()


class TestPooledDriverOperations:
    """Test operations check out and release one connection each."""

    @pytest.fixture
    def lease(self):
        return make_lease()

    @pytest.fixture
    def driver(self, lease):
        return PooledRedisDriver(connection=make_client(lease))

    @pytest.mark.asyncio
    async def test_set_uses_one_connection(self, driver, lease):
        """Test both set commands run on the same checked out connection."""
        await driver.set("type", "key", "value", ttl=5)

        driver.connection.client.assert_called_once()
        lease.initialize.assert_awaited_once()
        lease.set.assert_awaited_once_with("type:key", "value")
        lease.expire.assert_awaited_once_with("type:key", 5)
        lease.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_set_without_ttl(self, driver, lease):
        await driver.set("type", "key", "value")
        lease.persist.assert_awaited_once_with("type:key")

    @pytest.mark.asyncio
    async def test_set_key_vanished_releases_connection(self, driver, lease):
        lease.expire.return_value = False
        with pytest.raises(SetDriverError) as exc_info:
            await driver.set("type", "key", "value", ttl=5)
        assert exc_info.value.error == UnknownResponseError()
        lease.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get(self, driver, lease):
        assert await driver.get("type", "key") == "value"
        lease.get.assert_awaited_once_with("type:key")
        lease.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_miss_releases_connection(self, driver, lease):
        lease.get.return_value = None
        with pytest.raises(GotTooFewRecords):
            await driver.get("type", "key")
        lease.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_server_error_releases_connection(self, driver, lease):
        lease.get.side_effect = redis_errors.ResponseError("WRONGTYPE")
        with pytest.raises(GetDriverError) as exc_info:
            await driver.get("type", "key")
        assert exc_info.value.error == ServerError("WRONGTYPE")
        lease.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_missing_key(self, driver, lease):
        lease.delete.return_value = 0
        assert await driver.delete("type", "key") is None
        lease.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "operation, error_class",
        [
            (lambda d: d.set("type", "key", "value"), SetDriverError),
            (lambda d: d.get("type", "key"), GetDriverError),
            (lambda d: d.delete("type", "key"), DeleteDriverError),
        ],
    )
    async def test_pool_exhausted(self, driver, lease, operation, error_class):
        """Test a failed checkout surfaces as PoolError for every operation."""
        exhausted = redis_errors.ConnectionError("No connection available.")
        lease.initialize.side_effect = exhausted

        with pytest.raises(error_class) as exc_info:
            await operation(driver)

        assert exc_info.value.error == PoolError(exhausted)
        lease.get.assert_not_called()
        lease.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_concurrent_operations_get_own_connections(self):
        leases = [make_lease() for _ in range(3)]
        client = make_client()
        client.client.side_effect = leases
        driver = PooledRedisDriver(connection=client)

        results = await asyncio.gather(*(driver.get("type", str(i)) for i in range(3)))

        assert results == ["value"] * 3
        for lease in leases:
            lease.get.assert_awaited_once()
            lease.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_operation_on_disconnected_driver(self):
        with pytest.raises(DriverInvariantError):
            await PooledRedisDriver().get("type", "key")

    @pytest.mark.asyncio
    async def test_get_timeout_releases_connection(self, lease):
        """Test a command that outlives the timeout still returns its connection."""
        async def slow(key):
            await asyncio.sleep(10)

        lease.get = AsyncMock(side_effect=slow)
        driver = PooledRedisDriver(Config(timeout_ms=20), connection=make_client(lease))

        with pytest.raises(GetDriverError) as exc_info:
            await driver.get("type", "key")

        assert isinstance(exc_info.value.error, TCPError)
        lease.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_set_expiry_timeout_releases_connection(self, lease):
        async def slow(key, seconds):
            await asyncio.sleep(10)

        lease.expire = AsyncMock(side_effect=slow)
        driver = PooledRedisDriver(Config(timeout_ms=20), connection=make_client(lease))

        with pytest.raises(SetDriverError) as exc_info:
            await driver.set("type", "key", "value", ttl=5)

        assert isinstance(exc_info.value.error, TCPError)
        lease.set.assert_awaited_once_with("type:key", "value")
        lease.aclose.assert_awaited_once()
