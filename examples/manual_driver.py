import asyncio
import logging

from redis_cache_driver import (
    CacheError,
    Config,
    GotTooFewRecords,
    PooledRedisDriver,
    connected,
)

logging.basicConfig(level=logging.DEBUG)


async def main():
    """Walk through the driver operations against a local server"""
    print("=== Redis Cache Driver Test ===\n")

    config = Config.from_url("redis://localhost:6379", timeout_ms=2000, pool_size=4)

    try:
        async with connected(PooledRedisDriver(config)) as driver:
            print("✓ Connected to redis")

            print("\n--- Testing SET operations ---")
            await driver.set("user", "42", "hello world", ttl=60)
            print("Set 'user:42' with 60s TTL: ✓")
            await driver.set("user", "43", "no expiry")
            print("Set 'user:43' without TTL: ✓")

            print("\n--- Testing GET operations ---")
            print(f"Get 'user:42': {await driver.get('user', '42')}")
            print(f"Get 'user:43': {await driver.get('user', '43')}")
            try:
                await driver.get("user", "missing")
            except GotTooFewRecords:
                print("Get 'user:missing': cache miss")

            print("\n--- Testing DELETE operations ---")
            await driver.delete("user", "42")
            print("Delete 'user:42': ✓")
            await driver.delete("user", "missing")
            print("Delete 'user:missing' (never set): ✓")
            await driver.delete("user", "43")

    except CacheError as e:
        print(f"✗ Cache error: {e!r}")


if __name__ == "__main__":
    asyncio.run(main())
