import socket

import pytest

REDIS_HOST = "localhost"
REDIS_PORT = 6379


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: requires a redis server on localhost:6379"
    )


def _redis_reachable() -> bool:
    try:
        with socket.create_connection((REDIS_HOST, REDIS_PORT), timeout=0.5):
            return True
    except OSError:
        return False


@pytest.fixture(scope="session")
def redis_server():
    """Skip the requesting test unless a redis server is listening locally."""
    if not _redis_reachable():
        pytest.skip(f"No redis server at {REDIS_HOST}:{REDIS_PORT}")
    return REDIS_HOST, REDIS_PORT
