"""
Test configuration and shared fixtures for the RideMyLay realtime test suite.
"""

import os

# Must be set before any ridemylay module reads configuration
os.environ.setdefault("LOGGING_ENVIRONMENT", "unit_test")
os.environ.setdefault("LOGGING_LOG_BASE", "logs")
os.environ.setdefault("AUTH_JWT_SECRET", "test-jwt-secret-key-for-testing-only")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SERVER_PORT", "54731")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from ridemylay.config import AuthConfig, ClientConfig, DatabaseConfig, NotificationConfig  # noqa: E402
from ridemylay.persistence import DatabaseManager, RealtimeStore  # noqa: E402

from .fakes import FakeClock, TransportFactory  # noqa: E402


@pytest.fixture
def fast_client_config() -> ClientConfig:
    """Client settings with zero retry delays; the heartbeat loop never fires on its own."""
    return ClientConfig(
        server_url="http://testserver",
        max_reconnect_attempts=30,
        reconnect_delay=0.0,
        backoff_base=0.0,
        backoff_ceiling=0.0,
        connect_timeout=1.0,
        heartbeat_interval=3600.0,
        heartbeat_timeout=30.0,
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transport_factory() -> TransportFactory:
    return TransportFactory()


@pytest.fixture
def auth_config() -> AuthConfig:
    return AuthConfig(jwt_secret="unit-test-secret", jwt_algorithm="HS256")


@pytest.fixture
def notification_config() -> NotificationConfig:
    return NotificationConfig(retention_days=30, page_size=30, preview_length=50)


@pytest_asyncio.fixture
async def database():
    """Fresh in-memory SQLite database with the full schema."""
    db = DatabaseManager(DatabaseConfig(url="sqlite+aiosqlite:///:memory:"))
    await db.create_schema()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def store(database) -> RealtimeStore:
    return RealtimeStore.from_database(database)
