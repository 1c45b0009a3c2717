import sys
import os
import pytest

# Add the backend directory to the Python path
# This is necessary for pytest to find the 'main' module and other packages
backend_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if backend_dir not in sys.path:
    sys.path.insert(0, backend_dir)

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from core.config import Settings
from core.database import Base, DatabaseManager
from tests.fakes import LogCapture

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
def log_capture():
    return LogCapture()


@pytest.fixture
async def db_manager(log_capture):
    """In-memory SQLite database with the schema applied"""
    manager = DatabaseManager(log_capture.logger)
    manager.set_engine(
        create_async_engine(
            TEST_DATABASE_URL,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    )
    async with manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield manager
    await manager.dispose()


@pytest.fixture
def session_factory(db_manager):
    return db_manager.session_factory


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def test_settings():
    settings = Settings()
    settings.ENVIRONMENT = "local"
    settings.POSTGRES_DB_URL = TEST_DATABASE_URL
    settings.AUTO_MIGRATE = True
    settings.REPLICATION_ENABLED = False
    settings.KAFKA_TOPIC_EVENTS = "calendar-events"
    settings.REPLICATION_INTERVAL_SECONDS = 0.05
    settings.CONSUMER_READ_TIMEOUT_SECONDS = 0.05
    settings.CONSUMER_RETRY_BACKOFF_SECONDS = 0.01
    settings.SHUTDOWN_TIMEOUT_SECONDS = 1.0
    return settings


@pytest.fixture
async def app(test_settings, log_capture):
    from main import create_app

    application = create_app(settings=test_settings, logger=log_capture.logger)
    async with application.router.lifespan_context(application):
        yield application


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
