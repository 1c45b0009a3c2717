from sqlalchemy.orm import declarative_base
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, AsyncEngine, async_sessionmaker
from sqlalchemy import text, Column, String, DateTime, TypeDecorator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
import time
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional
from fastapi import Request

from core.logging import StructuredLogger
from core.exceptions.api_exceptions import DatabaseException

Base = declarative_base()
CHAR_LENGTH = 255


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetime.

    Uses TIMESTAMP WITH TIME ZONE where the backend has it. Backends that
    store naive values (SQLite) get UTC written in and UTC attached on the
    way out, so callers always see aware datetimes.
    """
    impl = DateTime(timezone=True)

    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == 'sqlite':
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseModel(Base):
    """Base model with an opaque string primary key and timestamps"""
    __abstract__ = True

    id = Column(String(CHAR_LENGTH), primary_key=True)
    created_at = Column(UTCDateTime(), nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime(), nullable=False, default=utcnow)


class DatabaseManager:
    """Database manager owning the engine and session factory."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None
        self._connection_failures = 0

    def initialize(self, database_uri: str, env_is_local: bool = False):
        """Initializes the database engine and session factory."""
        if self.engine and self.session_factory:  # Prevent re-initialization
            return

        if database_uri.startswith("sqlite"):
            # One shared in-process connection; pool sizing does not apply.
            engine = create_async_engine(
                database_uri,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        else:
            engine = create_async_engine(
                database_uri,
                echo=False,
                pool_pre_ping=True,
                pool_recycle=3600,
                pool_size=25,
                max_overflow=0,
                pool_timeout=30
            )

        self.set_engine(engine)
        self.logger.info(
            "Database engine initialized",
            metadata={"dialect": engine.dialect.name, "local": env_is_local},
        )

    def set_engine(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

    async def ping(self):
        """Fails fast at startup when the database is unreachable."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def health_check(self) -> dict:
        """Perform database health check."""
        if not self.engine or not self.session_factory:
            return {"status": "uninitialized", "message": "Database not initialized."}

        start_time = time.time()

        try:
            await self.ping()
            self._connection_failures = 0
            return {
                "status": "healthy",
                "response_time_ms": (time.time() - start_time) * 1000,
            }

        except SQLAlchemyError as e:
            self._connection_failures += 1
            self.logger.error(
                "Database health check failed",
                metadata={"connection_failures": self._connection_failures},
                exception=e,
            )
            return {
                "status": "unhealthy",
                "response_time_ms": (time.time() - start_time) * 1000,
                "connection_failures": self._connection_failures,
                "error": str(e),
            }

    async def dispose(self):
        if self.engine is not None:
            await self.engine.dispose()
            self.logger.info("Database engine disposed")
            self.engine = None
            self.session_factory = None


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped database session from the application's DatabaseManager."""
    db_manager: DatabaseManager = request.app.state.db
    if not db_manager.session_factory:
        raise DatabaseException(message="Database session factory not initialized.")

    async with db_manager.session_factory() as session:
        yield session
