import asyncio
import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError

# Import configuration
from core.config import Settings, settings as default_settings
from core.database import DatabaseManager
from core.kafka import KafkaConsumer, KafkaProducer, consumer_factory, producer_factory
from core.logging import StructuredLogger, build_logger
from core.migrations import apply_migrations
# Import exceptions and handlers
from core.exceptions import (
    APIException,
    api_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    sqlalchemy_exception_handler,
    general_exception_handler
)
from routes.events import router as events_router
from routes.health import router as health_router
from services.replication import CancellationToken, ReplicationConsumer, ReplicationProducer


async def stop_components(components, timeout: float, logger: StructuredLogger):
    """Stops every component concurrently within one shared deadline."""
    components = [c for c in components if c is not None]
    results = await asyncio.gather(
        *(c.stop(timeout=timeout) for c in components),
        return_exceptions=True,
    )
    for component, result in zip(components, results):
        if isinstance(result, BaseException):
            logger.error(f"error stopping {component.name}", exception=result)


def create_app(
    settings: Optional[Settings] = None,
    logger: Optional[StructuredLogger] = None,
    writer_factory: Optional[Callable[[], KafkaProducer]] = None,
    reader_factory: Optional[Callable[[], KafkaConsumer]] = None,
) -> FastAPI:
    settings = settings or default_settings
    logger = logger or build_logger(settings.LOG_LEVEL, settings.LOG_FORMAT)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup event
        # Validate configuration first
        logger.info("Validating environment configuration...")
        problems = settings.validate()
        if problems:
            for problem in problems:
                logger.error("Invalid configuration", metadata={"problem": problem})
            # For local development, just warn instead of failing
            if settings.is_local:
                logger.warning("Continuing with invalid configuration in local mode")
            else:
                raise RuntimeError(f"Invalid configuration: {'; '.join(problems)}")

        db = DatabaseManager(logger.get_child("database"))
        db.initialize(settings.SQLALCHEMY_DATABASE_URI, settings.is_local)
        app.state.db = db

        try:
            await db.ping()
            logger.info("Database connection established")
            if settings.AUTO_MIGRATE:
                await apply_migrations(db.engine, logger)
        except Exception as e:
            logger.critical("Database initialization failed", exception=e)
            await db.dispose()
            raise

        shutdown = CancellationToken()
        producer = consumer = None
        if settings.REPLICATION_ENABLED:
            producer = ReplicationProducer(
                session_factory=db.session_factory,
                writer_factory=writer_factory or producer_factory(settings, logger.get_child("kafka")),
                logger=logger.get_child("producer"),
                topic=settings.KAFKA_TOPIC_EVENTS,
                interval=settings.REPLICATION_INTERVAL_SECONDS,
            )
            consumer = ReplicationConsumer(
                reader_factory=reader_factory or consumer_factory(settings, logger.get_child("kafka")),
                logger=logger.get_child("consumer"),
                read_timeout=settings.CONSUMER_READ_TIMEOUT_SECONDS,
                retry_backoff=settings.CONSUMER_RETRY_BACKOFF_SECONDS,
            )
            try:
                await producer.start(shutdown)
                await consumer.start(shutdown)
            except Exception as e:
                logger.critical("Failed to start replication", exception=e)
                shutdown.cancel()
                await stop_components([consumer, producer], settings.SHUTDOWN_TIMEOUT_SECONDS, logger)
                await db.dispose()
                raise
        else:
            logger.info("Replication disabled")

        app.state.producer = producer
        app.state.consumer = consumer
        logger.info(
            "Calendar API started",
            metadata={"host": settings.HTTP_HOST, "port": settings.HTTP_PORT, "environment": settings.ENVIRONMENT},
        )

        yield

        # Shutdown event
        logger.info("Shutting down...")
        shutdown.cancel()
        await stop_components([consumer, producer], settings.SHUTDOWN_TIMEOUT_SECONDS, logger)
        await db.dispose()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="Calendar API",
        description="Calendar events with periodic replication to Kafka.",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.logger = logger

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        logger.log_request(
            request.method,
            request.url.path,
            duration_ms=round((time.time() - start_time) * 1000, 2),
            status_code=response.status_code,
        )
        return response

    app.include_router(events_router)
    app.include_router(health_router)

    # Register exception handlers
    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=default_settings.HTTP_HOST, port=default_settings.HTTP_PORT)
