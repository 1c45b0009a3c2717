"""
Standalone replication consumer.

Runs only the topic consumer, without the HTTP API or the producer, until
SIGINT or SIGTERM. Usage: python consumer_worker.py
"""
import asyncio
import signal

from core.config import Settings, settings
from core.kafka import consumer_factory
from core.logging import build_logger
from services.replication import CancellationToken, ReplicationConsumer


async def run_consumer(settings: Settings, shutdown: CancellationToken) -> None:
    logger = build_logger(settings.LOG_LEVEL, settings.LOG_FORMAT, name="calendar-consumer")

    problems = [p for p in settings.validate() if "DSN" not in p]
    if problems and not settings.is_local:
        raise RuntimeError(f"Invalid configuration: {'; '.join(problems)}")

    consumer = ReplicationConsumer(
        reader_factory=consumer_factory(settings, logger.get_child("kafka")),
        logger=logger,
        read_timeout=settings.CONSUMER_READ_TIMEOUT_SECONDS,
        retry_backoff=settings.CONSUMER_RETRY_BACKOFF_SECONDS,
    )

    logger.info("Starting replication consumer worker...", metadata={"topic": settings.KAFKA_TOPIC_EVENTS})
    await consumer.start(shutdown)
    try:
        await shutdown.wait()
    finally:
        logger.info("Stopping replication consumer worker...")
        try:
            await consumer.stop(timeout=settings.SHUTDOWN_TIMEOUT_SECONDS)
        except Exception as e:
            logger.error("error stopping replication consumer", exception=e)
        logger.info("Replication consumer worker stopped.")


async def main():
    shutdown = CancellationToken()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown.cancel)
    await run_consumer(settings, shutdown)


def cli():
    asyncio.run(main())


if __name__ == "__main__":
    cli()
