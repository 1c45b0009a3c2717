"""
Replication producer.

On a fixed interval it reads every event from the store and publishes one
snapshot per event to the replication topic, keyed by event id so that all
snapshots of one event land on the same partition. Nothing is remembered
between ticks: every tick is a full sweep.
"""
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from core.database import utcnow
from core.exceptions.errors import TransportError
from core.kafka import KafkaProducer
from core.logging import StructuredLogger
from services.event_store import EventStore
from services.replication.lifecycle import (
    BackgroundService,
    CancellationToken,
    run_until_cancelled,
    sleep_or_cancel,
)
from services.replication.messages import ReplicationMessage


class ReplicationProducer(BackgroundService):
    name = "replication producer"

    def __init__(
        self,
        session_factory: async_sessionmaker,
        writer_factory: Callable[[], KafkaProducer],
        logger: StructuredLogger,
        topic: str,
        interval: float = 10.0,
    ):
        super().__init__(logger)
        self.session_factory = session_factory
        self.writer_factory = writer_factory
        self.topic = topic
        self.interval = interval

    def _create_transport(self) -> KafkaProducer:
        return self.writer_factory()

    async def _run(self, token: CancellationToken, writer: KafkaProducer) -> None:
        self.logger.info(
            "replication producer loop started",
            metadata={"topic": self.topic, "interval_seconds": self.interval},
        )
        while not await sleep_or_cancel(token, self.interval):
            await self._tick(token, writer)

    async def tick(self, token: Optional[CancellationToken] = None) -> int:
        """Runs one sweep now with the current writer. Returns the number of events published."""
        writer = self._transport
        if writer is None:
            raise TransportError(f"{self.name} is not running")
        return await self._tick(token or CancellationToken(), writer)

    async def _tick(self, token: CancellationToken, writer: KafkaProducer) -> int:
        try:
            async with self.session_factory() as db:
                events = await EventStore(db).list_all()
        except Exception as e:
            self.logger.error("failed to get events from DB", exception=e)
            return 0

        if not events:
            self.logger.debug("no events to send")
            return 0

        self.logger.info("sending events to kafka", metadata={"count": len(events), "topic": self.topic})

        sent = 0
        for event in events:
            if token.cancelled:
                self.logger.info(
                    "tick interrupted by cancellation",
                    metadata={"sent": sent, "remaining": len(events) - sent},
                )
                break

            message = ReplicationMessage.from_event(event, sent_at=utcnow())
            try:
                completed, _ = await run_until_cancelled(
                    writer.send_message(self.topic, message.to_bytes(), key=event.id),
                    token,
                )
            except Exception as e:
                if token.cancelled:
                    # The writer may already be closed by a shutdown past its deadline
                    self.logger.debug(
                        "publish failed during shutdown",
                        metadata={"event_id": event.id, "error": str(e)},
                    )
                    break
                self.logger.error(
                    "failed to send event message",
                    metadata={"event_id": event.id, "topic": self.topic},
                    exception=e,
                )
                continue

            if not completed:
                break
            sent += 1
            self.logger.debug("event sent to kafka", metadata={"event_id": event.id, "title": event.title})

        return sent
