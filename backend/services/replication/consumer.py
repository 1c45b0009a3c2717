"""
Replication consumer.

Reads event snapshots from the replication topic and turns each one into a
structured log record. Malformed payloads are logged and dropped; broker
errors are retried after a short backoff.
"""
from typing import Callable, Optional

from aiokafka import ConsumerRecord

from core.database import utcnow
from core.exceptions.errors import TransportError
from core.kafka import KafkaConsumer
from core.logging import StructuredLogger
from services.replication.lifecycle import (
    BackgroundService,
    CancellationToken,
    run_until_cancelled,
    sleep_or_cancel,
)
from services.replication.messages import ReplicationMessage


class ReplicationConsumer(BackgroundService):
    name = "replication consumer"

    def __init__(
        self,
        reader_factory: Callable[[], KafkaConsumer],
        logger: StructuredLogger,
        read_timeout: float = 5.0,
        retry_backoff: float = 1.0,
    ):
        super().__init__(logger)
        self.reader_factory = reader_factory
        self.read_timeout = read_timeout
        self.retry_backoff = retry_backoff

    def _create_transport(self) -> KafkaConsumer:
        return self.reader_factory()

    async def _run(self, token: CancellationToken, reader: KafkaConsumer) -> None:
        self.logger.info(
            "replication consumer loop started",
            metadata={"read_timeout_seconds": self.read_timeout},
        )
        while not token.cancelled:
            try:
                completed, record = await run_until_cancelled(reader.read_message(self.read_timeout), token)
            except TransportError as e:
                if token.cancelled:
                    break
                self.logger.error("failed to read message", exception=e)
                if await sleep_or_cancel(token, self.retry_backoff):
                    break
                continue

            if not completed:
                break
            if record is None:
                # read timeout, poll again
                continue
            self.handle_message(record)

    def handle_message(self, record: ConsumerRecord) -> Optional[ReplicationMessage]:
        """Decodes and logs one record. Returns None when the payload is malformed."""
        position = {"offset": record.offset, "partition": record.partition}
        try:
            message = ReplicationMessage.from_bytes(record.value)
        except ValueError as e:
            self.logger.error("failed to unmarshal event message", metadata=position, exception=e)
            return None

        if message.sent_at is None:
            message.sent_at = utcnow()

        self.logger.info("received event from kafka", metadata={**message.log_fields(), **position})
        self.logger.info("event message text", metadata={"text": message.summary()})
        return message
