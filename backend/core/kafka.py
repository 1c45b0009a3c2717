"""
Kafka transport adapters.

Thin wrappers over aiokafka's producer and consumer that translate broker
failures into TransportError and guarantee the underlying client is closed
at most once.
"""
import asyncio
from typing import List, Optional, Union

from aiokafka import AIOKafkaProducer, AIOKafkaConsumer, ConsumerRecord
from aiokafka.errors import KafkaError

from core.config import Settings
from core.exceptions.errors import TransportError
from core.logging import StructuredLogger


class KafkaProducer:
    """Writer side: publishes raw bytes to a topic."""

    def __init__(
        self,
        bootstrap_servers: Union[str, List[str]],
        logger: StructuredLogger,
        request_timeout_ms: int = 10000,
    ):
        self.logger = logger
        self.producer = AIOKafkaProducer(
            bootstrap_servers=bootstrap_servers,
            acks=1,
            request_timeout_ms=request_timeout_ms,
        )
        self._started = False
        self._closed = False

    async def start(self):
        self.logger.info("Starting Kafka Producer...")
        try:
            await self.producer.start()
        except KafkaError as e:
            raise TransportError(f"failed to start kafka producer: {e}") from e
        self._started = True
        self.logger.info("Kafka Producer started.")

    async def stop(self):
        """Closes the producer. Later calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        self.logger.info("Stopping Kafka Producer...")
        await self.producer.stop()
        self.logger.info("Kafka Producer stopped.")

    @property
    def closed(self) -> bool:
        return self._closed

    async def send_message(self, topic: str, value: bytes, key: Optional[str] = None):
        if self._closed or not self._started:
            raise TransportError(f"producer is not running, cannot send to '{topic}'")
        try:
            key_bytes = key.encode('utf-8') if key else None
            await self.producer.send_and_wait(topic, value, key=key_bytes)
        except KafkaError as e:
            raise TransportError(f"failed to write message to topic '{topic}': {e}") from e


class KafkaConsumer:
    """Reader side: pulls one record at a time from a topic."""

    def __init__(
        self,
        topic: str,
        bootstrap_servers: Union[str, List[str]],
        group_id: str,
        logger: StructuredLogger,
        auto_offset_reset: str = "latest",
    ):
        self.topic = topic
        self.group_id = group_id
        self.logger = logger
        self.consumer = AIOKafkaConsumer(
            topic,
            bootstrap_servers=bootstrap_servers,
            group_id=group_id,
            auto_offset_reset=auto_offset_reset,
            enable_auto_commit=True,
            auto_commit_interval_ms=1000,
        )
        self._started = False
        self._closed = False

    async def start(self):
        self.logger.info(
            "Starting Kafka Consumer...",
            metadata={"topic": self.topic, "group_id": self.group_id},
        )
        try:
            await self.consumer.start()
        except KafkaError as e:
            raise TransportError(f"failed to start kafka consumer: {e}") from e
        self._started = True
        self.logger.info("Kafka Consumer started.")

    async def stop(self):
        """Closes the consumer. Later calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        self.logger.info("Stopping Kafka Consumer...")
        await self.consumer.stop()
        self.logger.info("Kafka Consumer stopped.")

    @property
    def closed(self) -> bool:
        return self._closed

    async def read_message(self, timeout: float) -> Optional[ConsumerRecord]:
        """Returns the next record, or None when nothing arrived within timeout."""
        if self._closed or not self._started:
            raise TransportError(f"consumer is not running, cannot read from '{self.topic}'")
        try:
            return await asyncio.wait_for(self.consumer.getone(), timeout=timeout)
        except asyncio.TimeoutError:
            return None
        except KafkaError as e:
            raise TransportError(f"failed to read message from topic '{self.topic}': {e}") from e


def producer_factory(settings: Settings, logger: StructuredLogger):
    """Returns a callable building a fresh KafkaProducer for each start."""
    def build() -> KafkaProducer:
        return KafkaProducer(
            bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
            logger=logger,
            request_timeout_ms=settings.KAFKA_REQUEST_TIMEOUT_MS,
        )
    return build


def consumer_factory(settings: Settings, logger: StructuredLogger):
    """Returns a callable building a fresh KafkaConsumer for each start."""
    def build() -> KafkaConsumer:
        return KafkaConsumer(
            topic=settings.KAFKA_TOPIC_EVENTS,
            bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
            group_id=settings.KAFKA_CONSUMER_GROUP,
            logger=logger,
            auto_offset_reset=settings.KAFKA_AUTO_OFFSET_RESET,
        )
    return build
