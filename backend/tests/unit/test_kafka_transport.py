import asyncio
import pytest
from unittest.mock import AsyncMock, patch

from aiokafka.errors import KafkaConnectionError, KafkaError

from core.exceptions.errors import TransportError
from core.kafka import KafkaConsumer, KafkaProducer, consumer_factory, producer_factory
from tests.fakes import make_record


@pytest.fixture
def mock_aiokafka_producer():
    with patch("core.kafka.AIOKafkaProducer") as cls:
        client = AsyncMock()
        cls.return_value = client
        yield client


@pytest.fixture
def mock_aiokafka_consumer():
    with patch("core.kafka.AIOKafkaConsumer") as cls:
        client = AsyncMock()
        cls.return_value = client
        yield client


class TestKafkaProducer:

    async def test_send_encodes_key(self, mock_aiokafka_producer, log_capture):
        producer = KafkaProducer(["kafka:29092"], log_capture.logger)
        await producer.start()

        await producer.send_message("calendar-events", b"{}", key="evt-1")

        mock_aiokafka_producer.send_and_wait.assert_awaited_once_with("calendar-events", b"{}", key=b"evt-1")

    async def test_kafka_error_becomes_transport_error(self, mock_aiokafka_producer, log_capture):
        mock_aiokafka_producer.send_and_wait.side_effect = KafkaError("leader not available")
        producer = KafkaProducer(["kafka:29092"], log_capture.logger)
        await producer.start()

        with pytest.raises(TransportError):
            await producer.send_message("calendar-events", b"{}", key="evt-1")

    async def test_start_failure_becomes_transport_error(self, mock_aiokafka_producer, log_capture):
        mock_aiokafka_producer.start.side_effect = KafkaConnectionError("unreachable")
        producer = KafkaProducer(["kafka:29092"], log_capture.logger)

        with pytest.raises(TransportError):
            await producer.start()

    async def test_stop_closes_once(self, mock_aiokafka_producer, log_capture):
        producer = KafkaProducer(["kafka:29092"], log_capture.logger)
        await producer.start()

        await producer.stop()
        await producer.stop()

        mock_aiokafka_producer.stop.assert_awaited_once()
        assert producer.closed

    async def test_send_after_close_fails(self, mock_aiokafka_producer, log_capture):
        producer = KafkaProducer(["kafka:29092"], log_capture.logger)
        await producer.start()
        await producer.stop()

        with pytest.raises(TransportError):
            await producer.send_message("calendar-events", b"{}", key="evt-1")
        mock_aiokafka_producer.send_and_wait.assert_not_awaited()


class TestKafkaConsumer:

    async def test_read_returns_record(self, mock_aiokafka_consumer, log_capture):
        record = make_record(b"{}", offset=3)
        mock_aiokafka_consumer.getone.return_value = record
        consumer = KafkaConsumer("calendar-events", ["kafka:29092"], "group", log_capture.logger)
        await consumer.start()

        assert await consumer.read_message(timeout=1) is record

    async def test_read_timeout_returns_none(self, mock_aiokafka_consumer, log_capture):
        async def never():
            await asyncio.sleep(3600)

        mock_aiokafka_consumer.getone.side_effect = never
        consumer = KafkaConsumer("calendar-events", ["kafka:29092"], "group", log_capture.logger)
        await consumer.start()

        assert await consumer.read_message(timeout=0.01) is None

    async def test_kafka_error_becomes_transport_error(self, mock_aiokafka_consumer, log_capture):
        mock_aiokafka_consumer.getone.side_effect = KafkaError("coordinator not available")
        consumer = KafkaConsumer("calendar-events", ["kafka:29092"], "group", log_capture.logger)
        await consumer.start()

        with pytest.raises(TransportError):
            await consumer.read_message(timeout=1)

    async def test_read_after_close_fails(self, mock_aiokafka_consumer, log_capture):
        consumer = KafkaConsumer("calendar-events", ["kafka:29092"], "group", log_capture.logger)
        await consumer.start()
        await consumer.stop()
        await consumer.stop()

        with pytest.raises(TransportError):
            await consumer.read_message(timeout=1)
        mock_aiokafka_consumer.stop.assert_awaited_once()


class TestFactories:

    def test_factories_build_fresh_clients(self, test_settings, log_capture):
        with patch("core.kafka.AIOKafkaProducer"), patch("core.kafka.AIOKafkaConsumer") as consumer_cls:
            build_writer = producer_factory(test_settings, log_capture.logger)
            build_reader = consumer_factory(test_settings, log_capture.logger)

            assert build_writer() is not build_writer()
            reader = build_reader()

        assert reader.topic == test_settings.KAFKA_TOPIC_EVENTS
        assert consumer_cls.call_args.kwargs["group_id"] == test_settings.KAFKA_CONSUMER_GROUP
        assert consumer_cls.call_args.kwargs["auto_offset_reset"] == test_settings.KAFKA_AUTO_OFFSET_RESET
