"""In-memory stand-ins and factories shared by the test suite."""
import io
import json
import time
import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from aiokafka import ConsumerRecord

from core.exceptions.errors import TransportError
from core.logging import StructuredLogger
from core.utils.uuid_utils import uuid7_str
from models.event import Event


class LogCapture:
    """StructuredLogger writing JSON lines into memory"""

    def __init__(self):
        self.stream = io.StringIO()
        self.logger = StructuredLogger(
            name=f"test.{uuid7_str()}",
            level="debug",
            log_format="json",
            stream=self.stream,
        )

    def records(self) -> List[Dict[str, Any]]:
        return [json.loads(line) for line in self.stream.getvalue().splitlines() if line.strip()]

    def messages(self, level: Optional[str] = None) -> List[str]:
        return [r["message"] for r in self.records() if level is None or r["level"] == level.upper()]

    def find(self, message: str) -> List[Dict[str, Any]]:
        return [r for r in self.records() if r["message"] == message]


class FakeWriter:
    """In-memory stand-in for core.kafka.KafkaProducer"""

    def __init__(self, fail_keys=None, fail_start: bool = False):
        self.sent: List[Dict[str, Any]] = []
        self.fail_keys = set(fail_keys or ())
        self.fail_start = fail_start
        self.start_calls = 0
        self.stop_calls = 0
        self.closed = False

    async def start(self):
        self.start_calls += 1
        if self.fail_start:
            raise TransportError("broker unreachable")

    async def stop(self):
        self.stop_calls += 1
        self.closed = True

    async def send_message(self, topic: str, value: bytes, key: Optional[str] = None):
        if self.closed:
            raise TransportError("producer is closed")
        if key in self.fail_keys:
            raise TransportError(f"failed to write message to topic '{topic}'")
        self.sent.append({"topic": topic, "value": value, "key": key})


class FakeReader:
    """In-memory stand-in for core.kafka.KafkaConsumer.

    Queued items are returned in order; an exception instance is raised
    instead of returned. An empty queue behaves like a read timeout.
    """

    def __init__(self, items=None):
        self.items = list(items or [])
        self.reads = 0
        self.stop_calls = 0
        self.closed = False

    async def start(self):
        pass

    async def stop(self):
        self.stop_calls += 1
        self.closed = True

    async def read_message(self, timeout: float):
        self.reads += 1
        if self.closed:
            raise TransportError("consumer is closed")
        if not self.items:
            await asyncio.sleep(min(timeout, 0.01))
            return None
        item = self.items.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


def make_record(value: Optional[bytes], offset: int = 0, partition: int = 0, key: Optional[bytes] = None) -> ConsumerRecord:
    """Create a Kafka ConsumerRecord carrying a raw payload"""
    return ConsumerRecord(
        topic="calendar-events",
        partition=partition,
        offset=offset,
        timestamp=int(time.time() * 1000),
        timestamp_type=0,
        key=key,
        value=value,
        checksum=None,
        serialized_key_size=len(key) if key else -1,
        serialized_value_size=len(value) if value else -1,
        headers=[],
    )


def make_event(
    owner_id: str = "u1",
    title: str = "Standup",
    description: str = "daily sync",
    start_time: datetime = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc),
    end_time: datetime = datetime(2024, 1, 1, 9, 15, tzinfo=timezone.utc),
    event_id: Optional[str] = None,
) -> Event:
    return Event(
        id=event_id or uuid7_str(),
        title=title,
        description=description,
        start_time=start_time,
        end_time=end_time,
        owner_id=owner_id,
    )


async def wait_for(predicate, timeout: float = 2.0, interval: float = 0.01):
    """Polls predicate until it is truthy or the timeout expires"""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(interval)

