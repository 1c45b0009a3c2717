import io
import json
import pytest

from core.config import Settings, parse_bool, parse_brokers
from core.logging import LogFormat, LogLevel, StructuredLogger, parse_format, parse_level


class TestParsers:

    @pytest.mark.parametrize("raw, expected", [
        ("kafka1:9092,kafka2:9092", ["kafka1:9092", "kafka2:9092"]),
        ('["kafka1:9092", "kafka2:9092"]', ["kafka1:9092", "kafka2:9092"]),
        (" kafka:29092 ", ["kafka:29092"]),
        ("", []),
    ])
    def test_parse_brokers(self, raw, expected):
        assert parse_brokers(raw) == expected

    @pytest.mark.parametrize("raw, expected", [
        ("true", True), ("1", True), ("YES", True), ("false", False), ("", False), ("nope", False),
    ])
    def test_parse_bool(self, raw, expected):
        assert parse_bool(raw) is expected

    @pytest.mark.parametrize("raw, expected", [
        ("debug", LogLevel.DEBUG),
        ("INFO", LogLevel.INFO),
        ("warn", LogLevel.WARNING),
        ("warning", LogLevel.WARNING),
        ("error", LogLevel.ERROR),
        ("verbose", LogLevel.INFO),
        (None, LogLevel.INFO),
    ])
    def test_parse_level(self, raw, expected):
        assert parse_level(raw) is expected

    def test_parse_format_falls_back_to_json(self):
        assert parse_format("detailed") is LogFormat.DETAILED
        assert parse_format("xml") is LogFormat.JSON


class TestSettings:

    def test_defaults(self):
        settings = Settings()
        assert settings.KAFKA_TOPIC_EVENTS
        assert settings.REPLICATION_INTERVAL_SECONDS > 0

    def test_database_url_takes_precedence(self):
        settings = Settings()
        settings.POSTGRES_DB_URL = "sqlite+aiosqlite://"
        assert settings.SQLALCHEMY_DATABASE_URI == "sqlite+aiosqlite://"

    def test_database_url_from_components(self):
        settings = Settings()
        settings.POSTGRES_DB_URL = ""
        settings.POSTGRES_USER = "cal"
        settings.POSTGRES_PASSWORD = "secret"
        settings.POSTGRES_SERVER = "db"
        settings.POSTGRES_PORT = 5433
        settings.POSTGRES_DB = "calendar"
        assert settings.SQLALCHEMY_DATABASE_URI == "postgresql+asyncpg://cal:secret@db:5433/calendar"

    def test_validate_reports_problems(self):
        settings = Settings()
        settings.REPLICATION_ENABLED = True
        settings.KAFKA_BOOTSTRAP_SERVERS = []
        settings.KAFKA_TOPIC_EVENTS = ""
        settings.REPLICATION_INTERVAL_SECONDS = 0

        problems = settings.validate()

        assert "KAFKA_BOOTSTRAP_SERVERS is empty" in problems
        assert "KAFKA_TOPIC_EVENTS is empty" in problems
        assert "REPLICATION_INTERVAL_SECONDS must be positive" in problems

    def test_validate_ignores_kafka_when_replication_disabled(self):
        settings = Settings()
        settings.REPLICATION_ENABLED = False
        settings.KAFKA_BOOTSTRAP_SERVERS = []
        assert settings.validate() == []


class TestStructuredLogger:

    def test_json_entry(self):
        stream = io.StringIO()
        logger = StructuredLogger(name="test.json-entry", level="info", stream=stream)

        logger.info("event created", metadata={"event_id": "evt-1"})

        entry = json.loads(stream.getvalue())
        assert entry["level"] == "INFO"
        assert entry["message"] == "event created"
        assert entry["metadata"] == {"event_id": "evt-1"}
        assert entry["service"] == "calendar-api"
        assert entry["logger"] == "test.json-entry"

    def test_level_filtering(self):
        stream = io.StringIO()
        logger = StructuredLogger(name="test.level-filter", level="warn", stream=stream)

        logger.info("hidden")
        logger.warning("shown")

        lines = stream.getvalue().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["message"] == "shown"

    def test_exception_details(self):
        stream = io.StringIO()
        logger = StructuredLogger(name="test.exception", stream=stream)
        try:
            raise RuntimeError("boom")
        except RuntimeError as e:
            logger.error("failed", exception=e)

        entry = json.loads(stream.getvalue())
        assert entry["exception"]["type"] == "RuntimeError"
        assert entry["exception"]["message"] == "boom"
        assert "Traceback" in entry["exception"]["traceback"]

    def test_does_not_propagate_to_root(self, caplog):
        logger = StructuredLogger(name="test.no-propagate", stream=io.StringIO())
        logger.error("isolated")
        assert "isolated" not in caplog.text

    def test_child_shares_stream(self):
        stream = io.StringIO()
        parent = StructuredLogger(name="test.parent", stream=stream)

        parent.get_child("producer").info("tick")

        assert json.loads(stream.getvalue())["logger"] == "test.parent.producer"
