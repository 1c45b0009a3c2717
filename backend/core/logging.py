"""
Structured logging for the application.

A StructuredLogger is built once at startup from configuration and handed to
each component through its constructor. It writes through its own named
stdlib logger with propagation disabled, so the root logger and any
process-wide defaults are left untouched.
"""
import logging
import json
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, IO, Optional, Union
from enum import Enum


class LogLevel(Enum):
    """Log level enumeration"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(Enum):
    """Log format enumeration"""
    SIMPLE = "simple"
    DETAILED = "detailed"
    JSON = "json"


_LEVEL_ALIASES = {
    "debug": LogLevel.DEBUG,
    "info": LogLevel.INFO,
    "warn": LogLevel.WARNING,
    "warning": LogLevel.WARNING,
    "error": LogLevel.ERROR,
    "critical": LogLevel.CRITICAL,
}


def parse_level(level: Union[str, LogLevel, None]) -> LogLevel:
    """Maps a configured level name to a LogLevel. Unknown names fall back to INFO."""
    if isinstance(level, LogLevel):
        return level
    return _LEVEL_ALIASES.get((level or "").strip().lower(), LogLevel.INFO)


def parse_format(log_format: Union[str, LogFormat, None]) -> LogFormat:
    if isinstance(log_format, LogFormat):
        return log_format
    try:
        return LogFormat((log_format or "").strip().lower())
    except ValueError:
        return LogFormat.JSON


class StructuredLogger:
    """
    Structured logger with JSON output and contextual information
    """

    def __init__(
        self,
        name: str = "calendar",
        level: Union[str, LogLevel] = LogLevel.INFO,
        log_format: Union[str, LogFormat] = LogFormat.JSON,
        stream: Optional[IO[str]] = None,
        service: str = "calendar-api",
    ):
        self.name = name
        self.service = service
        self.level = parse_level(level)
        self.log_format = parse_format(log_format)
        self.stream = stream or sys.stdout

        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, self.level.value))
        self.logger.propagate = False

        # Clear existing handlers to avoid duplicates when rebuilt
        self.logger.handlers.clear()
        self._setup_console_handler()

    def _setup_console_handler(self):
        """Setup console handler with appropriate formatter"""
        console_handler = logging.StreamHandler(self.stream)

        if self.log_format == LogFormat.JSON:
            formatter = logging.Formatter('%(message)s')
        elif self.log_format == LogFormat.DETAILED:
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
            )
        else:  # SIMPLE
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )

        console_handler.setFormatter(formatter)
        self.logger.addHandler(console_handler)

    def get_child(self, suffix: str) -> "StructuredLogger":
        """Builds a logger for a sub-component with the same level, format and stream."""
        return StructuredLogger(
            name=f"{self.name}.{suffix}",
            level=self.level,
            log_format=self.log_format,
            stream=self.stream,
            service=self.service,
        )

    def is_enabled_for(self, level: str) -> bool:
        return self.logger.isEnabledFor(getattr(logging, parse_level(level).value))

    def _create_log_entry(
        self,
        level: str,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exception: Optional[BaseException] = None,
        extra_context: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Create a structured log entry
        """
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level.upper(),
            "message": message,
            "service": self.service,
            "logger": self.name,
        }

        if metadata:
            log_entry["metadata"] = metadata

        if extra_context:
            log_entry["context"] = extra_context

        if exception:
            log_entry["exception"] = {
                "type": type(exception).__name__,
                "message": str(exception),
            }
            if exception.__traceback__ is not None:
                log_entry["exception"]["traceback"] = "".join(
                    traceback.format_exception(type(exception), exception, exception.__traceback__)
                )

        return log_entry

    def _log(
        self,
        level: str,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exception: Optional[BaseException] = None,
        extra_context: Optional[Dict[str, Any]] = None
    ):
        if not self.is_enabled_for(level):
            return

        if self.log_format == LogFormat.JSON:
            log_entry = self._create_log_entry(level, message, metadata, exception, extra_context)
            log_message = json.dumps(log_entry, default=str)
        else:
            log_message = message
            if metadata:
                log_message += f" | Metadata: {metadata}"
            if exception:
                log_message += f" | Error: {type(exception).__name__}: {exception}"

        getattr(self.logger, level.lower())(log_message)

    def debug(
        self,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        extra_context: Optional[Dict[str, Any]] = None
    ):
        self._log("debug", message, metadata, None, extra_context)

    def info(
        self,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        extra_context: Optional[Dict[str, Any]] = None
    ):
        self._log("info", message, metadata, None, extra_context)

    def warning(
        self,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exception: Optional[BaseException] = None,
        extra_context: Optional[Dict[str, Any]] = None
    ):
        self._log("warning", message, metadata, exception, extra_context)

    def error(
        self,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exception: Optional[BaseException] = None,
        extra_context: Optional[Dict[str, Any]] = None
    ):
        self._log("error", message, metadata, exception, extra_context)

    def critical(
        self,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exception: Optional[BaseException] = None,
        extra_context: Optional[Dict[str, Any]] = None
    ):
        self._log("critical", message, metadata, exception, extra_context)

    def log_request(
        self,
        method: str,
        endpoint: str,
        duration_ms: Optional[float] = None,
        status_code: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None
    ):
        """Log HTTP request with structured data"""
        request_data = {
            "method": method,
            "endpoint": endpoint,
            "duration_ms": duration_ms,
            "status_code": status_code
        }

        if metadata:
            request_data.update(metadata)

        self.info(f"{method} {endpoint}", metadata=request_data)


def build_logger(level: str, log_format: str = "json", name: str = "calendar") -> StructuredLogger:
    """Creates the application logger from configuration values."""
    return StructuredLogger(name=name, level=level, log_format=log_format)
