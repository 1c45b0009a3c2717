"""
Domain errors raised by the event store and the replication components.

These are plain exceptions. The HTTP layer translates them into
APIException responses; the background loops log them.
"""
from typing import Optional


class CalendarError(Exception):
    """Base class for calendar domain errors"""

    def __init__(self, message: str, event_id: Optional[str] = None):
        self.message = message
        self.event_id = event_id
        super().__init__(message)


class ValidationError(CalendarError):
    """Input is missing a required field or has the wrong shape"""


class NotFoundError(CalendarError):
    """No event exists with the requested id"""

    def __init__(self, event_id: str):
        super().__init__(f"event {event_id} not found", event_id=event_id)


class ConflictError(CalendarError):
    """An event with the same id already exists"""

    def __init__(self, event_id: str):
        super().__init__(f"event {event_id} already exists", event_id=event_id)


class TransportError(CalendarError):
    """Publishing to or reading from the message broker failed"""


class AlreadyRunningError(CalendarError):
    """start() was called on a component that is not idle"""
