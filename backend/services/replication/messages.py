from datetime import datetime
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, field_validator

from models.event import Event
from schemas.events import format_rfc3339


class ReplicationMessage(BaseModel):
    """
    Point-in-time snapshot of an event as published to the replication topic.

    Wire format is a JSON object with RFC3339 timestamps. `sent_at` may be
    absent, null or the zero timestamp (0001-01-01T00:00:00Z); all three
    read back as None.
    """
    id: str
    title: str
    description: str = ""
    start_time: datetime
    end_time: datetime
    owner_id: str
    created_at: datetime
    updated_at: datetime
    sent_at: Optional[datetime] = None

    @field_validator("sent_at", mode="before")
    @classmethod
    def blank_sent_at(cls, value):
        if value in (None, ""):
            return None
        return value

    @field_validator("sent_at")
    @classmethod
    def zero_sent_at(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.year == 1:
            return None
        return value

    @field_validator("description", mode="before")
    @classmethod
    def null_description(cls, value):
        return "" if value is None else value

    @classmethod
    def from_event(cls, event: Event, sent_at: datetime) -> "ReplicationMessage":
        return cls(
            id=event.id,
            title=event.title,
            description=event.description or "",
            start_time=event.start_time,
            end_time=event.end_time,
            owner_id=event.owner_id,
            created_at=event.created_at,
            updated_at=event.updated_at,
            sent_at=sent_at,
        )

    @classmethod
    def from_bytes(cls, raw: Union[bytes, str, None]) -> "ReplicationMessage":
        """Raises ValueError (pydantic's ValidationError included) on a malformed payload."""
        if raw is None:
            raise ValueError("empty message payload")
        return cls.model_validate_json(raw)

    def to_bytes(self) -> bytes:
        return self.model_dump_json().encode("utf-8")

    def log_fields(self) -> Dict[str, Any]:
        return {
            "event_id": self.id,
            "title": self.title,
            "description": self.description,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "owner_id": self.owner_id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
        }

    def summary(self) -> str:
        def fmt(value: Optional[datetime]) -> str:
            return format_rfc3339(value) if value else ""

        return (
            f"Event: {self.title} (ID: {self.id}) - {self.description}. "
            f"Starts: {fmt(self.start_time)}, Ends: {fmt(self.end_time)}. "
            f"Sent at: {fmt(self.sent_at)}"
        )
