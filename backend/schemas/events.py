import re
from pydantic import BaseModel, ConfigDict, field_validator
from datetime import datetime, timezone
from typing import Optional

from models.event import EventPatch

_RFC3339 = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt](\d{2}:\d{2}:\d{2})(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$"
)


def parse_rfc3339(value: str) -> datetime:
    """Parses an RFC3339 timestamp. The UTC offset is mandatory."""
    match = _RFC3339.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError("must be an RFC3339 timestamp")
    date_part, time_part, fraction, offset = match.groups()
    # datetime supports at most microsecond precision; pad to six digits
    fraction = fraction[:7].ljust(7, "0") if fraction else ""
    if offset in ("Z", "z"):
        offset = "+00:00"
    try:
        return datetime.fromisoformat(f"{date_part}T{time_part}{fraction}{offset}")
    except ValueError as e:
        raise ValueError(f"must be an RFC3339 timestamp: {e}") from e


def format_rfc3339(value: datetime) -> str:
    """UTC with a `Z` suffix. Fractional seconds appear only when non-zero, without trailing zeros."""
    value = value.astimezone(timezone.utc)
    text = value.strftime("%Y-%m-%dT%H:%M:%S")
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    return text + "Z"


class EventCreate(BaseModel):
    title: str
    description: str = ""
    start_time: datetime
    end_time: datetime
    owner_id: str

    @field_validator("title", "owner_id")
    @classmethod
    def required_text(cls, value: str) -> str:
        if value == "":
            raise ValueError("title and owner_id are required")
        return value

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def timestamp(cls, value):
        return parse_rfc3339(value)


class EventUpdate(BaseModel):
    """Partial update body. Every field is optional."""
    title: Optional[str] = None
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    owner_id: Optional[str] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def timestamp(cls, value):
        if value is None:
            return None
        return parse_rfc3339(value)

    def to_patch(self, event_id: str) -> EventPatch:
        # An empty string is indistinguishable from an omitted field here;
        # both leave the stored value in place.
        return EventPatch(
            id=event_id,
            title=self.title or None,
            description=self.description or None,
            start_time=self.start_time,
            end_time=self.end_time,
            owner_id=self.owner_id or None,
        )


class EventResponse(BaseModel):
    id: str
    title: str
    description: str
    start_time: str
    end_time: str
    owner_id: str

    model_config = ConfigDict(from_attributes=True)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def timestamp(cls, value):
        if isinstance(value, datetime):
            return format_rfc3339(value)
        return value
