from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Column, String, Text, Index
from core.database import BaseModel, CHAR_LENGTH, UTCDateTime


class Event(BaseModel):
    """Calendar entry with a time range and an owning principal"""
    __tablename__ = "events"
    __table_args__ = (
        Index('idx_events_owner_id', 'owner_id'),
        Index('idx_events_start_time', 'start_time'),
        Index('idx_events_owner_start', 'owner_id', 'start_time'),
    )

    title = Column(String(CHAR_LENGTH), nullable=False)
    description = Column(Text, nullable=False, default="")
    start_time = Column(UTCDateTime(), nullable=False)
    end_time = Column(UTCDateTime(), nullable=False)
    owner_id = Column(String(CHAR_LENGTH), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "owner_id": self.owner_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Event id={self.id} owner_id={self.owner_id} title={self.title!r}>"


@dataclass
class EventPatch:
    """Partial update for an event.

    None means "not supplied"; the stored value is kept for that field.
    """
    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    owner_id: Optional[str] = None

    def supplied_fields(self) -> Dict[str, Any]:
        return {
            name: value
            for name, value in (
                ("title", self.title),
                ("description", self.description),
                ("start_time", self.start_time),
                ("end_time", self.end_time),
                ("owner_id", self.owner_id),
            )
            if value is not None
        }
