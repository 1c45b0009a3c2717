"""
Durable storage for calendar events.

Each public method is a single unit of work: it commits on success and
rolls back on failure. No locking is applied around updates, so two
concurrent updates of the same id can lose one of the writes.
"""
from datetime import timedelta
from typing import List

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import utcnow
from core.exceptions.errors import ValidationError, NotFoundError, ConflictError
from models.event import Event, EventPatch


class EventStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, event: Event) -> Event:
        """Persists a new event. The caller assigns the id."""
        if not event.id:
            raise ValidationError("id is required")
        if not event.title or not event.owner_id:
            raise ValidationError("title and owner_id are required", event_id=event.id)

        if await self.db.get(Event, event.id) is not None:
            raise ConflictError(event.id)

        now = utcnow()
        event.description = event.description or ""
        event.created_at = now
        event.updated_at = now

        self.db.add(event)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError(event.id) from e
        except Exception:
            await self.db.rollback()
            raise
        return event

    async def get(self, event_id: str) -> Event:
        event = await self.db.get(Event, event_id)
        if event is None:
            raise NotFoundError(event_id)
        return event

    async def update(self, patch: EventPatch) -> Event:
        """Overwrites the supplied fields of an existing event and keeps the rest."""
        current = await self.get(patch.id)

        supplied = patch.supplied_fields()
        for field in ("title", "owner_id"):
            if field in supplied and not supplied[field]:
                raise ValidationError("title and owner_id are required", event_id=patch.id)

        for field, value in supplied.items():
            setattr(current, field, value)

        # Strictly increasing, even when the clock has not moved since the last write
        now = utcnow()
        if current.updated_at is not None and now <= current.updated_at:
            now = current.updated_at + timedelta(microseconds=1)
        current.updated_at = now

        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return current

    async def delete(self, event_id: str) -> None:
        try:
            result = await self.db.execute(delete(Event).where(Event.id == event_id))
            if result.rowcount == 0:
                await self.db.rollback()
                raise NotFoundError(event_id)
            await self.db.commit()
        except NotFoundError:
            raise
        except Exception:
            await self.db.rollback()
            raise

    async def list_by_owner(self, owner_id: str) -> List[Event]:
        """Events of one owner ordered by start time. An empty owner matches nothing."""
        if not owner_id:
            return []
        result = await self.db.execute(
            select(Event)
            .where(Event.owner_id == owner_id)
            .order_by(Event.start_time, Event.id)
        )
        return list(result.scalars().all())

    async def list_all(self) -> List[Event]:
        """Every event ordered by start time."""
        result = await self.db.execute(select(Event).order_by(Event.start_time, Event.id))
        return list(result.scalars().all())
