from typing import List

from models.event import Event, EventPatch
from services.event_store import EventStore


class EventService:
    """Boundary between the HTTP routes and the event store"""

    def __init__(self, store: EventStore):
        self.store = store

    async def create_event(self, event: Event) -> Event:
        return await self.store.create(event)

    async def get_event(self, event_id: str) -> Event:
        return await self.store.get(event_id)

    async def update_event(self, patch: EventPatch) -> Event:
        return await self.store.update(patch)

    async def delete_event(self, event_id: str) -> None:
        await self.store.delete(event_id)

    async def list_events(self, owner_id: str) -> List[Event]:
        return await self.store.list_by_owner(owner_id)
