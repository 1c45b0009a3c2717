from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.logging import StructuredLogger
from services.event_store import EventStore
from services.events import EventService


def get_logger(request: Request) -> StructuredLogger:
    """Application logger built at startup"""
    return request.app.state.logger


async def get_event_service(db: AsyncSession = Depends(get_db)) -> EventService:
    """Event service bound to the request's session"""
    return EventService(EventStore(db))
