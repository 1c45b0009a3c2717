# Calendar event routes

from fastapi import APIRouter, Depends, Response, status
from typing import List, Optional

from core.dependencies import get_event_service, get_logger
from core.exceptions import (
    APIException,
    CalendarError,
    DatabaseException,
    ValidationError,
    ValidationException,
)
from core.logging import StructuredLogger
from core.utils.uuid_utils import uuid7_str
from models.event import Event
from schemas.events import EventCreate, EventUpdate, EventResponse
from services.events import EventService

router = APIRouter(prefix="/api/events", tags=["events"])


def _event_id(raw: str) -> str:
    event_id = raw.strip("/")
    if not event_id or "/" in event_id:
        raise ValidationException(message="event id is required")
    return event_id


def _store_failure(action: str, e: Exception, logger: StructuredLogger, event_id: Optional[str] = None):
    if isinstance(e, APIException):
        return e
    if isinstance(e, ValidationError):
        return ValidationException(message=e.message)
    # NotFoundError and ConflictError are reported as store failures
    logger.error(f"failed to {action} event", metadata={"event_id": event_id}, exception=e)
    message = e.message if isinstance(e, CalendarError) else f"failed to {action} event"
    return DatabaseException(message=message)


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    payload: EventCreate,
    service: EventService = Depends(get_event_service),
    logger: StructuredLogger = Depends(get_logger),
):
    """Create a new event. The id is generated here."""
    event = Event(
        id=uuid7_str(),
        title=payload.title,
        description=payload.description,
        start_time=payload.start_time,
        end_time=payload.end_time,
        owner_id=payload.owner_id,
    )
    try:
        created = await service.create_event(event)
    except Exception as e:
        raise _store_failure("create", e, logger, event.id)

    logger.info("event created", metadata={"event_id": created.id, "owner_id": created.owner_id})
    return EventResponse.model_validate(created)


@router.get("", response_model=List[EventResponse])
async def list_events(
    owner_id: Optional[str] = None,
    service: EventService = Depends(get_event_service),
    logger: StructuredLogger = Depends(get_logger),
):
    """List the events of one owner ordered by start time"""
    if not owner_id:
        raise ValidationException(message="owner_id is required")
    try:
        events = await service.list_events(owner_id)
    except Exception as e:
        raise _store_failure("list", e, logger)
    return [EventResponse.model_validate(event) for event in events]


@router.get("/{event_id:path}", response_model=EventResponse)
async def get_event(
    event_id: str,
    service: EventService = Depends(get_event_service),
    logger: StructuredLogger = Depends(get_logger),
):
    event_id = _event_id(event_id)
    try:
        event = await service.get_event(event_id)
    except Exception as e:
        raise _store_failure("get", e, logger, event_id)
    return EventResponse.model_validate(event)


@router.api_route("/{event_id:path}", methods=["PUT", "PATCH"], status_code=status.HTTP_204_NO_CONTENT)
async def update_event(
    event_id: str,
    payload: EventUpdate,
    service: EventService = Depends(get_event_service),
    logger: StructuredLogger = Depends(get_logger),
):
    """Partial update: omitted or empty fields keep their stored value"""
    event_id = _event_id(event_id)
    try:
        await service.update_event(payload.to_patch(event_id))
    except Exception as e:
        raise _store_failure("update", e, logger, event_id)

    logger.info("event updated", metadata={"event_id": event_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{event_id:path}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: str,
    service: EventService = Depends(get_event_service),
    logger: StructuredLogger = Depends(get_logger),
):
    event_id = _event_id(event_id)
    try:
        await service.delete_event(event_id)
    except Exception as e:
        raise _store_failure("delete", e, logger, event_id)

    logger.info("event deleted", metadata={"event_id": event_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
