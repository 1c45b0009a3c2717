# Services package

from .event_store import EventStore
from .events import EventService
