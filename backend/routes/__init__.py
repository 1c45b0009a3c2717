# Consolidated route imports
from .events import router as events_router
from .health import router as health_router

# Export all routers for easy importing
__all__ = [
    "events_router",
    "health_router",
]
