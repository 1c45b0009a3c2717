# Health check endpoints for system monitoring

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from datetime import datetime, timezone

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_class=PlainTextResponse)
async def liveness_check():
    """
    Basic liveness check - returns 200 if the process is serving requests
    Used by load balancers and orchestrators
    """
    return "OK"


@router.get("/ready")
async def readiness_check(request: Request):
    """
    Readiness check - database reachability and replication loop states.
    Returns 503 when the database cannot be reached or a replication loop
    has crashed.
    """
    db_health = await request.app.state.db.health_check()

    components = {"database": db_health}
    healthy = db_health.get("status") == "healthy"
    for name in ("producer", "consumer"):
        component = getattr(request.app.state, name, None)
        if component is None:
            components[f"replication_{name}"] = {"status": "disabled"}
        elif component.failed:
            healthy = False
            components[f"replication_{name}"] = {"status": "failed", "error": str(component.failure)}
        else:
            components[f"replication_{name}"] = {"status": component.state.value}

    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "ready" if healthy else "not_ready",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": "calendar-api",
            "components": components,
        },
    )
