"""RPC-style health ping."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ..schemas.health import HealthResponse, HealthStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/health", tags=["health"])

SERVICE_NAME = "railbook-api"
VERSION = "1.0.0"


@router.post("/ping", response_model=HealthResponse)
async def health_ping(request: Request) -> JSONResponse:
    """
    Report whether a booking engine is attached and how many seat holds it carries.

    Always answers 200; readiness with a database round-trip lives at ``/ready``.
    """
    engine = getattr(request.app.state, "booking_engine", None)
    response_data = HealthResponse(
        status=HealthStatus.HEALTHY if engine is not None else HealthStatus.DEGRADED,
        service=SERVICE_NAME,
        version=VERSION,
        timestamp=datetime.now(timezone.utc),
        held_reservations=engine.inventory.held_reservations() if engine is not None else 0,
    )

    logger.debug(
        "Health ping",
        extra={"status": response_data.status.value, "held_reservations": response_data.held_reservations}
    )

    return JSONResponse(
        status_code=200,
        content=response_data.model_dump(mode="json")
    )
