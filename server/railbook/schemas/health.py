"""Schemas for the RPC health ping."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """Whether the service can take bookings."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"


class HealthResponse(BaseModel):
    """Ping response: service identity plus the booking engine's hold count."""

    status: HealthStatus = Field(..., description="healthy when a booking engine is attached")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="API version")
    timestamp: datetime = Field(..., description="Current server time (ISO 8601)")
    held_reservations: int = Field(0, ge=0, description="Seat reservations currently on hold")
