"""Prometheus scrape endpoint for booking, seat and payment metrics."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST

from ..core.observability import get_prometheus_metrics

router = APIRouter()


@router.get(
    "/metrics",
    summary="Prometheus Metrics",
    description="Booking lifecycle, seat hold and expiry sweep metrics",
    response_class=Response,
    tags=["Observability"]
)
async def metrics() -> Response:
    """Serve the service's private registry in the Prometheus text format."""
    return Response(content=get_prometheus_metrics(), media_type=CONTENT_TYPE_LATEST)
