"""Train router: catalog maintenance, search and fare quotes."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..core.dependencies import Catalog, Engine
from ..schemas.catalog import (
    CreateStationRequest,
    CreateTrainRequest,
    GetTrainRequest,
    Quote,
    QuoteRequest,
    SearchTrainsRequest,
    SearchTrainsResponse,
    Station,
    Train,
)
from ..services.booking_engine import BookingEngine
from ..services.catalog_service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/train", tags=["train"])
station_router = APIRouter(prefix="/v1/station", tags=["station"])


def _ok(response_data: BaseModel) -> JSONResponse:
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@station_router.post("/create", response_model=Station)
async def create_station(request: CreateStationRequest, catalog: CatalogService = Catalog) -> JSONResponse:
    """Add a station to the reference catalog."""
    station = await catalog.create_station(request)
    return _ok(station)


@station_router.post("/list", response_model=list[Station])
async def list_stations(catalog: CatalogService = Catalog) -> JSONResponse:
    """All stations, by name."""
    stations = await catalog.list_stations()
    return JSONResponse(status_code=200, content=[s.model_dump(mode="json") for s in stations])


@router.post("/create", response_model=Train)
async def create_train(request: CreateTrainRequest, catalog: CatalogService = Catalog) -> JSONResponse:
    """Add a train with per-class fares and capacity."""
    train = await catalog.create_train(request)
    return _ok(train)


@router.post("/get", response_model=Train)
async def get_train(request: GetTrainRequest, catalog: CatalogService = Catalog) -> JSONResponse:
    """Get a train by ID."""
    train = await catalog.get_train_or_raise(request.train_id)
    return _ok(train)


@router.post("/search", response_model=SearchTrainsResponse)
async def search_trains(request: SearchTrainsRequest, engine: BookingEngine = Engine) -> JSONResponse:
    """
    Trains running between two stations on a date.

    Seat counts are approximate: a booking may still fail with
    INSUFFICIENT_SEATS and should then be retried on another class or train.
    """
    items = await engine.find_trains(
        request.departure_station_id,
        request.arrival_station_id,
        request.travel_date,
    )
    return _ok(SearchTrainsResponse(items=items))


@router.post("/quote", response_model=Quote)
async def quote(request: QuoteRequest, engine: BookingEngine = Engine) -> JSONResponse:
    """Fare for the seats; the booking fee is only added at checkout."""
    response_data = await engine.quote(request.train_id, request.ticket_class, request.passenger_count)

    logger.debug(
        "Quote computed",
        extra={
            "train_id": request.train_id,
            "ticket_class": request.ticket_class.value,
            "passenger_count": request.passenger_count,
            "total_amount": response_data.total_price.amount,
        }
    )
    return _ok(response_data)
