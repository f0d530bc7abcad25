"""Reference catalog service: stations and trains."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ..core.database import SessionProvider
from ..core.exceptions import InvalidInputError, NotFoundError
from ..models.catalog import Station as StationModel
from ..models.catalog import Train as TrainModel
from ..schemas.catalog import CreateStationRequest, CreateTrainRequest, Station, Train
from ..schemas.common import Money

logger = logging.getLogger(__name__)


def parse_uuid(value: str, field: str) -> UUID:
    """Parse an ID supplied by a caller, rejecting malformed values as invalid input."""
    try:
        return UUID(str(value))
    except (ValueError, TypeError):
        raise InvalidInputError(
            detail=f"Malformed {field}: {value!r}",
            errors={field: str(value)},
        ) from None


def _money(amount: int | None, currency: str) -> Money | None:
    if amount is None:
        return None
    return Money(amount=amount, currency=currency)


def train_to_schema(row: TrainModel) -> Train:
    """Convert a train row to the schema the booking engine works with."""
    currency = row.price_currency
    return Train(
        id=str(row.id),
        train_number=row.train_number,
        name=row.name,
        train_type=row.train_type,
        departure_station_id=str(row.departure_station_id),
        arrival_station_id=str(row.arrival_station_id),
        departure_time=row.departure_time,
        arrival_time=row.arrival_time,
        base_price=Money(amount=row.base_price_amount, currency=currency),
        first_class_price=_money(row.first_class_price_amount, currency),
        second_class_price=_money(row.second_class_price_amount, currency),
        third_class_price=_money(row.third_class_price_amount, currency),
        first_class_seats=row.first_class_seats,
        second_class_seats=row.second_class_seats,
        third_class_seats=row.third_class_seats,
    )


def station_to_schema(row: StationModel) -> Station:
    return Station(id=str(row.id), name=row.name, code=row.code)


class CatalogService:
    """
    Stations and trains. Read-mostly reference data for the booking engine.

    Each call opens its own short session through the ``SessionProvider``.
    """

    def __init__(self, sessions: SessionProvider):
        self.sessions = sessions

    async def create_station(self, request: CreateStationRequest) -> Station:
        """
        Create a new station.

        Raises:
            InvalidInputError: If a station with the same name or code exists
        """
        station = StationModel(name=request.name, code=request.code)
        try:
            async with self.sessions.session() as db:
                db.add(station)
                await db.commit()
        except IntegrityError as e:
            logger.warning(
                "Station creation failed due to integrity constraint",
                extra={"station_name": request.name, "code": request.code, "error": str(e.orig)}
            )
            raise InvalidInputError(
                detail=f"Station '{request.name}' already exists",
                errors={"name": request.name},
            ) from None

        logger.info(
            "Station created successfully",
            extra={"station_id": str(station.id), "station_name": station.name}
        )
        return station_to_schema(station)

    async def create_train(self, request: CreateTrainRequest) -> Train:
        """
        Add a train to the catalog.

        Raises:
            NotFoundError: If either station does not exist
            InvalidInputError: If the train number is already used
        """
        departure_id = parse_uuid(request.departure_station_id, "departure_station_id")
        arrival_id = parse_uuid(request.arrival_station_id, "arrival_station_id")

        train = TrainModel(
            train_number=request.train_number,
            name=request.name,
            train_type=request.train_type,
            departure_station_id=departure_id,
            arrival_station_id=arrival_id,
            departure_time=request.departure_time,
            arrival_time=request.arrival_time,
            base_price_amount=request.base_price.amount,
            first_class_price_amount=request.first_class_price.amount if request.first_class_price else None,
            second_class_price_amount=request.second_class_price.amount if request.second_class_price else None,
            third_class_price_amount=request.third_class_price.amount if request.third_class_price else None,
            price_currency=request.base_price.currency,
            first_class_seats=request.first_class_seats,
            second_class_seats=request.second_class_seats,
            third_class_seats=request.third_class_seats,
        )

        async with self.sessions.session() as db:
            for station_id in (departure_id, arrival_id):
                if await db.get(StationModel, station_id) is None:
                    logger.warning("Train creation failed - station not found", extra={"station_id": str(station_id)})
                    raise NotFoundError(resource_type="station", resource_id=str(station_id))

            db.add(train)
            try:
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                logger.warning(
                    "Train creation failed due to integrity constraint",
                    extra={"train_number": request.train_number, "error": str(e.orig)}
                )
                raise InvalidInputError(
                    detail=f"Train number '{request.train_number}' already exists",
                    errors={"train_number": request.train_number},
                ) from None

        logger.info(
            "Train created successfully",
            extra={
                "train_id": str(train.id),
                "train_number": train.train_number,
                "route": f"{departure_id}->{arrival_id}",
            }
        )
        return train_to_schema(train)

    async def get_train(self, train_id: str) -> Train | None:
        """Get train by ID, or None when it does not exist."""
        train_uuid = parse_uuid(train_id, "train_id")
        async with self.sessions.session() as db:
            row = await db.get(TrainModel, train_uuid)
        return train_to_schema(row) if row else None

    async def get_train_or_raise(self, train_id: str) -> Train:
        """
        Get train by ID or raise NotFoundError.

        Raises:
            NotFoundError: If train not found
        """
        train = await self.get_train(train_id)
        if not train:
            logger.warning("Train not found", extra={"train_id": train_id})
            raise NotFoundError(resource_type="train", resource_id=train_id)
        return train

    async def find_trains(self, departure_station_id: str, arrival_station_id: str) -> list[Train]:
        """Trains running directly between two stations, ordered by departure time."""
        departure_id = parse_uuid(departure_station_id, "departure_station_id")
        arrival_id = parse_uuid(arrival_station_id, "arrival_station_id")

        stmt = (
            select(TrainModel)
            .where(
                TrainModel.departure_station_id == departure_id,
                TrainModel.arrival_station_id == arrival_id,
            )
            .order_by(TrainModel.departure_time, TrainModel.train_number)
        )
        async with self.sessions.session() as db:
            result = await db.execute(stmt)
            rows = list(result.scalars())

        return [train_to_schema(row) for row in rows]

    async def list_stations(self) -> list[Station]:
        async with self.sessions.session() as db:
            result = await db.execute(select(StationModel).order_by(StationModel.name))
            rows = list(result.scalars())
        return [station_to_schema(row) for row in rows]
