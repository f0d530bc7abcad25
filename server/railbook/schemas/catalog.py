"""Station and train Pydantic schemas."""

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .common import Money

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class TicketClass(str, Enum):
    """Fare and service tier."""
    FIRST = "first"
    SECOND = "second"
    THIRD = "third"

    @classmethod
    def parse(cls, value: "TicketClass | str | int") -> "TicketClass":
        """Accept enum members, names ("first") or class numbers (1-3)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"Unknown ticket class: {value!r}")
        if isinstance(value, int) or (isinstance(value, str) and value.isdigit()):
            by_number = {1: cls.FIRST, 2: cls.SECOND, 3: cls.THIRD}
            try:
                return by_number[int(value)]
            except KeyError:
                raise ValueError(f"Unknown ticket class: {value!r}") from None
        return cls(str(value).lower())


def _minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


class CreateStationRequest(BaseModel):
    """Request schema for creating a station."""

    name: str = Field(..., min_length=1, max_length=255, description="Station name")
    code: str | None = Field(None, min_length=2, max_length=8, pattern=r"^[A-Z0-9]+$", description="Short station code")


class Station(BaseModel):
    """Station response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Unique station ID")
    name: str = Field(..., description="Station name")
    code: str | None = Field(None, description="Short station code")


class CreateTrainRequest(BaseModel):
    """Request schema for adding a train to the catalog."""

    train_number: str = Field(..., min_length=1, max_length=16, description="Public train number")
    name: str = Field(..., min_length=1, max_length=255, description="Train name")
    train_type: str = Field(..., min_length=1, max_length=64, description="e.g. Intercity Express")
    departure_station_id: str = Field(..., description="Origin station ID")
    arrival_station_id: str = Field(..., description="Destination station ID")
    departure_time: str = Field(..., pattern=TIME_PATTERN, description="Local departure time HH:MM")
    arrival_time: str = Field(..., pattern=TIME_PATTERN, description="Local arrival time HH:MM")
    base_price: Money = Field(..., description="Second-class base fare per seat")
    first_class_price: Money | None = Field(None, description="Explicit first-class fare")
    second_class_price: Money | None = Field(None, description="Explicit second-class fare")
    third_class_price: Money | None = Field(None, description="Explicit third-class fare")
    first_class_seats: int = Field(0, ge=0, le=2000, description="First-class capacity")
    second_class_seats: int = Field(0, ge=0, le=2000, description="Second-class capacity")
    third_class_seats: int = Field(0, ge=0, le=2000, description="Third-class capacity")

    @model_validator(mode="after")
    def check_route_and_currency(self) -> "CreateTrainRequest":
        if self.departure_station_id == self.arrival_station_id:
            raise ValueError("Departure and arrival stations must differ")
        for price in (self.first_class_price, self.second_class_price, self.third_class_price):
            if price is not None and price.currency != self.base_price.currency:
                raise ValueError("All class prices must use the base price currency")
        return self


class Train(BaseModel):
    """Train as seen by the booking engine."""

    id: str = Field(..., description="Unique train ID")
    train_number: str = Field(..., description="Public train number")
    name: str = Field(..., description="Train name")
    train_type: str = Field(..., description="Service type")
    departure_station_id: str = Field(..., description="Origin station ID")
    arrival_station_id: str = Field(..., description="Destination station ID")
    departure_time: str = Field(..., pattern=TIME_PATTERN, description="Local departure time HH:MM")
    arrival_time: str = Field(..., pattern=TIME_PATTERN, description="Local arrival time HH:MM")
    base_price: Money = Field(..., description="Second-class base fare per seat")
    first_class_price: Money | None = Field(None, description="Explicit first-class fare")
    second_class_price: Money | None = Field(None, description="Explicit second-class fare")
    third_class_price: Money | None = Field(None, description="Explicit third-class fare")
    first_class_seats: int = Field(0, ge=0, description="First-class capacity")
    second_class_seats: int = Field(0, ge=0, description="Second-class capacity")
    third_class_seats: int = Field(0, ge=0, description="Third-class capacity")

    @property
    def currency(self) -> str:
        return self.base_price.currency

    @property
    def duration_minutes(self) -> int:
        """Journey length; an arrival before departure means the next day."""
        return (_minutes(self.arrival_time) - _minutes(self.departure_time)) % (24 * 60)

    def seats_for(self, ticket_class: TicketClass) -> int:
        return {
            TicketClass.FIRST: self.first_class_seats,
            TicketClass.SECOND: self.second_class_seats,
            TicketClass.THIRD: self.third_class_seats,
        }[ticket_class]

    def explicit_price_for(self, ticket_class: TicketClass) -> Money | None:
        return {
            TicketClass.FIRST: self.first_class_price,
            TicketClass.SECOND: self.second_class_price,
            TicketClass.THIRD: self.third_class_price,
        }[ticket_class]


class SearchTrainsRequest(BaseModel):
    """Request schema for searching trains on a route."""

    departure_station_id: str = Field(..., description="Origin station ID")
    arrival_station_id: str = Field(..., description="Destination station ID")
    travel_date: date = Field(..., description="Date of travel")


class ClassAvailability(BaseModel):
    """Fare and free seats for one ticket class on one date."""

    ticket_class: TicketClass
    unit_price: Money = Field(..., description="Fare per seat")
    capacity: int = Field(..., ge=0)
    available_seats: int = Field(..., ge=0, description="Approximate; a later reservation may still fail")


class TrainAvailability(BaseModel):
    """Search result row."""

    train: Train
    travel_date: date
    duration_minutes: int = Field(..., ge=0)
    classes: list[ClassAvailability]


class SearchTrainsResponse(BaseModel):
    """Response schema for train search."""

    items: list[TrainAvailability] = Field(..., description="Trains running on the route")


class QuoteRequest(BaseModel):
    """Request schema for a fare quote."""

    train_id: str = Field(..., description="Train to price")
    ticket_class: TicketClass = Field(..., description="Ticket class")
    passenger_count: int = Field(..., ge=1, le=10, description="Number of passengers")

    @field_validator("ticket_class", mode="before")
    @classmethod
    def parse_ticket_class(cls, v):
        return TicketClass.parse(v)


class Quote(BaseModel):
    """Fare quote; the booking fee is only added at checkout."""

    train_id: str
    ticket_class: TicketClass
    passenger_count: int
    total_price: Money


class GetTrainRequest(BaseModel):
    """Request schema for fetching one train."""

    train_id: str = Field(..., description="Train to retrieve")
