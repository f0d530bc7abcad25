"""Unit tests for the reference catalog."""

import logging

import pytest

from railbook.core.exceptions import InvalidInputError, NotFoundError
from railbook.schemas.catalog import CreateStationRequest, CreateTrainRequest, Train
from railbook.schemas.common import Money


def train_request(departure_id: str, arrival_id: str, **overrides) -> CreateTrainRequest:
    data = {
        "train_number": "1015",
        "name": "Udarata Menike",
        "train_type": "Express",
        "departure_station_id": departure_id,
        "arrival_station_id": arrival_id,
        "departure_time": "08:30",
        "arrival_time": "11:05",
        "base_price": Money(amount=1200, currency="LKR"),
        "second_class_seats": 40,
        "third_class_seats": 80,
    }
    data.update(overrides)
    return CreateTrainRequest(**data)


@pytest.mark.asyncio
async def test_create_and_get_train(catalog, stations):
    colombo, kandy = stations
    created = await catalog.create_train(train_request(colombo.id, kandy.id))

    fetched = await catalog.get_train_or_raise(created.id)
    assert fetched == created
    assert fetched.currency == "LKR"
    assert fetched.first_class_seats == 0
    assert fetched.duration_minutes == 155


@pytest.mark.asyncio
async def test_create_train_with_explicit_prices(catalog, stations):
    colombo, kandy = stations
    created = await catalog.create_train(
        train_request(colombo.id, kandy.id, first_class_price=Money(amount=3000, currency="LKR"))
    )

    fetched = await catalog.get_train(created.id)
    assert fetched.first_class_price == Money(amount=3000, currency="LKR")
    assert fetched.second_class_price is None


@pytest.mark.asyncio
async def test_duplicate_train_number_rejected(catalog, stations, train):
    colombo, kandy = stations
    with pytest.raises(InvalidInputError):
        await catalog.create_train(train_request(colombo.id, kandy.id, train_number=train.train_number))


@pytest.mark.asyncio
async def test_train_with_unknown_station(catalog, stations):
    colombo, _ = stations
    with pytest.raises(NotFoundError):
        await catalog.create_train(train_request(colombo.id, "00000000-0000-0000-0000-00000000dead"))


@pytest.mark.asyncio
async def test_duplicate_station_rejected(catalog, stations):
    with pytest.raises(InvalidInputError):
        await catalog.create_station(CreateStationRequest(name="Kandy"))


@pytest.mark.asyncio
async def test_station_logs_carry_station_name(catalog, caplog):
    """Station create and duplicate paths log at INFO and WARNING without clobbering record fields."""
    caplog.set_level(logging.INFO)

    station = await catalog.create_station(CreateStationRequest(name="Galle", code="GLE"))
    with pytest.raises(InvalidInputError):
        await catalog.create_station(CreateStationRequest(name="Galle"))

    created = [r for r in caplog.records if r.getMessage() == "Station created successfully"]
    assert [r.station_name for r in created] == ["Galle"]
    assert created[0].station_id == station.id
    rejected = [r for r in caplog.records if r.levelno == logging.WARNING and r.name == "railbook.services.catalog_service"]
    assert rejected[0].station_name == "Galle"


@pytest.mark.asyncio
async def test_list_stations_by_name(catalog, stations):
    names = [s.name for s in await catalog.list_stations()]
    assert names == ["Colombo Fort", "Kandy"]


@pytest.mark.asyncio
async def test_find_trains_ordered_by_departure(catalog, stations, train):
    colombo, kandy = stations
    later = await catalog.create_train(train_request(colombo.id, kandy.id, departure_time="15:35"))
    earlier = await catalog.create_train(
        train_request(colombo.id, kandy.id, train_number="1001", departure_time="04:00", arrival_time="07:00")
    )
    # Opposite direction is not returned
    await catalog.create_train(train_request(kandy.id, colombo.id, train_number="1006"))

    found = await catalog.find_trains(colombo.id, kandy.id)
    assert [t.id for t in found] == [earlier.id, train.id, later.id]


@pytest.mark.asyncio
async def test_missing_train(catalog):
    missing = "00000000-0000-0000-0000-000000000404"
    assert await catalog.get_train(missing) is None
    with pytest.raises(NotFoundError) as exc_info:
        await catalog.get_train_or_raise(missing)
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_malformed_train_id(catalog):
    with pytest.raises(InvalidInputError):
        await catalog.get_train("not-a-uuid")


def test_same_departure_and_arrival_rejected():
    station_id = "00000000-0000-0000-0000-0000000000aa"
    with pytest.raises(ValueError):
        train_request(station_id, station_id)


def test_overnight_duration():
    request = train_request(
        "00000000-0000-0000-0000-0000000000aa",
        "00000000-0000-0000-0000-0000000000bb",
        departure_time="20:00",
        arrival_time="05:30",
    )
    train = Train(id="00000000-0000-0000-0000-000000000001", **request.model_dump())
    assert train.duration_minutes == 570
