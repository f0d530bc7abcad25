"""Unit tests for fare calculation."""

import pytest

from railbook.core.exceptions import ErrorKind, InvalidInputError
from railbook.schemas.catalog import TicketClass, Train
from railbook.schemas.common import Money
from railbook.services.fare_calculator import FareCalculator


def make_train(base: int = 1000, **prices) -> Train:
    return Train(
        id="00000000-0000-0000-0000-000000000001",
        train_number="1005",
        name="Podi Menike",
        train_type="Express",
        departure_station_id="00000000-0000-0000-0000-0000000000aa",
        arrival_station_id="00000000-0000-0000-0000-0000000000bb",
        departure_time="05:55",
        arrival_time="08:50",
        base_price=Money(amount=base, currency="LKR"),
        first_class_seats=5,
        second_class_seats=10,
        third_class_seats=20,
        **{name: Money(amount=amount, currency="LKR") for name, amount in prices.items()},
    )


@pytest.fixture
def calculator():
    return FareCalculator(booking_fee_amount=5000)


def test_second_class_for_three_passengers(calculator):
    """Base 1000 for 3 second-class passengers is 3000, with no fee at quote time."""
    assert calculator.price(make_train(), TicketClass.SECOND, 3) == Money(amount=3000, currency="LKR")


@pytest.mark.parametrize(
    "ticket_class, expected",
    [(TicketClass.FIRST, 1500), (TicketClass.SECOND, 1000), (TicketClass.THIRD, 750)],
)
def test_class_multipliers(calculator, ticket_class, expected):
    assert calculator.price(make_train(), ticket_class, 1).amount == expected


def test_explicit_class_price_beats_multiplier(calculator):
    train = make_train(first_class_price=2200)
    assert calculator.unit_price(train, TicketClass.FIRST).amount == 2200
    # Classes without an explicit price still use the multiplier
    assert calculator.unit_price(train, TicketClass.THIRD).amount == 750


def test_multiplier_rounds_half_up_before_multiplying(calculator):
    # 1001 * 0.75 = 750.75 -> 751 per seat
    train = make_train(base=1001)
    assert calculator.unit_price(train, TicketClass.THIRD).amount == 751
    assert calculator.price(train, TicketClass.THIRD, 4).amount == 751 * 4


def test_half_minor_unit_rounds_up(calculator):
    # 999 * 1.5 = 1498.5 -> 1499
    assert calculator.unit_price(make_train(base=999), TicketClass.FIRST).amount == 1499


def test_ticket_class_accepts_names_and_numbers(calculator):
    train = make_train()
    assert calculator.price(train, "first", 1).amount == 1500
    assert calculator.price(train, 3, 2).amount == 1500
    assert calculator.price(train, "2", 1).amount == 1000


@pytest.mark.parametrize("count", [0, 11, -1])
def test_passenger_count_out_of_range(calculator, count):
    with pytest.raises(InvalidInputError) as exc_info:
        calculator.price(make_train(), TicketClass.SECOND, count)
    assert exc_info.value.kind == ErrorKind.INVALID_INPUT
    assert exc_info.value.status_code == 400


@pytest.mark.parametrize("ticket_class", ["business", 4, "", True, False])
def test_unknown_ticket_class(calculator, ticket_class):
    with pytest.raises(InvalidInputError):
        calculator.price(make_train(), ticket_class, 1)


@pytest.mark.parametrize("flag", [True, False])
def test_ticket_class_rejects_booleans(flag):
    # bool is an int subclass; True must not read as class 1
    with pytest.raises(ValueError):
        TicketClass.parse(flag)


def test_checkout_total_adds_fee_once_per_booking(calculator):
    fare = calculator.price(make_train(), TicketClass.SECOND, 4)
    total = calculator.checkout_total(fare)
    assert total == Money(amount=4000 + 5000, currency="LKR")


def test_negative_booking_fee_rejected():
    with pytest.raises(ValueError):
        FareCalculator(booking_fee_amount=-1)
