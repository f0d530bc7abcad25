"""Concurrency tests for booking operations."""

import asyncio

import pytest

from conftest import TRAVEL_DATE
from railbook.core.exceptions import InsufficientSeatsError, InvalidStateError
from railbook.schemas.booking import BookingStatus
from railbook.schemas.catalog import TicketClass
from railbook.services.booking_engine import BookingEngine
from railbook.services.payment_gateway import SimulatedPaymentGateway


async def seats_left(engine, train):
    return await engine.available_seats(train.id, TRAVEL_DATE, TicketClass.SECOND)


@pytest.mark.asyncio
async def test_concurrent_bookings_no_overbooking(booking_engine, train):
    """Thirty customers race for ten second-class seats."""

    async def create_booking(customer_id: int):
        return await booking_engine.create_booking(
            user_id=f"customer_{customer_id}",
            train_id=train.id,
            travel_date=TRAVEL_DATE,
            ticket_class=TicketClass.SECOND,
            passenger_count=1,
        )

    results = await asyncio.gather(*(create_booking(i) for i in range(30)), return_exceptions=True)

    successful = [r for r in results if not isinstance(r, Exception)]
    failed = [r for r in results if isinstance(r, Exception)]

    assert len(successful) == 10
    assert all(isinstance(e, InsufficientSeatsError) for e in failed)
    assert await seats_left(booking_engine, train) == 0

    listing = await booking_engine.list_bookings(limit=100)
    assert len(listing.items) == 10


@pytest.mark.asyncio
async def test_last_seat_goes_to_exactly_one_customer(booking_engine, train):
    await booking_engine.create_booking("early", train.id, TRAVEL_DATE, TicketClass.SECOND, 9)

    results = await asyncio.gather(
        booking_engine.create_booking("alice", train.id, TRAVEL_DATE, TicketClass.SECOND, 1),
        booking_engine.create_booking("bob", train.id, TRAVEL_DATE, TicketClass.SECOND, 1),
        return_exceptions=True,
    )

    winners = [r for r in results if not isinstance(r, Exception)]
    assert len(winners) == 1
    assert sum(isinstance(r, InsufficientSeatsError) for r in results) == 1


@pytest.mark.asyncio
async def test_concurrent_double_payment(booking_engine, train, contact, make_passengers, card_payment):
    """Paying twice at once confirms the booking and issues a single ticket."""
    booking = await booking_engine.create_booking("user-1", train.id, TRAVEL_DATE, TicketClass.SECOND, 2)
    await booking_engine.attach_passengers(booking.id, contact, make_passengers(2))

    results = await asyncio.gather(
        booking_engine.submit_payment(booking.id, card_payment),
        booking_engine.submit_payment(booking.id, card_payment),
        return_exceptions=True,
    )

    confirmed = [r for r in results if not isinstance(r, Exception)]
    rejected = [r for r in results if isinstance(r, Exception)]
    assert len(confirmed) == 1
    assert len(rejected) == 1
    assert isinstance(rejected[0], InvalidStateError)

    stored = await booking_engine.get_booking(booking.id)
    assert stored.ticket_number == confirmed[0].ticket_number
    assert await seats_left(booking_engine, train) == 8

    events = await booking_engine.get_booking_events(booking.id)
    assert [e.to_status for e in events].count(BookingStatus.CONFIRMED) == 1


@pytest.mark.asyncio
async def test_expiry_sweep_during_payment(catalog, store, clock, train, contact, make_passengers, card_payment):
    """A sweep that runs while a payment is in flight leaves the booking CONFIRMED."""
    engine = BookingEngine(
        catalog=catalog,
        store=store,
        payment_gateway=SimulatedPaymentGateway(latency_seconds=0.05, clock=clock),
        clock=clock,
    )
    booking = await engine.create_booking("user-1", train.id, TRAVEL_DATE, TicketClass.SECOND, 2)
    await engine.attach_passengers(booking.id, contact, make_passengers(2))
    clock.advance(minutes=14, seconds=59)

    payment = asyncio.create_task(engine.submit_payment(booking.id, card_payment))
    await asyncio.sleep(0.01)
    # The hold lapses while the gateway is still charging
    clock.advance(seconds=30)
    expired = await engine.expire_stale_bookings()
    confirmed = await payment

    assert expired == 0
    assert confirmed.status == BookingStatus.CONFIRMED
    assert (await engine.get_booking(booking.id)).status == BookingStatus.CONFIRMED
    assert await seats_left(engine, train) == 8


@pytest.mark.asyncio
async def test_cancel_racing_payment(booking_engine, train, contact, make_passengers, card_payment):
    """Whichever of cancel and pay wins, the seat counters agree with the outcome."""
    booking = await booking_engine.create_booking("user-1", train.id, TRAVEL_DATE, TicketClass.SECOND, 3)
    await booking_engine.attach_passengers(booking.id, contact, make_passengers(3))

    results = await asyncio.gather(
        booking_engine.cancel_booking(booking.id),
        booking_engine.submit_payment(booking.id, card_payment),
        return_exceptions=True,
    )

    assert sum(isinstance(r, InvalidStateError) for r in results) == 1
    stored = await booking_engine.get_booking(booking.id)
    if stored.status == BookingStatus.CONFIRMED:
        assert await seats_left(booking_engine, train) == 7
    else:
        assert stored.status == BookingStatus.CANCELLED
        assert await seats_left(booking_engine, train) == 10


@pytest.mark.asyncio
async def test_concurrent_cancellations_release_once(booking_engine, train):
    booking = await booking_engine.create_booking("user-1", train.id, TRAVEL_DATE, TicketClass.SECOND, 4)
    other = await booking_engine.create_booking("user-2", train.id, TRAVEL_DATE, TicketClass.SECOND, 3)

    results = await asyncio.gather(
        *(booking_engine.cancel_booking(booking.id) for _ in range(5)),
        return_exceptions=True,
    )

    assert sum(not isinstance(r, Exception) for r in results) == 1
    assert all(isinstance(r, InvalidStateError) for r in results if isinstance(r, Exception))
    # Only the cancelled booking's seats come back
    assert await seats_left(booking_engine, train) == 10 - other.passenger_count
