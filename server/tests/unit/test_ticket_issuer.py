"""Unit tests for ticket number and seat label allocation."""

from datetime import date, datetime

import pytest

from railbook.schemas.booking import Booking, BookingStatus
from railbook.schemas.catalog import TicketClass
from railbook.services.ticket_issuer import TicketIssuer


def make_booking(passenger_count: int) -> Booking:
    now = datetime(2030, 1, 10, 8, 0)
    return Booking(
        id="00000000-0000-0000-0000-000000000010",
        user_id="user-1",
        train_id="00000000-0000-0000-0000-000000000001",
        travel_date=date(2030, 1, 20),
        ticket_class=TicketClass.SECOND,
        passenger_count=passenger_count,
        status=BookingStatus.AWAITING_PAYMENT,
        reservation_id="res-1",
        hold_expires_at=now,
        currency="LKR",
        created_at=now,
        updated_at=now,
    )


def test_seat_labels_four_per_row():
    labels = TicketIssuer().seat_labels("1005", 6)
    assert labels == ["05A1", "05A2", "05A3", "05A4", "05B1", "05B2"]


def test_seat_label_uses_last_two_digits_of_train_number():
    assert TicketIssuer.seat_label("19", 0) == "19A1"
    assert TicketIssuer.seat_label("8052", 9) == "52C2"


@pytest.mark.asyncio
async def test_ticket_numbers_have_prefix_and_are_unique():
    issuer = TicketIssuer(prefix="TK")
    numbers = {await issuer.next_ticket_number() for _ in range(200)}

    assert len(numbers) == 200
    assert all(n.startswith("TK") and len(n) == 10 for n in numbers)


@pytest.mark.asyncio
async def test_taken_numbers_are_skipped():
    seen = []

    async def is_taken(candidate: str) -> bool:
        seen.append(candidate)
        # Pretend the first two candidates already exist in storage
        return len(seen) <= 2

    issuer = TicketIssuer(is_taken=is_taken)
    number = await issuer.next_ticket_number()

    assert len(seen) == 3
    assert number == seen[-1]


@pytest.mark.asyncio
async def test_gives_up_when_every_candidate_is_taken():
    async def always_taken(candidate: str) -> bool:
        return True

    issuer = TicketIssuer(is_taken=always_taken)
    with pytest.raises(RuntimeError):
        await issuer.next_ticket_number()


@pytest.mark.asyncio
async def test_issue_returns_one_label_per_passenger():
    issued = await TicketIssuer(prefix="RB").issue(make_booking(3), "1005")

    assert issued.ticket_number.startswith("RB")
    assert issued.seat_labels == ["05A1", "05A2", "05A3"]
