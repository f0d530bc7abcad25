"""Unit tests for the seat inventory manager."""

from datetime import date

import pytest

from railbook.core.exceptions import (
    AlreadyReleasedError,
    ErrorKind,
    InsufficientSeatsError,
    InvalidStateError,
)
from railbook.schemas.catalog import TicketClass
from railbook.services.seat_inventory import InventoryKey, ReservationToken, SeatInventoryManager, TokenState

KEY = InventoryKey("train-1", date(2030, 1, 20), TicketClass.SECOND)


@pytest.fixture
def inventory():
    return SeatInventoryManager()


@pytest.mark.asyncio
async def test_reserve_reduces_available_seats(inventory):
    token = await inventory.reserve(KEY, 3, capacity=10)

    assert token.seats == 3
    assert token.key == KEY
    assert inventory.available_seats(KEY, 10) == 7
    assert inventory.snapshot(KEY) == {"capacity": 10, "reserved": 3, "available": 7}
    assert inventory.token_state(token.token_id) == TokenState.HELD


@pytest.mark.asyncio
async def test_reserve_beyond_capacity_fails_without_mutation(inventory):
    await inventory.reserve(KEY, 8, capacity=10)

    with pytest.raises(InsufficientSeatsError) as exc_info:
        await inventory.reserve(KEY, 3, capacity=10)

    assert exc_info.value.kind == ErrorKind.INSUFFICIENT_SEATS
    assert exc_info.value.retryable is True
    assert exc_info.value.available_seats == 2
    assert inventory.snapshot(KEY)["reserved"] == 8


@pytest.mark.asyncio
async def test_reserve_exactly_remaining_capacity(inventory):
    await inventory.reserve(KEY, 9, capacity=10)
    await inventory.reserve(KEY, 1, capacity=10)
    assert inventory.available_seats(KEY) == 0


@pytest.mark.asyncio
async def test_keys_are_independent(inventory):
    other = InventoryKey("train-1", date(2030, 1, 20), TicketClass.FIRST)
    await inventory.reserve(KEY, 10, capacity=10)

    token = await inventory.reserve(other, 5, capacity=5)
    assert token.key == other
    assert inventory.available_seats(KEY) == 0
    assert inventory.available_seats(other) == 0


@pytest.mark.asyncio
async def test_release_returns_seats(inventory):
    token = await inventory.reserve(KEY, 4, capacity=10)
    await inventory.release(token)

    assert inventory.available_seats(KEY, 10) == 10
    assert inventory.token_state(token.token_id) == TokenState.RELEASED


@pytest.mark.asyncio
async def test_double_release_changes_state_once(inventory):
    other = await inventory.reserve(KEY, 2, capacity=10)
    token = await inventory.reserve(KEY, 4, capacity=10)
    await inventory.release(token)

    with pytest.raises(AlreadyReleasedError) as exc_info:
        await inventory.release(token)

    assert exc_info.value.kind == ErrorKind.ALREADY_RELEASED
    # The second release must not eat into another reservation's seats
    assert inventory.snapshot(KEY)["reserved"] == other.seats


@pytest.mark.asyncio
async def test_commit_is_idempotent(inventory):
    token = await inventory.reserve(KEY, 2, capacity=10)
    await inventory.commit(token)
    await inventory.commit(token)

    assert inventory.token_state(token.token_id) == TokenState.COMMITTED
    assert inventory.snapshot(KEY)["reserved"] == 2


@pytest.mark.asyncio
async def test_release_after_commit_is_invalid(inventory):
    token = await inventory.reserve(KEY, 2, capacity=10)
    await inventory.commit(token)

    with pytest.raises(InvalidStateError):
        await inventory.release(token)
    assert inventory.snapshot(KEY)["reserved"] == 2


@pytest.mark.asyncio
async def test_commit_after_release_is_invalid(inventory):
    token = await inventory.reserve(KEY, 2, capacity=10)
    await inventory.release(token)

    with pytest.raises(InvalidStateError):
        await inventory.commit(token)


@pytest.mark.asyncio
async def test_unknown_token_is_invalid(inventory):
    await inventory.reserve(KEY, 1, capacity=10)
    stranger = ReservationToken(token_id="nope", key=KEY, seats=1)

    with pytest.raises(InvalidStateError):
        await inventory.release(stranger)
    with pytest.raises(InvalidStateError):
        await inventory.commit(stranger)


@pytest.mark.asyncio
async def test_capacity_never_lowered_below_reserved(inventory):
    await inventory.reserve(KEY, 6, capacity=10)

    # Capacity reduced by an administrator after the reservation
    with pytest.raises(InsufficientSeatsError):
        await inventory.reserve(KEY, 1, capacity=4)

    snapshot = inventory.snapshot(KEY)
    assert snapshot["capacity"] == 6
    assert snapshot["reserved"] <= snapshot["capacity"]
    assert inventory.available_seats(KEY, 4) == 0


@pytest.mark.asyncio
async def test_capacity_increase_is_picked_up(inventory):
    await inventory.reserve(KEY, 10, capacity=10)
    await inventory.reserve(KEY, 5, capacity=15)
    assert inventory.snapshot(KEY) == {"capacity": 15, "reserved": 15, "available": 0}


@pytest.mark.asyncio
async def test_available_seats_for_unknown_key(inventory):
    assert inventory.available_seats(KEY, 12) == 12
    assert inventory.available_seats(KEY) == 0
    assert inventory.snapshot(KEY) == {"capacity": 0, "reserved": 0, "available": 0}


@pytest.mark.asyncio
async def test_restore_rebuilds_counters(inventory):
    held = ReservationToken(token_id="held", key=KEY, seats=3)
    committed = ReservationToken(token_id="committed", key=KEY, seats=2)

    await inventory.restore(held, capacity=10)
    await inventory.restore(committed, capacity=10, committed=True)
    # Restoring the same token twice does not double count
    await inventory.restore(held, capacity=10)

    assert inventory.snapshot(KEY)["reserved"] == 5
    assert inventory.token_state("committed") == TokenState.COMMITTED

    await inventory.release(held)
    assert inventory.snapshot(KEY)["reserved"] == 2


@pytest.mark.asyncio
async def test_reserve_requires_positive_seats(inventory):
    with pytest.raises(ValueError):
        await inventory.reserve(KEY, 0, capacity=10)
