"""In-memory seat inventory with per-key atomic reserve/release/commit."""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from ..core.exceptions import AlreadyReleasedError, InsufficientSeatsError, InvalidStateError
from ..schemas.catalog import TicketClass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InventoryKey:
    """Identifies one seat pool: a class on a train on a date."""

    train_id: str
    travel_date: date
    ticket_class: TicketClass

    def as_dict(self) -> dict:
        return {
            "train_id": self.train_id,
            "travel_date": self.travel_date.isoformat(),
            "ticket_class": self.ticket_class.value,
        }


@dataclass(frozen=True)
class ReservationToken:
    """Handle returned by a successful reserve; required to release or commit."""

    token_id: str
    key: InventoryKey
    seats: int


class TokenState(str, Enum):
    HELD = "HELD"
    COMMITTED = "COMMITTED"
    RELEASED = "RELEASED"


@dataclass
class _InventoryEntry:
    capacity: int
    reserved: int = 0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @property
    def available(self) -> int:
        return self.capacity - self.reserved


class SeatInventoryManager:
    """
    Owns the reserved-seat counters for every inventory key.

    Every check-and-mutate on a key runs under that key's ``asyncio.Lock``,
    so ``0 <= reserved <= capacity`` holds for any interleaving of callers.
    Nothing awaits while a key lock is held apart from acquiring it.
    Counters are never exposed for direct mutation.
    """

    def __init__(self):
        self._entries: dict[InventoryKey, _InventoryEntry] = {}
        self._tokens: dict[str, TokenState] = {}

    def _entry(self, key: InventoryKey, capacity: int) -> _InventoryEntry:
        return self._entries.setdefault(key, _InventoryEntry(capacity=capacity))

    async def reserve(self, key: InventoryKey, seats: int, capacity: int) -> ReservationToken:
        """
        Atomically reserve ``seats`` seats against ``key``.

        ``capacity`` is the catalog's current capacity for the key; it refreshes
        the stored value but never drops below what is already reserved.

        Raises:
            InsufficientSeatsError: If fewer than ``seats`` seats are free
        """
        if seats < 1:
            raise ValueError("seats must be positive")

        entry = self._entry(key, capacity)
        async with entry.lock:
            entry.capacity = max(capacity, entry.reserved)
            if entry.available < seats:
                logger.info(
                    "Seat reservation rejected - insufficient seats",
                    extra={
                        **key.as_dict(),
                        "requested_seats": seats,
                        "available_seats": entry.available,
                    }
                )
                raise InsufficientSeatsError(
                    requested_seats=seats,
                    available_seats=entry.available,
                    inventory_key=key.as_dict(),
                )

            entry.reserved += seats
            token = ReservationToken(token_id=uuid.uuid4().hex, key=key, seats=seats)
            self._tokens[token.token_id] = TokenState.HELD

        logger.debug(
            "Seats reserved",
            extra={
                **key.as_dict(),
                "reservation_id": token.token_id,
                "seats": seats,
                "reserved": entry.reserved,
                "capacity": entry.capacity,
            }
        )
        return token

    async def release(self, token: ReservationToken) -> None:
        """
        Return a held reservation's seats to the pool, exactly once.

        Raises:
            AlreadyReleasedError: On a second release; counters are untouched
            InvalidStateError: If the token is committed or unknown
        """
        entry = self._entries.get(token.key)
        if entry is None:
            raise InvalidStateError(
                detail=f"Reservation {token.token_id} is unknown",
            )

        async with entry.lock:
            state = self._tokens.get(token.token_id)
            if state is None:
                raise InvalidStateError(detail=f"Reservation {token.token_id} is unknown")
            if state == TokenState.RELEASED:
                raise AlreadyReleasedError(token.token_id)
            if state == TokenState.COMMITTED:
                raise InvalidStateError(
                    detail=f"Reservation {token.token_id} is committed and cannot be released",
                    current_state=state.value,
                )

            entry.reserved -= token.seats
            self._tokens[token.token_id] = TokenState.RELEASED

        logger.debug(
            "Seats released",
            extra={**token.key.as_dict(), "reservation_id": token.token_id, "seats": token.seats}
        )

    async def commit(self, token: ReservationToken) -> None:
        """
        Make a held reservation permanent. Committing twice is a no-op.

        Raises:
            InvalidStateError: If the token was released or is unknown
        """
        entry = self._entries.get(token.key)
        if entry is None:
            raise InvalidStateError(detail=f"Reservation {token.token_id} is unknown")

        async with entry.lock:
            state = self._tokens.get(token.token_id)
            if state is None:
                raise InvalidStateError(detail=f"Reservation {token.token_id} is unknown")
            if state == TokenState.RELEASED:
                raise InvalidStateError(
                    detail=f"Reservation {token.token_id} was released and cannot be committed",
                    current_state=state.value,
                )
            self._tokens[token.token_id] = TokenState.COMMITTED

    async def restore(self, token: ReservationToken, capacity: int, committed: bool = False) -> None:
        """
        Re-register a reservation loaded from persistent storage.

        Used at start-up so counters reflect bookings made before a restart.
        Capacity is not enforced here: the bookings already exist.
        """
        entry = self._entry(token.key, capacity)
        async with entry.lock:
            if token.token_id in self._tokens:
                return
            entry.reserved += token.seats
            entry.capacity = max(capacity, entry.reserved)
            self._tokens[token.token_id] = TokenState.COMMITTED if committed else TokenState.HELD

    def available_seats(self, key: InventoryKey, capacity: int | None = None) -> int:
        """
        Free seats for display. Approximate: a later reserve may still fail.

        Keys never reserved report ``capacity`` (or 0 when not given).
        """
        entry = self._entries.get(key)
        if entry is None:
            return capacity or 0
        if capacity is None:
            return entry.available
        return max(capacity, entry.reserved) - entry.reserved

    def held_reservations(self) -> int:
        return sum(1 for state in self._tokens.values() if state == TokenState.HELD)

    def token_state(self, token_id: str) -> TokenState | None:
        return self._tokens.get(token_id)

    def snapshot(self, key: InventoryKey) -> dict:
        """Counters for one key, for diagnostics and tests."""
        entry = self._entries.get(key)
        if entry is None:
            return {"capacity": 0, "reserved": 0, "available": 0}
        return {"capacity": entry.capacity, "reserved": entry.reserved, "available": entry.available}
