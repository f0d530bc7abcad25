"""Ticket number and seat label allocation."""

import logging
import secrets
import string
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from ..schemas.booking import Booking

logger = logging.getLogger(__name__)

SEATS_PER_ROW = 4
TICKET_CODE_LENGTH = 8
MAX_ATTEMPTS = 20


@dataclass(frozen=True)
class IssuedTicket:
    ticket_number: str
    seat_labels: list[str]


class TicketIssuer:
    """
    Issues ticket numbers and seat labels for confirmed bookings.

    Ticket numbers are never reused: candidates are checked against every
    number issued by this process and, when ``is_taken`` is given, against
    the booking store.
    """

    def __init__(
        self,
        prefix: str = "TK",
        is_taken: Callable[[str], Awaitable[bool]] | None = None,
    ):
        self.prefix = prefix
        self._is_taken = is_taken
        self._issued: set[str] = set()

    def _generate_ticket_number(self, length: int = TICKET_CODE_LENGTH) -> str:
        """Generate a random ticket number."""
        alphabet = string.ascii_uppercase + string.digits
        return self.prefix + ''.join(secrets.choice(alphabet) for _ in range(length))

    @staticmethod
    def seat_label(train_number: str, index: int) -> str:
        """
        Seat label for the passenger at ``index`` within a booking.

        Four seats per row: last two characters of the train number, the row
        letter, then the seat in the row. Labels are not unique across bookings.
        """
        row = chr(ord('A') + index // SEATS_PER_ROW)
        return f"{train_number[-2:]}{row}{index % SEATS_PER_ROW + 1}"

    def seat_labels(self, train_number: str, count: int) -> list[str]:
        return [self.seat_label(train_number, i) for i in range(count)]

    async def next_ticket_number(self) -> str:
        for _ in range(MAX_ATTEMPTS):
            candidate = self._generate_ticket_number()
            if candidate in self._issued:
                continue
            # Claim before awaiting so concurrent issues cannot pick the same number
            self._issued.add(candidate)
            if self._is_taken is not None and await self._is_taken(candidate):
                continue
            return candidate

        raise RuntimeError("Could not allocate an unused ticket number")

    async def issue(self, booking: Booking, train_number: str) -> IssuedTicket:
        """Allocate a ticket number and one seat label per passenger."""
        ticket_number = await self.next_ticket_number()
        labels = self.seat_labels(train_number, booking.passenger_count)

        logger.info(
            "Ticket issued",
            extra={
                "booking_id": booking.id,
                "ticket_number": ticket_number,
                "seat_labels": labels,
            }
        )
        return IssuedTicket(ticket_number=ticket_number, seat_labels=labels)
