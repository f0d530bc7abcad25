"""Fare calculation for train tickets."""

import logging
from decimal import ROUND_HALF_UP, Decimal

from ..core.exceptions import InvalidInputError
from ..schemas.booking import MAX_PASSENGERS
from ..schemas.catalog import TicketClass, Train
from ..schemas.common import Money

logger = logging.getLogger(__name__)

# Multipliers applied to the second-class base price
CLASS_MULTIPLIERS = {
    TicketClass.FIRST: Decimal("1.5"),
    TicketClass.SECOND: Decimal("1.0"),
    TicketClass.THIRD: Decimal("0.75"),
}

DEFAULT_BOOKING_FEE = 5000


class FareCalculator:
    """
    Pure fare computation.

    Prices are integer minor units. An explicit per-class price stored on the
    train takes precedence; otherwise the class multiplier is applied to the
    base price and rounded half-up to a whole minor unit.
    """

    def __init__(self, booking_fee_amount: int = DEFAULT_BOOKING_FEE):
        if booking_fee_amount < 0:
            raise ValueError("booking_fee_amount must be non-negative")
        self.booking_fee_amount = booking_fee_amount

    def unit_price(self, train: Train, ticket_class: TicketClass | str | int) -> Money:
        """Fare for a single seat in the given class."""
        ticket_class = parse_ticket_class(ticket_class)

        explicit = train.explicit_price_for(ticket_class)
        if explicit is not None:
            return explicit

        amount = (Decimal(train.base_price.amount) * CLASS_MULTIPLIERS[ticket_class]).quantize(
            Decimal("1"), rounding=ROUND_HALF_UP
        )
        return Money(amount=int(amount), currency=train.currency)

    def price(self, train: Train, ticket_class: TicketClass | str | int, passenger_count: int) -> Money:
        """
        Total fare for ``passenger_count`` seats, without the booking fee.

        Raises:
            InvalidInputError: If the count is outside 1..10 or the class is unknown
        """
        check_passenger_count(passenger_count)
        unit = self.unit_price(train, ticket_class)
        return Money(amount=unit.amount * passenger_count, currency=unit.currency)

    def booking_fee(self, currency: str) -> Money:
        return Money(amount=self.booking_fee_amount, currency=currency)

    def checkout_total(self, fare: Money) -> Money:
        """Fare plus the flat per-booking fee."""
        return fare + self.booking_fee(fare.currency)


def parse_ticket_class(ticket_class: TicketClass | str | int) -> TicketClass:
    """
    Normalize a ticket class.

    Raises:
        InvalidInputError: If the class is unknown
    """
    try:
        return TicketClass.parse(ticket_class)
    except ValueError:
        logger.warning("Unknown ticket class", extra={"ticket_class": str(ticket_class)})
        raise InvalidInputError(
            detail=f"Unknown ticket class: {ticket_class!r}",
            errors={"ticket_class": str(ticket_class)},
        ) from None


def check_passenger_count(passenger_count: int) -> None:
    """
    Raises:
        InvalidInputError: If the count is not an integer in 1..10
    """
    if isinstance(passenger_count, bool) or not isinstance(passenger_count, int):
        raise InvalidInputError(
            detail="Passenger count must be an integer",
            errors={"passenger_count": str(passenger_count)},
        )
    if not 1 <= passenger_count <= MAX_PASSENGERS:
        raise InvalidInputError(
            detail=f"Passenger count must be between 1 and {MAX_PASSENGERS}",
            errors={"passenger_count": passenger_count},
        )
