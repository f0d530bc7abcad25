"""Models module exporting all database models."""

from .booking import Booking, BookingEvent, Passenger
from .catalog import Station, Train

__all__ = [
    # Reference catalog
    "Station",
    "Train",

    # Booking entities
    "Booking",
    "Passenger",
    "BookingEvent",
]
