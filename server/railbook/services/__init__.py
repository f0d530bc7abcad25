"""Service layer package."""

from .booking_engine import BookingEngine
from .booking_store import BookingStore
from .catalog_service import CatalogService
from .fare_calculator import FareCalculator
from .payment_gateway import PaymentGateway, SimulatedPaymentGateway
from .seat_inventory import InventoryKey, ReservationToken, SeatInventoryManager
from .ticket_issuer import IssuedTicket, TicketIssuer

__all__ = [
    "BookingEngine",
    "BookingStore",
    "CatalogService",
    "FareCalculator",
    "InventoryKey",
    "IssuedTicket",
    "PaymentGateway",
    "ReservationToken",
    "SeatInventoryManager",
    "SimulatedPaymentGateway",
    "TicketIssuer",
]
