"""FastAPI dependencies and booking engine wiring."""

from datetime import timedelta

from fastapi import Depends, Request

from ..services.booking_engine import BookingEngine
from ..services.booking_store import BookingStore
from ..services.catalog_service import CatalogService
from ..services.fare_calculator import FareCalculator
from ..services.payment_gateway import SimulatedPaymentGateway
from ..services.seat_inventory import SeatInventoryManager
from ..services.ticket_issuer import TicketIssuer
from .config import Settings, settings as default_settings
from .database import SessionProvider


def create_booking_engine(sessions: SessionProvider, settings: Settings | None = None) -> BookingEngine:
    """
    Build a booking engine and its collaborators from settings.

    Args:
        sessions: Session provider shared by the catalog and the store
        settings: Application settings (defaults to the global settings)

    Returns:
        BookingEngine: Engine with an empty in-memory seat inventory
    """
    settings = settings or default_settings
    store = BookingStore(sessions)
    return BookingEngine(
        catalog=CatalogService(sessions),
        store=store,
        inventory=SeatInventoryManager(),
        fare_calculator=FareCalculator(booking_fee_amount=settings.booking_fee_amount),
        ticket_issuer=TicketIssuer(
            prefix=settings.ticket_number_prefix,
            is_taken=store.ticket_number_exists,
        ),
        payment_gateway=SimulatedPaymentGateway(
            declined_card_numbers=settings.declined_card_numbers,
            latency_seconds=settings.payment_latency_seconds,
        ),
        hold_window=timedelta(seconds=settings.hold_window_seconds),
    )


def get_booking_engine(request: Request) -> BookingEngine:
    """
    Booking engine dependency.

    Returns:
        BookingEngine: The engine created during application start-up
    """
    return request.app.state.booking_engine


def get_catalog(request: Request) -> CatalogService:
    """Catalog service dependency."""
    return request.app.state.booking_engine.catalog


Engine = Depends(get_booking_engine)
Catalog = Depends(get_catalog)
