"""Booking-related Pydantic schemas."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .catalog import TicketClass
from .common import Money, PaginatedResponse

MAX_PASSENGERS = 10


class BookingStatus(str, Enum):
    """Booking lifecycle states."""
    DRAFT = "DRAFT"
    AWAITING_PASSENGERS = "AWAITING_PASSENGERS"
    AWAITING_PAYMENT = "AWAITING_PAYMENT"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.FAILED, BookingStatus.CANCELLED})
ACTIVE_STATUSES = frozenset(BookingStatus) - TERMINAL_STATUSES


class Gender(str, Enum):
    """Passenger gender."""
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class PaymentMethod(str, Enum):
    """Supported (simulated) payment methods."""
    CARD = "card"
    MOBILE = "mobile"
    PAYPAL = "paypal"


class ContactInfo(BaseModel):
    """Contact details attached to a booking before payment."""

    email: str = Field(
        ...,
        max_length=255,
        pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$",
        description="Contact email"
    )
    phone: str = Field(
        ...,
        min_length=10,
        max_length=32,
        pattern=r"^\+?[0-9][0-9 \-]{8,}[0-9]$",
        description="Contact phone number"
    )


class PassengerDetails(BaseModel):
    """Passenger data captured before payment."""

    first_name: str = Field(..., min_length=2, max_length=128)
    last_name: str = Field(..., min_length=2, max_length=128)
    id_number: str = Field(..., min_length=5, max_length=64, description="NIC or passport number")
    gender: Gender

    @field_validator("first_name", "last_name", "id_number", mode="before")
    @classmethod
    def strip_whitespace(cls, v):
        return v.strip() if isinstance(v, str) else v


class Passenger(PassengerDetails):
    """Passenger on a booking; the seat label is set at confirmation."""

    seat_label: str | None = Field(None, description="Assigned seat, e.g. 05A1")


class Booking(BaseModel):
    """A booking and everything the state machine knows about it."""

    id: str = Field(..., description="Unique booking ID")
    user_id: str = Field(..., description="Customer reference")
    train_id: str = Field(..., description="Booked train")
    travel_date: date = Field(..., description="Date of travel")
    ticket_class: TicketClass
    passenger_count: int = Field(..., ge=1, le=MAX_PASSENGERS)
    status: BookingStatus
    reservation_id: str = Field(..., description="Seat reservation held by this booking")
    hold_expires_at: datetime = Field(..., description="When unpaid seats are released (UTC)")
    currency: str = Field(..., description="ISO 4217 currency")
    fare: Money | None = Field(None, description="Seat fares for all passengers")
    booking_fee: Money | None = Field(None, description="Flat fee added at checkout")
    total_price: Money | None = Field(None, description="Fare plus booking fee")
    contact: ContactInfo | None = None
    passengers: list[Passenger] = Field(default_factory=list)
    payment_method: PaymentMethod | None = None
    transaction_id: str | None = None
    failure_reason: str | None = None
    cancellation_reason: str | None = None
    ticket_number: str | None = Field(None, description="Assigned only once CONFIRMED")
    created_at: datetime = Field(..., description="Booking timestamp (UTC)")
    updated_at: datetime = Field(..., description="Last transition (UTC)")

    @property
    def seat_labels(self) -> list[str]:
        return [p.seat_label for p in self.passengers if p.seat_label]


class BookingEvent(BaseModel):
    """One recorded state transition."""

    model_config = ConfigDict(from_attributes=True)

    from_status: BookingStatus | None = Field(None, description="None for the creating transition")
    to_status: BookingStatus
    reason: str | None = None
    occurred_at: datetime


class BookingEventsResponse(BaseModel):
    """Audit trail of a booking, oldest first."""

    booking_id: str
    items: list[BookingEvent]


class CreateBookingRequest(BaseModel):
    """Request schema for reserving seats and opening a booking."""

    user_id: str = Field(..., min_length=1, max_length=128, description="Customer reference")
    train_id: str = Field(..., description="Selected train")
    travel_date: date = Field(..., description="Date of travel")
    ticket_class: TicketClass = Field(..., description="Ticket class")
    passenger_count: int = Field(..., ge=1, le=MAX_PASSENGERS, description="Seats to reserve")

    @field_validator("ticket_class", mode="before")
    @classmethod
    def parse_ticket_class(cls, v):
        return TicketClass.parse(v)


class AttachPassengersRequest(BaseModel):
    """Request schema for attaching contact and passenger details."""

    booking_id: str = Field(..., description="Booking to update")
    contact: ContactInfo
    passengers: list[PassengerDetails] = Field(..., min_length=1, max_length=MAX_PASSENGERS)


class PaymentDetails(BaseModel):
    """Payment data submitted at checkout."""

    method: PaymentMethod = Field(..., description="Payment method")
    card_number: str | None = Field(None, pattern=r"^\d{16}$", description="16-digit card number")
    card_name: str | None = Field(None, min_length=3, max_length=128, description="Name on card")
    expiration_date: str | None = Field(None, pattern=r"^(0[1-9]|1[0-2])/\d{2}$", description="MM/YY")
    cvc: str | None = Field(None, pattern=r"^\d{3,4}$", description="Card security code")
    amount: Money | None = Field(None, description="Amount the customer agreed to pay")

    @model_validator(mode="after")
    def require_card_fields(self) -> "PaymentDetails":
        if self.method == PaymentMethod.CARD:
            missing = [
                name for name in ("card_number", "card_name", "expiration_date", "cvc")
                if getattr(self, name) is None
            ]
            if missing:
                raise ValueError(f"Card payments require: {', '.join(missing)}")
        return self


class PaymentReceipt(BaseModel):
    """Outcome of a successful charge."""

    transaction_id: str
    method: PaymentMethod
    amount: Money
    processed_at: datetime


class SubmitPaymentRequest(BaseModel):
    """Request schema for paying for a booking."""

    booking_id: str = Field(..., description="Booking to pay for")
    payment: PaymentDetails


class CancelBookingRequest(BaseModel):
    """Request schema for cancelling a booking."""

    booking_id: str = Field(..., description="Booking to cancel")


class GetBookingRequest(BaseModel):
    """Request schema for getting a booking."""

    booking_id: str = Field(..., description="Booking to retrieve")


class ListBookingsRequest(BaseModel):
    """Request schema for listing bookings (admin back-office)."""

    status: BookingStatus | None = Field(None, description="Filter by status")
    train_id: str | None = Field(None, description="Filter by train")
    user_id: str | None = Field(None, description="Filter by customer")
    cursor: str | None = Field(None, description="Pagination cursor")
    limit: int = Field(20, ge=1, le=100, description="Results per page")


class ListBookingsResponse(PaginatedResponse):
    """Response schema for booking listing."""

    items: list[Booking] = Field(..., description="Bookings, newest first")
