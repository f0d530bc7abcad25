"""Booking, Passenger and BookingEvent model definitions."""

from datetime import date, datetime
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base


class Booking(Base):
    """Persisted booking; the row is rewritten on every state transition."""

    __tablename__ = "bookings"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    train_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("trains.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    travel_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    ticket_class: Mapped[str] = mapped_column(String(10), nullable=False)
    passenger_count: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(String(24), nullable=False, index=True)

    # Seat reservation held by this booking
    reservation_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    hold_expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)

    # Pricing in minor units, set on entering AWAITING_PAYMENT
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    fare_amount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    booking_fee_amount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_amount: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Contact details
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # Payment outcome
    payment_method: Mapped[str | None] = mapped_column(String(16), nullable=True)
    transaction_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(String(64), nullable=True)

    ticket_number: Mapped[str | None] = mapped_column(String(32), nullable=True, unique=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        CheckConstraint("passenger_count >= 1", name="ck_booking_passenger_count_positive"),
        CheckConstraint("passenger_count <= 10", name="ck_booking_passenger_count_max"),
        CheckConstraint("length(user_id) > 0", name="ck_booking_user_id_not_empty"),
        CheckConstraint("total_amount IS NULL OR total_amount >= 0", name="ck_booking_total_non_negative"),
    )

    passengers: Mapped[list["Passenger"]] = relationship(
        "Passenger",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="Passenger.position"
    )
    events: Mapped[list["BookingEvent"]] = relationship(
        "BookingEvent",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingEvent.id"
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, status={self.status}, train_id={self.train_id}, "
            f"travel_date={self.travel_date}, passengers={self.passenger_count})>"
        )


class Passenger(Base):
    """Passenger travelling on a booking."""

    __tablename__ = "passengers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    booking_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    first_name: Mapped[str] = mapped_column(String(128), nullable=False)
    last_name: Mapped[str] = mapped_column(String(128), nullable=False)
    id_number: Mapped[str] = mapped_column(String(64), nullable=False)
    gender: Mapped[str] = mapped_column(String(16), nullable=False)
    seat_label: Mapped[str | None] = mapped_column(String(16), nullable=True)

    __table_args__ = (
        CheckConstraint("position >= 0", name="ck_passenger_position_non_negative"),
    )

    booking: Mapped["Booking"] = relationship("Booking", back_populates="passengers")

    def __repr__(self) -> str:
        return f"<Passenger(booking_id={self.booking_id}, position={self.position}, seat={self.seat_label})>"


class BookingEvent(Base):
    """Audit record of a single booking state transition."""

    __tablename__ = "booking_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    booking_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    from_status: Mapped[str | None] = mapped_column(String(24), nullable=True)
    to_status: Mapped[str] = mapped_column(String(24), nullable=False)
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)

    booking: Mapped["Booking"] = relationship("Booking", back_populates="events")

    def __repr__(self) -> str:
        return (
            f"<BookingEvent(booking_id={self.booking_id}, "
            f"{self.from_status}->{self.to_status}, reason={self.reason})>"
        )
