"""Durable booking store: bookings, passengers and transition history."""

import logging
from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, exists, or_, select
from sqlalchemy.orm import selectinload

from ..core.database import SessionProvider
from ..core.exceptions import InvalidInputError, NotFoundError
from ..models.booking import Booking as BookingModel
from ..models.booking import BookingEvent as BookingEventModel
from ..models.booking import Passenger as PassengerModel
from ..schemas.booking import (
    ACTIVE_STATUSES,
    Booking,
    BookingEvent,
    BookingStatus,
    ContactInfo,
    Passenger,
    PaymentMethod,
)
from ..schemas.common import Money
from .catalog_service import parse_uuid

logger = logging.getLogger(__name__)


def _money(amount: int | None, currency: str) -> Money | None:
    if amount is None:
        return None
    return Money(amount=amount, currency=currency)


def booking_to_schema(row: BookingModel) -> Booking:
    """Convert a booking row (with passengers loaded) to its schema."""
    contact = None
    if row.contact_email and row.contact_phone:
        contact = ContactInfo(email=row.contact_email, phone=row.contact_phone)

    return Booking(
        id=str(row.id),
        user_id=row.user_id,
        train_id=str(row.train_id),
        travel_date=row.travel_date,
        ticket_class=row.ticket_class,
        passenger_count=row.passenger_count,
        status=BookingStatus(row.status),
        reservation_id=row.reservation_id,
        hold_expires_at=row.hold_expires_at,
        currency=row.currency,
        fare=_money(row.fare_amount, row.currency),
        booking_fee=_money(row.booking_fee_amount, row.currency),
        total_price=_money(row.total_amount, row.currency),
        contact=contact,
        passengers=[
            Passenger(
                first_name=p.first_name,
                last_name=p.last_name,
                id_number=p.id_number,
                gender=p.gender,
                seat_label=p.seat_label,
            )
            for p in row.passengers
        ],
        payment_method=PaymentMethod(row.payment_method) if row.payment_method else None,
        transaction_id=row.transaction_id,
        failure_reason=row.failure_reason,
        cancellation_reason=row.cancellation_reason,
        ticket_number=row.ticket_number,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _apply(row: BookingModel, booking: Booking) -> None:
    """Copy every mutable booking field onto its row."""
    row.status = booking.status.value
    row.hold_expires_at = booking.hold_expires_at
    row.currency = booking.currency
    row.fare_amount = booking.fare.amount if booking.fare else None
    row.booking_fee_amount = booking.booking_fee.amount if booking.booking_fee else None
    row.total_amount = booking.total_price.amount if booking.total_price else None
    row.contact_email = booking.contact.email if booking.contact else None
    row.contact_phone = booking.contact.phone if booking.contact else None
    row.payment_method = booking.payment_method.value if booking.payment_method else None
    row.transaction_id = booking.transaction_id
    row.failure_reason = booking.failure_reason
    row.cancellation_reason = booking.cancellation_reason
    row.ticket_number = booking.ticket_number
    row.updated_at = booking.updated_at

    # Passengers are matched by position
    existing = {p.position: p for p in row.passengers}
    for position, passenger in enumerate(booking.passengers):
        target = existing.pop(position, None)
        if target is None:
            target = PassengerModel(position=position)
            row.passengers.append(target)
        target.first_name = passenger.first_name
        target.last_name = passenger.last_name
        target.id_number = passenger.id_number
        target.gender = passenger.gender.value
        target.seat_label = passenger.seat_label
    for stale in existing.values():
        row.passengers.remove(stale)


def _encode_cursor(row: BookingModel) -> str:
    return f"{row.created_at.isoformat()}|{row.id}"


def _decode_cursor(cursor: str) -> tuple[datetime, UUID]:
    try:
        created_at, booking_id = cursor.split("|", 1)
        return datetime.fromisoformat(created_at), UUID(booking_id)
    except ValueError:
        logger.warning("Invalid cursor provided in booking listing", extra={"cursor": cursor})
        raise InvalidInputError(detail="Malformed pagination cursor", errors={"cursor": cursor}) from None


class BookingStore:
    """
    Persists bookings for the booking engine and the admin back-office.

    ``save`` writes the whole booking and one ``BookingEvent`` row in a
    single transaction.
    """

    def __init__(self, sessions: SessionProvider):
        self.sessions = sessions

    @staticmethod
    def _load_stmt():
        return select(BookingModel).options(selectinload(BookingModel.passengers))

    async def save(
        self,
        booking: Booking,
        from_status: BookingStatus | None,
        reason: str | None = None,
    ) -> None:
        """
        Insert or update ``booking`` and record the transition that produced it.

        Args:
            booking: Booking in its new state
            from_status: State before the transition (None on creation)
            reason: Free-form transition reason for the audit trail
        """
        booking_uuid = UUID(booking.id)

        async with self.sessions.session() as db:
            result = await db.execute(self._load_stmt().where(BookingModel.id == booking_uuid))
            row = result.scalar_one_or_none()
            if row is None:
                row = BookingModel(
                    id=booking_uuid,
                    user_id=booking.user_id,
                    train_id=UUID(booking.train_id),
                    travel_date=booking.travel_date,
                    ticket_class=booking.ticket_class.value,
                    passenger_count=booking.passenger_count,
                    reservation_id=booking.reservation_id,
                    created_at=booking.created_at,
                    passengers=[],
                )
                db.add(row)

            _apply(row, booking)

            db.add(BookingEventModel(
                booking_id=booking_uuid,
                from_status=from_status.value if from_status else None,
                to_status=booking.status.value,
                reason=reason,
                occurred_at=booking.updated_at,
            ))
            await db.commit()

        logger.debug(
            "Booking saved",
            extra={
                "booking_id": booking.id,
                "from_status": from_status.value if from_status else None,
                "to_status": booking.status.value,
                "reason": reason,
            }
        )

    async def get(self, booking_id: str) -> Booking | None:
        """Get booking by ID, or None when it does not exist."""
        booking_uuid = parse_uuid(booking_id, "booking_id")
        async with self.sessions.session() as db:
            result = await db.execute(self._load_stmt().where(BookingModel.id == booking_uuid))
            row = result.scalar_one_or_none()
        return booking_to_schema(row) if row else None

    async def get_or_raise(self, booking_id: str) -> Booking:
        """
        Get booking by ID or raise NotFoundError.

        Raises:
            NotFoundError: If booking not found
        """
        booking = await self.get(booking_id)
        if not booking:
            logger.warning("Booking not found", extra={"booking_id": booking_id})
            raise NotFoundError(resource_type="booking", resource_id=booking_id)
        return booking

    async def find_expired(self, now: datetime, limit: int = 100) -> list[Booking]:
        """Non-terminal bookings whose hold window ended at or before ``now``."""
        stmt = (
            self._load_stmt()
            .where(
                BookingModel.status.in_([s.value for s in ACTIVE_STATUSES]),
                BookingModel.hold_expires_at <= now,
            )
            .order_by(BookingModel.hold_expires_at)
            .limit(limit)
        )
        async with self.sessions.session() as db:
            result = await db.execute(stmt)
            rows = list(result.scalars())
        return [booking_to_schema(row) for row in rows]

    async def list_by_status(self, statuses: Iterable[BookingStatus]) -> list[Booking]:
        """All bookings in any of ``statuses``, oldest first."""
        stmt = (
            self._load_stmt()
            .where(BookingModel.status.in_([s.value for s in statuses]))
            .order_by(BookingModel.created_at, BookingModel.id)
        )
        async with self.sessions.session() as db:
            result = await db.execute(stmt)
            rows = list(result.scalars())
        return [booking_to_schema(row) for row in rows]

    async def list_bookings(
        self,
        status: BookingStatus | None = None,
        train_id: str | None = None,
        user_id: str | None = None,
        limit: int = 20,
        cursor: str | None = None,
    ) -> tuple[list[Booking], str | None]:
        """
        Bookings newest first, with cursor-based pagination.

        Returns:
            The page of bookings and the cursor for the next page (or None)
        """
        stmt = self._load_stmt()

        conditions = []
        if status:
            conditions.append(BookingModel.status == status.value)
        if train_id:
            conditions.append(BookingModel.train_id == parse_uuid(train_id, "train_id"))
        if user_id:
            conditions.append(BookingModel.user_id == user_id)
        if cursor:
            cursor_created_at, cursor_id = _decode_cursor(cursor)
            conditions.append(or_(
                BookingModel.created_at < cursor_created_at,
                and_(BookingModel.created_at == cursor_created_at, BookingModel.id < cursor_id),
            ))
        if conditions:
            stmt = stmt.where(and_(*conditions))

        # Fetch one extra row to determine if there's a next page
        stmt = stmt.order_by(BookingModel.created_at.desc(), BookingModel.id.desc()).limit(limit + 1)

        async with self.sessions.session() as db:
            result = await db.execute(stmt)
            rows = list(result.scalars())

        has_next_page = len(rows) > limit
        if has_next_page:
            rows = rows[:-1]
        next_cursor = _encode_cursor(rows[-1]) if has_next_page and rows else None

        logger.info(
            "Booking listing completed",
            extra={
                "total_found": len(rows),
                "has_next_page": has_next_page,
                "filters": {
                    "status": status.value if status else None,
                    "train_id": train_id,
                    "user_id": user_id,
                },
            }
        )
        return [booking_to_schema(row) for row in rows], next_cursor

    async def ticket_number_exists(self, ticket_number: str) -> bool:
        async with self.sessions.session() as db:
            result = await db.execute(select(exists().where(BookingModel.ticket_number == ticket_number)))
            return bool(result.scalar())

    async def events_for(self, booking_id: str) -> list[BookingEvent]:
        """Transition history of a booking, oldest first."""
        booking_uuid = parse_uuid(booking_id, "booking_id")
        stmt = (
            select(BookingEventModel)
            .where(BookingEventModel.booking_id == booking_uuid)
            .order_by(BookingEventModel.id)
        )
        async with self.sessions.session() as db:
            result = await db.execute(stmt)
            rows = list(result.scalars())
        return [BookingEvent.model_validate(row) for row in rows]
