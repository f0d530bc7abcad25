"""Booking state machine: reservation, passenger capture, payment and ticketing."""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

from ..core.exceptions import (
    AlreadyReleasedError,
    HoldExpiredError,
    InsufficientSeatsError,
    InvalidInputError,
    InvalidStateError,
    PaymentDeclinedError,
)
from ..core.observability import metrics_collector
from ..schemas.booking import (
    ACTIVE_STATUSES,
    Booking,
    BookingEvent,
    BookingStatus,
    ContactInfo,
    ListBookingsResponse,
    Passenger,
    PassengerDetails,
    PaymentDetails,
)
from ..schemas.catalog import ClassAvailability, Quote, TicketClass, Train, TrainAvailability
from .booking_store import BookingStore
from .catalog_service import CatalogService, parse_uuid
from .fare_calculator import FareCalculator, check_passenger_count, parse_ticket_class
from .payment_gateway import PaymentGateway, SimulatedPaymentGateway
from .seat_inventory import InventoryKey, ReservationToken, SeatInventoryManager, TokenState
from .ticket_issuer import TicketIssuer

logger = logging.getLogger(__name__)

DEFAULT_HOLD_WINDOW = timedelta(minutes=15)

USER_CANCELLED = "user_cancelled"
HOLD_EXPIRED = "hold_expired"


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the store persists."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BookingEngine:
    """
    Drives a booking from seat reservation to a terminal state.

    DRAFT -> AWAITING_PASSENGERS -> AWAITING_PAYMENT -> CONFIRMED | FAILED,
    and any non-terminal state -> CANCELLED (user request or hold expiry).

    The store is the source of truth: every transition loads the booking,
    mutates a copy and saves it together with a transition event. Transitions
    on one booking are serialized by a per-booking lock; seat counters are
    only ever touched through the ``SeatInventoryManager``.
    """

    def __init__(
        self,
        catalog: CatalogService,
        store: BookingStore,
        inventory: SeatInventoryManager | None = None,
        fare_calculator: FareCalculator | None = None,
        ticket_issuer: TicketIssuer | None = None,
        payment_gateway: PaymentGateway | None = None,
        hold_window: timedelta = DEFAULT_HOLD_WINDOW,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.catalog = catalog
        self.store = store
        self.inventory = inventory or SeatInventoryManager()
        self.fare_calculator = fare_calculator or FareCalculator()
        self.ticket_issuer = ticket_issuer or TicketIssuer(is_taken=store.ticket_number_exists)
        self.payment_gateway = payment_gateway or SimulatedPaymentGateway()
        self.hold_window = hold_window
        self._clock = clock
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    # Catalog-facing reads

    async def find_trains(
        self,
        departure_station_id: str,
        arrival_station_id: str,
        travel_date: date,
    ) -> list[TrainAvailability]:
        """Trains on the route with per-class fare and approximate free seats."""
        trains = await self.catalog.find_trains(departure_station_id, arrival_station_id)

        results = []
        for train in trains:
            classes = []
            for ticket_class in TicketClass:
                capacity = train.seats_for(ticket_class)
                if capacity == 0:
                    continue
                key = InventoryKey(train.id, travel_date, ticket_class)
                classes.append(ClassAvailability(
                    ticket_class=ticket_class,
                    unit_price=self.fare_calculator.unit_price(train, ticket_class),
                    capacity=capacity,
                    available_seats=self.inventory.available_seats(key, capacity),
                ))
            results.append(TrainAvailability(
                train=train,
                travel_date=travel_date,
                duration_minutes=train.duration_minutes,
                classes=classes,
            ))

        logger.info(
            "Train search completed",
            extra={
                "departure_station_id": departure_station_id,
                "arrival_station_id": arrival_station_id,
                "travel_date": travel_date.isoformat(),
                "total_found": len(results),
            }
        )
        return results

    async def quote(self, train_id: str, ticket_class: TicketClass | str | int, passenger_count: int) -> Quote:
        """Fare for the seats only; the booking fee is added at checkout."""
        ticket_class = parse_ticket_class(ticket_class)
        check_passenger_count(passenger_count)
        train = await self.catalog.get_train_or_raise(train_id)
        return Quote(
            train_id=train.id,
            ticket_class=ticket_class,
            passenger_count=passenger_count,
            total_price=self.fare_calculator.price(train, ticket_class, passenger_count),
        )

    async def available_seats(self, train_id: str, travel_date: date, ticket_class: TicketClass | str | int) -> int:
        ticket_class = parse_ticket_class(ticket_class)
        train = await self.catalog.get_train_or_raise(train_id)
        key = InventoryKey(train.id, travel_date, ticket_class)
        return self.inventory.available_seats(key, train.seats_for(ticket_class))

    # Transitions

    async def create_booking(
        self,
        user_id: str,
        train_id: str,
        travel_date: date,
        ticket_class: TicketClass | str | int,
        passenger_count: int,
    ) -> Booking:
        """
        Reserve seats and open a DRAFT booking.

        Raises:
            InvalidInputError: Bad count, class or a travel date in the past
            NotFoundError: Unknown train
            InsufficientSeatsError: Not enough free seats; no booking is created
        """
        ticket_class = parse_ticket_class(ticket_class)
        check_passenger_count(passenger_count)
        if not user_id:
            raise InvalidInputError(detail="user_id is required", errors={"user_id": user_id})

        now = self._clock()
        if travel_date < now.date():
            raise InvalidInputError(
                detail=f"Travel date {travel_date.isoformat()} is in the past",
                errors={"travel_date": travel_date.isoformat()},
            )

        train = await self.catalog.get_train_or_raise(train_id)
        key = InventoryKey(train.id, travel_date, ticket_class)

        try:
            token = await self.inventory.reserve(key, passenger_count, train.seats_for(ticket_class))
        except InsufficientSeatsError:
            metrics_collector.record_reservation_rejected(ticket_class.value)
            logger.warning(
                "Booking creation failed - insufficient seats",
                extra={**key.as_dict(), "user_id": user_id, "requested_seats": passenger_count}
            )
            raise

        booking = Booking(
            id=str(uuid4()),
            user_id=user_id,
            train_id=train.id,
            travel_date=travel_date,
            ticket_class=ticket_class,
            passenger_count=passenger_count,
            status=BookingStatus.DRAFT,
            reservation_id=token.token_id,
            hold_expires_at=now + self.hold_window,
            currency=train.currency,
            created_at=now,
            updated_at=now,
        )

        try:
            await self.store.save(booking, from_status=None, reason="created")
        except Exception:
            # No booking exists, so the seats must not stay reserved
            await self._release(token, booking_id=booking.id)
            raise

        metrics_collector.record_booking_created(ticket_class.value, passenger_count)
        logger.info(
            "Booking created successfully",
            extra={
                "booking_id": booking.id,
                "user_id": user_id,
                **key.as_dict(),
                "seats": passenger_count,
                "reservation_id": token.token_id,
                "hold_expires_at": booking.hold_expires_at.isoformat(),
            }
        )
        return booking

    async def attach_passengers(
        self,
        booking_id: str,
        contact: ContactInfo,
        passengers: Sequence[PassengerDetails],
    ) -> Booking:
        """
        Attach contact and passenger details, then price the booking.

        Moves DRAFT -> AWAITING_PASSENGERS -> AWAITING_PAYMENT, recording both
        transitions. A booking left in AWAITING_PASSENGERS may be retried.

        Raises:
            InvalidInputError: Passenger count differs from the reserved seats
            InvalidStateError: Booking is past passenger capture
            HoldExpiredError: The hold window lapsed; the booking was cancelled
        """
        async with self._serialized(booking_id):
            booking = await self._load_active(booking_id)
            if booking.status not in (BookingStatus.DRAFT, BookingStatus.AWAITING_PASSENGERS):
                raise InvalidStateError(
                    detail=f"Cannot attach passengers to a booking in {booking.status.value}",
                    current_state=booking.status.value,
                )
            if len(passengers) != booking.passenger_count:
                raise InvalidInputError(
                    detail=f"Expected {booking.passenger_count} passengers, got {len(passengers)}",
                    errors={"passengers": len(passengers)},
                )

            train = await self.catalog.get_train_or_raise(booking.train_id)
            fare = self.fare_calculator.price(train, booking.ticket_class, booking.passenger_count)
            booking_fee = self.fare_calculator.booking_fee(fare.currency)

            if booking.status == BookingStatus.DRAFT:
                booking = booking.model_copy(update={
                    "status": BookingStatus.AWAITING_PASSENGERS,
                    "contact": contact,
                    "passengers": [Passenger(**p.model_dump()) for p in passengers],
                    "updated_at": self._clock(),
                })
                await self.store.save(booking, from_status=BookingStatus.DRAFT, reason="passengers_attached")
            else:
                booking = booking.model_copy(update={
                    "contact": contact,
                    "passengers": [Passenger(**p.model_dump()) for p in passengers],
                })

            booking = booking.model_copy(update={
                "status": BookingStatus.AWAITING_PAYMENT,
                "fare": fare,
                "booking_fee": booking_fee,
                "total_price": self.fare_calculator.checkout_total(fare),
                "updated_at": self._clock(),
            })
            await self.store.save(booking, from_status=BookingStatus.AWAITING_PASSENGERS, reason="priced")

        logger.info(
            "Passengers attached",
            extra={
                "booking_id": booking.id,
                "passengers": booking.passenger_count,
                "total_amount": booking.total_price.amount,
                "currency": booking.currency,
            }
        )
        return booking

    async def submit_payment(self, booking_id: str, payment: PaymentDetails) -> Booking:
        """
        Charge for the booking and confirm it, or mark it FAILED.

        A declined payment is not raised: the FAILED booking is returned with
        its seats released.

        Raises:
            InvalidInputError: ``payment.amount`` differs from the booking total
            InvalidStateError: Booking is not awaiting payment
            HoldExpiredError: The hold window lapsed; the booking was cancelled
        """
        async with self._serialized(booking_id):
            booking = await self._load_active(booking_id)
            if booking.status != BookingStatus.AWAITING_PAYMENT:
                raise InvalidStateError(
                    detail=f"Cannot pay for a booking in {booking.status.value}",
                    current_state=booking.status.value,
                )
            if payment.amount is not None and payment.amount != booking.total_price:
                raise InvalidInputError(
                    detail=f"Payment amount {payment.amount} does not match booking total {booking.total_price}",
                    errors={"amount": payment.amount.amount},
                )

            train = await self.catalog.get_train_or_raise(booking.train_id)
            token = self._token_for(booking)
            if self.inventory.token_state(token.token_id) != TokenState.HELD:
                raise InvalidStateError(
                    detail=f"Booking {booking.id} no longer holds its reserved seats",
                    current_state=booking.status.value,
                )

            try:
                receipt = await self.payment_gateway.charge(payment, booking.total_price)
            except PaymentDeclinedError as e:
                failed = booking.model_copy(update={
                    "status": BookingStatus.FAILED,
                    "payment_method": payment.method,
                    "transaction_id": e.transaction_id,
                    "failure_reason": e.reason,
                    "updated_at": self._clock(),
                })
                await self.store.save(failed, from_status=BookingStatus.AWAITING_PAYMENT, reason=e.reason)
                await self._release(token, booking_id=booking.id)
                metrics_collector.record_booking_failed(booking.passenger_count)
                logger.warning(
                    "Payment declined - booking failed",
                    extra={"booking_id": booking.id, "reason": e.reason, "seats_released": token.seats}
                )
                return failed

            try:
                issued = await self.ticket_issuer.issue(booking, train.train_number)
                confirmed = booking.model_copy(update={
                    "status": BookingStatus.CONFIRMED,
                    "payment_method": receipt.method,
                    "transaction_id": receipt.transaction_id,
                    "ticket_number": issued.ticket_number,
                    "passengers": [
                        passenger.model_copy(update={"seat_label": label})
                        for passenger, label in zip(booking.passengers, issued.seat_labels)
                    ],
                    "updated_at": self._clock(),
                })
                await self.store.save(confirmed, from_status=BookingStatus.AWAITING_PAYMENT, reason="payment_succeeded")
            except Exception as e:
                # The customer was charged; the transaction needs a manual refund
                logger.error(
                    "Booking confirmation failed after successful charge",
                    exc_info=True,
                    extra={
                        "booking_id": booking.id,
                        "transaction_id": receipt.transaction_id,
                        "amount": booking.total_price.amount,
                        "currency": booking.total_price.currency,
                        "error": str(e),
                    }
                )
                raise
            await self.inventory.commit(token)

        metrics_collector.record_booking_confirmed(confirmed.ticket_class.value, confirmed.passenger_count)
        logger.info(
            "Booking confirmed successfully",
            extra={
                "booking_id": confirmed.id,
                "ticket_number": confirmed.ticket_number,
                "transaction_id": confirmed.transaction_id,
                "seat_labels": confirmed.seat_labels,
            }
        )
        return confirmed

    async def cancel_booking(self, booking_id: str, reason: str = USER_CANCELLED) -> Booking:
        """
        Cancel a non-terminal booking and release its seats.

        A booking whose hold already lapsed is cancelled with reason
        ``hold_expired`` and returned.

        Raises:
            InvalidStateError: Booking is already CONFIRMED, FAILED or CANCELLED
        """
        async with self._serialized(booking_id):
            booking = await self.store.get_or_raise(booking_id)
            if booking.status.is_terminal:
                raise InvalidStateError(
                    detail=f"Cannot cancel a booking in {booking.status.value}",
                    current_state=booking.status.value,
                )
            if self._is_expired(booking, self._clock()):
                reason = HOLD_EXPIRED
            return await self._cancel(booking, reason)

    # Reads

    async def get_booking(self, booking_id: str) -> Booking:
        return await self.store.get_or_raise(booking_id)

    async def get_booking_events(self, booking_id: str) -> list[BookingEvent]:
        await self.store.get_or_raise(booking_id)
        return await self.store.events_for(booking_id)

    async def list_bookings(
        self,
        status: BookingStatus | None = None,
        train_id: str | None = None,
        user_id: str | None = None,
        limit: int = 20,
        cursor: str | None = None,
    ) -> ListBookingsResponse:
        """Raw booking listing for the admin back-office, newest first."""
        items, next_cursor = await self.store.list_bookings(
            status=status, train_id=train_id, user_id=user_id, limit=limit, cursor=cursor
        )
        return ListBookingsResponse(items=items, next_cursor=next_cursor)

    # Maintenance

    async def expire_stale_bookings(self, now: datetime | None = None, batch_size: int = 100) -> int:
        """
        Cancel non-terminal bookings whose hold window has lapsed.

        Each candidate is re-read under its booking lock, so a booking that
        reached a terminal state in the meantime is left alone.

        Returns:
            Number of bookings cancelled
        """
        now = now or self._clock()
        candidates = await self.store.find_expired(now, limit=batch_size)

        expired_count = 0
        for candidate in candidates:
            try:
                async with self._serialized(candidate.id):
                    booking = await self.store.get(candidate.id)
                    if booking is None or booking.status.is_terminal or not self._is_expired(booking, now):
                        continue
                    await self._cancel(booking, HOLD_EXPIRED)
                    expired_count += 1
            except Exception as e:
                logger.error(
                    "Failed to expire booking",
                    exc_info=e,
                    extra={"booking_id": candidate.id, "error": str(e)}
                )
                continue

        if expired_count > 0:
            logger.info(
                "Booking expiration batch completed",
                extra={"expired_count": expired_count, "batch_size": batch_size}
            )
        return expired_count

    async def recover(self) -> int:
        """
        Rebuild seat counters from persisted bookings.

        Non-terminal bookings come back as held reservations, confirmed ones as
        committed reservations.

        Returns:
            Number of reservations restored
        """
        bookings = await self.store.list_by_status(ACTIVE_STATUSES | {BookingStatus.CONFIRMED})

        trains: dict[str, Train] = {}
        for booking in bookings:
            train = trains.get(booking.train_id)
            if train is None:
                train = trains[booking.train_id] = await self.catalog.get_train_or_raise(booking.train_id)

            committed = booking.status == BookingStatus.CONFIRMED
            await self.inventory.restore(
                self._token_for(booking),
                capacity=train.seats_for(booking.ticket_class),
                committed=committed,
            )
            if not committed:
                metrics_collector.record_reservation_restored(booking.passenger_count)

        logger.info("Seat inventory recovered", extra={"reservations": len(bookings)})
        return len(bookings)

    # Internals

    @asynccontextmanager
    async def _serialized(self, booking_id: str) -> AsyncIterator[None]:
        """Hold the booking's lock; the lock is dropped once nobody holds or awaits it."""
        lock_key = str(parse_uuid(booking_id, "booking_id"))
        lock = self._locks.setdefault(lock_key, asyncio.Lock())
        self._lock_users[lock_key] = self._lock_users.get(lock_key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[lock_key] -= 1
            if self._lock_users[lock_key] == 0:
                del self._lock_users[lock_key]
                del self._locks[lock_key]

    @staticmethod
    def _token_for(booking: Booking) -> ReservationToken:
        return ReservationToken(
            token_id=booking.reservation_id,
            key=InventoryKey(booking.train_id, booking.travel_date, booking.ticket_class),
            seats=booking.passenger_count,
        )

    @staticmethod
    def _is_expired(booking: Booking, now: datetime) -> bool:
        return now >= booking.hold_expires_at

    async def _load_active(self, booking_id: str) -> Booking:
        """Load a booking for a forward transition, applying lazy expiry."""
        booking = await self.store.get_or_raise(booking_id)
        if booking.status.is_terminal:
            raise InvalidStateError(
                detail=f"Booking {booking.id} is already {booking.status.value}",
                current_state=booking.status.value,
            )
        if self._is_expired(booking, self._clock()):
            await self._cancel(booking, HOLD_EXPIRED)
            raise HoldExpiredError(booking.id, booking.hold_expires_at)
        return booking

    async def _cancel(self, booking: Booking, reason: str) -> Booking:
        """Move a non-terminal booking to CANCELLED, then release its seats. Caller holds the lock."""
        cancelled = booking.model_copy(update={
            "status": BookingStatus.CANCELLED,
            "cancellation_reason": reason,
            "updated_at": self._clock(),
        })
        await self.store.save(cancelled, from_status=booking.status, reason=reason)
        await self._release(self._token_for(booking), booking_id=booking.id)

        metrics_collector.record_booking_cancelled(reason, booking.passenger_count)
        logger.info(
            "Booking cancelled successfully",
            extra={
                "booking_id": booking.id,
                "from_status": booking.status.value,
                "reason": reason,
                "seats_released": booking.passenger_count,
            }
        )
        return cancelled

    async def _release(self, token: ReservationToken, booking_id: str) -> None:
        try:
            await self.inventory.release(token)
        except AlreadyReleasedError:
            logger.warning(
                "Reservation already released",
                extra={"booking_id": booking_id, "reservation_id": token.token_id}
            )
