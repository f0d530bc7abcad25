"""Booking router for the booking lifecycle."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..core.dependencies import Engine
from ..core.exceptions import PaymentDeclinedError
from ..schemas.booking import (
    AttachPassengersRequest,
    Booking,
    BookingEventsResponse,
    BookingStatus,
    CancelBookingRequest,
    CreateBookingRequest,
    GetBookingRequest,
    ListBookingsRequest,
    ListBookingsResponse,
    SubmitPaymentRequest,
)
from ..services.booking_engine import BookingEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/booking", tags=["booking"])


def _ok(response_data: BaseModel) -> JSONResponse:
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/create", response_model=Booking)
async def create_booking(request: CreateBookingRequest, engine: BookingEngine = Engine) -> JSONResponse:
    """
    Reserve seats and open a DRAFT booking.

    Fails with 409 INSUFFICIENT_SEATS (retryable) when the class is full;
    no booking is created in that case.
    """
    booking = await engine.create_booking(
        user_id=request.user_id,
        train_id=request.train_id,
        travel_date=request.travel_date,
        ticket_class=request.ticket_class,
        passenger_count=request.passenger_count,
    )
    return _ok(booking)


@router.post("/passengers", response_model=Booking)
async def attach_passengers(request: AttachPassengersRequest, engine: BookingEngine = Engine) -> JSONResponse:
    """Attach contact and passenger details; the booking then awaits payment."""
    booking = await engine.attach_passengers(request.booking_id, request.contact, request.passengers)
    return _ok(booking)


@router.post("/pay", response_model=Booking)
async def submit_payment(
    request: SubmitPaymentRequest,
    http_request: Request,
    engine: BookingEngine = Engine,
) -> JSONResponse:
    """
    Pay for a booking.

    A declined payment returns 402 PAYMENT_DECLINED; the booking is then
    FAILED and its seats are released.
    """
    booking = await engine.submit_payment(request.booking_id, request.payment)

    if booking.status == BookingStatus.FAILED:
        logger.info(
            "Payment declined for booking",
            extra={"booking_id": booking.id, "reason": booking.failure_reason}
        )
        declined = PaymentDeclinedError(reason=booking.failure_reason, transaction_id=booking.transaction_id)
        content = dict(declined.problem_details)
        content["instance"] = http_request.url.path
        content["booking"] = booking.model_dump(mode="json")
        return JSONResponse(status_code=declined.status_code, content=content)

    return _ok(booking)


@router.post("/cancel", response_model=Booking)
async def cancel_booking(request: CancelBookingRequest, engine: BookingEngine = Engine) -> JSONResponse:
    """Cancel a booking that has not reached a terminal state."""
    booking = await engine.cancel_booking(request.booking_id)
    return _ok(booking)


@router.post("/get", response_model=Booking)
async def get_booking(request: GetBookingRequest, engine: BookingEngine = Engine) -> JSONResponse:
    """Get a booking, including its ticket once confirmed."""
    booking = await engine.get_booking(request.booking_id)
    return _ok(booking)


@router.post("/events", response_model=BookingEventsResponse)
async def get_booking_events(request: GetBookingRequest, engine: BookingEngine = Engine) -> JSONResponse:
    """State transition history of a booking."""
    events = await engine.get_booking_events(request.booking_id)
    return _ok(BookingEventsResponse(booking_id=request.booking_id, items=events))


@router.post("/list", response_model=ListBookingsResponse)
async def list_bookings(request: ListBookingsRequest, engine: BookingEngine = Engine) -> JSONResponse:
    """Raw booking listing for the back-office, newest first."""
    response_data = await engine.list_bookings(
        status=request.status,
        train_id=request.train_id,
        user_id=request.user_id,
        limit=request.limit,
        cursor=request.cursor,
    )
    return _ok(response_data)
