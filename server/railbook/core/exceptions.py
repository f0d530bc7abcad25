"""Custom exceptions following RFC 9457 Problem Details for HTTP APIs."""

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Machine-readable error categories surfaced in the ``code`` field."""
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    INSUFFICIENT_SEATS = "INSUFFICIENT_SEATS"
    INVALID_STATE = "INVALID_STATE"
    ALREADY_RELEASED = "ALREADY_RELEASED"
    PAYMENT_DECLINED = "PAYMENT_DECLINED"
    INTERNAL = "INTERNAL"


class ProblemDetailsException(HTTPException):
    """
    Base exception class following RFC 9457 Problem Details for HTTP APIs.

    https://tools.ietf.org/rfc/rfc9457.txt
    """

    kind: ErrorKind = ErrorKind.INTERNAL
    retryable: bool = False

    def __init__(
        self,
        status_code: int,
        title: str,
        detail: Optional[str] = None,
        type_uri: Optional[str] = None,
        instance: Optional[str] = None,
        extensions: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize Problem Details exception.

        Args:
            status_code: HTTP status code
            title: Short, human-readable summary of the problem type
            detail: Human-readable explanation specific to this occurrence
            type_uri: URI reference that identifies the problem type
            instance: URI reference that identifies the specific occurrence
            extensions: Additional problem-specific information
            headers: HTTP headers to include in response
        """
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type_uri = type_uri or f"about:blank#{status_code}"
        self.instance = instance
        self.extensions = extensions or {}
        self.message = detail or title

        self.problem_details = {
            "type": self.type_uri,
            "title": self.title,
            "status": self.status_code,
            "code": self.kind.value,
            "retryable": self.retryable,
        }

        if self.detail:
            self.problem_details["detail"] = self.detail

        if self.instance:
            self.problem_details["instance"] = self.instance

        self.problem_details.update(self.extensions)

        super().__init__(
            status_code=status_code,
            detail=self.problem_details,
            headers=headers
        )

    def __str__(self) -> str:
        return self.message


class InvalidInputError(ProblemDetailsException):
    """Malformed search, passenger or payment data. Nothing was mutated."""

    kind = ErrorKind.INVALID_INPUT

    def __init__(
        self,
        detail: str = "The request data failed validation",
        errors: Optional[Dict[str, Any]] = None,
        instance: Optional[str] = None,
    ):
        extensions = {}
        if errors:
            extensions["errors"] = errors

        super().__init__(
            status_code=400,
            title="Invalid Input",
            detail=detail,
            type_uri="https://example.com/problems/invalid-input",
            instance=instance,
            extensions=extensions,
        )


class NotFoundError(ProblemDetailsException):
    """Exception for resource not found errors."""

    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: Optional[str] = None,
        detail: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        if not detail:
            detail = f"The requested {resource_type}"
            if resource_id:
                detail += f" with ID '{resource_id}'"
            detail += " could not be found"

        extensions = {
            "resource_type": resource_type,
        }
        if resource_id:
            extensions["resource_id"] = resource_id

        super().__init__(
            status_code=404,
            title="Resource Not Found",
            detail=detail,
            type_uri="https://example.com/problems/resource-not-found",
            instance=instance,
            extensions=extensions,
        )


class InsufficientSeatsError(ProblemDetailsException):
    """Not enough free seats for the requested reservation."""

    kind = ErrorKind.INSUFFICIENT_SEATS
    retryable = True

    def __init__(
        self,
        requested_seats: int,
        available_seats: int,
        inventory_key: Optional[Dict[str, Any]] = None,
        instance: Optional[str] = None,
    ):
        extensions: Dict[str, Any] = {
            "requested_seats": requested_seats,
            "available_seats": available_seats,
        }
        if inventory_key:
            extensions["inventory_key"] = inventory_key

        super().__init__(
            status_code=409,
            title="Insufficient Seats",
            detail=f"Requested {requested_seats} seats but only {available_seats} are available",
            type_uri="https://example.com/problems/insufficient-seats",
            instance=instance,
            extensions=extensions,
        )
        self.requested_seats = requested_seats
        self.available_seats = available_seats


class InvalidStateError(ProblemDetailsException):
    """An operation is not allowed in the current state. Nothing was mutated."""

    kind = ErrorKind.INVALID_STATE

    def __init__(
        self,
        detail: str,
        current_state: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        extensions = {}
        if current_state:
            extensions["current_state"] = current_state

        super().__init__(
            status_code=409,
            title="Invalid State",
            detail=detail,
            type_uri="https://example.com/problems/invalid-state",
            instance=instance,
            extensions=extensions,
        )
        self.current_state = current_state


class HoldExpiredError(InvalidStateError):
    """The booking's hold window lapsed; it has been cancelled."""

    def __init__(self, booking_id: str, expired_at: datetime):
        super().__init__(
            detail=f"Booking {booking_id} hold expired at {expired_at.isoformat()}Z and was cancelled",
            current_state="CANCELLED",
        )
        self.problem_details.update({
            "booking_id": booking_id,
            "expired_at": expired_at.isoformat() + "Z",
        })


class AlreadyReleasedError(ProblemDetailsException):
    """A reservation token was released twice. Counters were not touched."""

    kind = ErrorKind.ALREADY_RELEASED

    def __init__(self, token_id: str):
        super().__init__(
            status_code=409,
            title="Reservation Already Released",
            detail=f"Reservation {token_id} has already been released",
            type_uri="https://example.com/problems/already-released",
            extensions={"reservation_id": token_id},
        )
        self.token_id = token_id


class PaymentDeclinedError(ProblemDetailsException):
    """The payment provider refused the charge."""

    kind = ErrorKind.PAYMENT_DECLINED
    retryable = True

    def __init__(self, reason: str, transaction_id: Optional[str] = None):
        extensions = {"reason": reason}
        if transaction_id:
            extensions["transaction_id"] = transaction_id

        super().__init__(
            status_code=402,
            title="Payment Declined",
            detail=f"Payment was declined: {reason}",
            type_uri="https://example.com/problems/payment-declined",
            extensions=extensions,
        )
        self.reason = reason
        self.transaction_id = transaction_id


async def problem_details_handler(request: Request, exc: ProblemDetailsException) -> JSONResponse:
    """
    Exception handler for Problem Details exceptions.

    Args:
        request: FastAPI request object
        exc: Problem Details exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    content = dict(exc.problem_details)
    content.setdefault("instance", request.url.path)
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=exc.headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render FastAPI request validation failures as Problem Details."""
    violations = [
        {
            "path": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]

    return JSONResponse(
        status_code=422,
        content={
            "type": "https://example.com/problems/validation-error",
            "title": "Validation Error",
            "status": 422,
            "code": ErrorKind.INVALID_INPUT.value,
            "retryable": False,
            "detail": "The request data failed validation",
            "instance": request.url.path,
            "violations": violations,
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Generic exception handler that converts unhandled exceptions to Problem Details format.

    Args:
        request: FastAPI request object
        exc: Unhandled exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    error_id = str(uuid.uuid4())
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={"error_id": error_id, "path": request.url.path},
    )

    problem_details = {
        "type": "https://example.com/problems/internal-server-error",
        "title": "Internal Server Error",
        "status": 500,
        "code": ErrorKind.INTERNAL.value,
        "retryable": False,
        "detail": "An unexpected error occurred while processing the request",
        "instance": str(request.url),
        "error_id": error_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    return JSONResponse(
        status_code=500,
        content=problem_details,
    )
