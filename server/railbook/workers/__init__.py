"""Background workers for the booking engine."""

from .base import BaseWorker
from .booking_expiry_worker import BookingExpiryWorker
from .manager import WorkerManager

__all__ = ["BaseWorker", "BookingExpiryWorker", "WorkerManager"]
