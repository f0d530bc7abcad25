"""Background worker for expiring unpaid bookings."""

import logging

from ..core.observability import metrics_collector
from ..services.booking_engine import BookingEngine
from .base import BaseWorker

logger = logging.getLogger(__name__)


class BookingExpiryWorker(BaseWorker):
    """
    Cancels bookings whose hold window has lapsed and releases their seats.

    Catches abandoned bookings that are never touched again; bookings that
    are touched after expiry are also cancelled lazily by the engine.
    """

    def __init__(self, engine: BookingEngine, interval_seconds: float = 60, batch_size: int = 100):
        super().__init__(name="BookingExpiry", interval_seconds=interval_seconds)
        self.engine = engine
        self.batch_size = batch_size

    async def process(self) -> None:
        """Run one expiry sweep."""
        expired_count = await self.engine.expire_stale_bookings(batch_size=self.batch_size)
        metrics_collector.record_expiry_sweep(expired_count)

        if expired_count > 0:
            logger.info(
                "Expired stale bookings",
                extra={"expired_count": expired_count, "worker": self.name}
            )
