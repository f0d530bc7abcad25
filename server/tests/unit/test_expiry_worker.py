"""Unit tests for the background expiry worker."""

import asyncio

import pytest

from conftest import TRAVEL_DATE
from railbook.core.config import Settings
from railbook.schemas.booking import BookingStatus
from railbook.workers import BaseWorker, BookingExpiryWorker, WorkerManager


@pytest.mark.asyncio
async def test_process_expires_stale_bookings(booking_engine, train, clock):
    booking = await booking_engine.create_booking("user-1", train.id, TRAVEL_DATE, "second", 3)
    worker = BookingExpiryWorker(booking_engine, interval_seconds=60)

    await worker.process()
    assert (await booking_engine.get_booking(booking.id)).status == BookingStatus.DRAFT

    clock.advance(minutes=15)
    await worker.process()

    stored = await booking_engine.get_booking(booking.id)
    assert stored.status == BookingStatus.CANCELLED
    assert stored.cancellation_reason == "hold_expired"
    assert await booking_engine.available_seats(train.id, TRAVEL_DATE, "second") == 10


@pytest.mark.asyncio
async def test_worker_runs_in_background(booking_engine, train, clock):
    booking = await booking_engine.create_booking("user-1", train.id, TRAVEL_DATE, "second", 1)
    clock.advance(hours=1)

    worker = BookingExpiryWorker(booking_engine, interval_seconds=0.01)
    await worker.start()
    assert worker.running
    try:
        for _ in range(100):
            if (await booking_engine.get_booking(booking.id)).status == BookingStatus.CANCELLED:
                break
            await asyncio.sleep(0.01)
    finally:
        await worker.stop()

    assert not worker.running
    assert (await booking_engine.get_booking(booking.id)).status == BookingStatus.CANCELLED


class FlakyWorker(BaseWorker):
    def __init__(self):
        super().__init__(name="Flaky", interval_seconds=0.01)
        self.calls = 0

    async def process(self) -> None:
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("boom")


@pytest.mark.asyncio
async def test_worker_survives_failed_iteration():
    worker = FlakyWorker()
    await worker.start()
    try:
        for _ in range(100):
            if worker.calls >= 2:
                break
            await asyncio.sleep(0.01)
    finally:
        await worker.stop()

    assert worker.calls >= 2


@pytest.mark.asyncio
async def test_manager_starts_and_stops_workers(booking_engine):
    manager = WorkerManager(booking_engine, Settings(expiry_sweep_interval_seconds=30))

    worker = manager.get_worker("booking_expiry")
    assert worker.interval_seconds == 30
    assert manager.get_worker_status() == {"booking_expiry": False}

    await manager.start_all()
    assert manager.get_worker_status() == {"booking_expiry": True}

    await manager.stop_all()
    assert manager.get_worker_status() == {"booking_expiry": False}

    with pytest.raises(KeyError):
        manager.get_worker("unknown")
