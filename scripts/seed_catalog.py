#!/usr/bin/env python3
"""Create the database schema and seed a sample station and train catalog."""

import asyncio
import logging

from sqlalchemy import func, select

from railbook.core.config import settings
from railbook.core.database import SessionProvider, close_db, create_engine, init_db
from railbook.core.observability import setup_structured_logging
from railbook.models.catalog import Station as StationModel
from railbook.schemas.catalog import CreateStationRequest, CreateTrainRequest
from railbook.schemas.common import Money
from railbook.services.catalog_service import CatalogService

logger = logging.getLogger(__name__)

STATIONS = [
    ("Colombo Fort", "FOT"),
    ("Kandy", "KDT"),
    ("Ella", "ELL"),
    ("Galle", "GLE"),
    ("Jaffna", "JAF"),
    ("Trincomalee", "TCO"),
]

# (number, name, type, from, to, departs, arrives, base price, seats per class)
TRAINS = [
    ("1005", "Podi Menike", "Express", "FOT", "KDT", "05:55", "08:50", 60000, (24, 96, 160)),
    ("1015", "Udarata Menike", "Express", "FOT", "KDT", "08:30", "11:30", 60000, (24, 96, 160)),
    ("1029", "Intercity Express", "Intercity", "FOT", "KDT", "15:35", "18:05", 80000, (0, 120, 160)),
    ("1045", "Night Mail", "Night Mail", "FOT", "ELL", "20:00", "06:10", 120000, (32, 96, 200)),
    ("1047", "Kandy Ella Express", "Express", "KDT", "ELL", "08:47", "15:40", 70000, (24, 96, 160)),
    ("8056", "Galu Kumari", "Express", "FOT", "GLE", "06:50", "09:05", 40000, (0, 96, 200)),
    ("4021", "Yal Devi", "Intercity", "FOT", "JAF", "05:45", "12:35", 150000, (40, 120, 200)),
    ("6011", "Trinco Express", "Express", "FOT", "TCO", "06:05", "13:40", 110000, (0, 96, 200)),
]


async def seed_catalog(catalog: CatalogService) -> None:
    """Create the sample stations and trains."""
    stations = {}
    for name, code in STATIONS:
        station = await catalog.create_station(CreateStationRequest(name=name, code=code))
        stations[code] = station.id

    for number, name, train_type, origin, destination, departs, arrives, base, seats in TRAINS:
        first, second, third = seats
        await catalog.create_train(CreateTrainRequest(
            train_number=number,
            name=name,
            train_type=train_type,
            departure_station_id=stations[origin],
            arrival_station_id=stations[destination],
            departure_time=departs,
            arrival_time=arrives,
            base_price=Money(amount=base, currency=settings.currency),
            first_class_seats=first,
            second_class_seats=second,
            third_class_seats=third,
        ))

    logger.info("Sample catalog created", extra={"stations": len(STATIONS), "trains": len(TRAINS)})


async def main():
    """Main setup function."""
    setup_structured_logging()
    engine = create_engine(settings.database_url)
    try:
        await init_db(engine)
        logger.info("Database schema created", extra={"database_url": settings.database_url})

        sessions = SessionProvider(engine)
        async with sessions.session() as db:
            existing = (await db.execute(select(func.count(StationModel.id)))).scalar()
        if existing:
            logger.info("Catalog already seeded, skipping", extra={"stations": existing})
            return

        await seed_catalog(CatalogService(sessions))
    finally:
        await close_db(engine)

    logger.info("Setup completed; start the API with: uvicorn railbook.main:app --reload")


if __name__ == "__main__":
    asyncio.run(main())
