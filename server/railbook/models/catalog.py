"""Station and Train model definitions."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base


class Station(Base):
    """Station entity. Immutable reference data."""

    __tablename__ = "stations"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    code: Mapped[str | None] = mapped_column(String(8), nullable=True, unique=True)

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("length(name) > 0", name="ck_station_name_not_empty"),
    )

    def __repr__(self) -> str:
        return f"<Station(id={self.id}, name='{self.name}')>"


class Train(Base):
    """Train entity with per-class fares and seat capacity."""

    __tablename__ = "trains"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    train_number: Mapped[str] = mapped_column(String(16), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    train_type: Mapped[str] = mapped_column(String(64), nullable=False)

    # Route
    departure_station_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("stations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    arrival_station_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("stations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    # Local wall-clock times, "HH:MM"
    departure_time: Mapped[str] = mapped_column(String(5), nullable=False)
    arrival_time: Mapped[str] = mapped_column(String(5), nullable=False)

    # Prices in minor units; explicit class prices override the base multiplier
    base_price_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    first_class_price_amount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    second_class_price_amount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    third_class_price_amount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    price_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="LKR")

    # Seat capacity per class
    first_class_seats: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    second_class_seats: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    third_class_seats: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("departure_station_id != arrival_station_id", name="ck_train_distinct_stations"),
        CheckConstraint("base_price_amount >= 0", name="ck_train_base_price_non_negative"),
        CheckConstraint("first_class_seats >= 0", name="ck_train_first_class_seats_non_negative"),
        CheckConstraint("second_class_seats >= 0", name="ck_train_second_class_seats_non_negative"),
        CheckConstraint("third_class_seats >= 0", name="ck_train_third_class_seats_non_negative"),
        CheckConstraint("length(price_currency) = 3", name="ck_train_price_currency_length"),
    )

    departure_station: Mapped["Station"] = relationship("Station", foreign_keys=[departure_station_id])
    arrival_station: Mapped["Station"] = relationship("Station", foreign_keys=[arrival_station_id])

    def __repr__(self) -> str:
        return (
            f"<Train(id={self.id}, number='{self.train_number}', "
            f"route={self.departure_station_id}->{self.arrival_station_id})>"
        )
