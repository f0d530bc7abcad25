"""Initial booking schema

Revision ID: 0001
Revises:
Create Date: 2026-03-01 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade database schema."""
    # Create stations table
    op.create_table('stations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=8), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint('length(name) > 0', name='ck_station_name_not_empty'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code')
    )
    op.create_index(op.f('ix_stations_name'), 'stations', ['name'], unique=True)

    # Create trains table
    op.create_table('trains',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('train_number', sa.String(length=16), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('train_type', sa.String(length=64), nullable=False),
        sa.Column('departure_station_id', sa.Uuid(), nullable=False),
        sa.Column('arrival_station_id', sa.Uuid(), nullable=False),
        sa.Column('departure_time', sa.String(length=5), nullable=False),
        sa.Column('arrival_time', sa.String(length=5), nullable=False),
        sa.Column('base_price_amount', sa.Integer(), nullable=False),
        sa.Column('first_class_price_amount', sa.Integer(), nullable=True),
        sa.Column('second_class_price_amount', sa.Integer(), nullable=True),
        sa.Column('third_class_price_amount', sa.Integer(), nullable=True),
        sa.Column('price_currency', sa.String(length=3), nullable=False),
        sa.Column('first_class_seats', sa.Integer(), nullable=False),
        sa.Column('second_class_seats', sa.Integer(), nullable=False),
        sa.Column('third_class_seats', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint('departure_station_id != arrival_station_id', name='ck_train_distinct_stations'),
        sa.CheckConstraint('base_price_amount >= 0', name='ck_train_base_price_non_negative'),
        sa.CheckConstraint('first_class_seats >= 0', name='ck_train_first_class_seats_non_negative'),
        sa.CheckConstraint('second_class_seats >= 0', name='ck_train_second_class_seats_non_negative'),
        sa.CheckConstraint('third_class_seats >= 0', name='ck_train_third_class_seats_non_negative'),
        sa.CheckConstraint('length(price_currency) = 3', name='ck_train_price_currency_length'),
        sa.ForeignKeyConstraint(['departure_station_id'], ['stations.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['arrival_station_id'], ['stations.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_trains_train_number'), 'trains', ['train_number'], unique=True)
    op.create_index(op.f('ix_trains_departure_station_id'), 'trains', ['departure_station_id'], unique=False)
    op.create_index(op.f('ix_trains_arrival_station_id'), 'trains', ['arrival_station_id'], unique=False)

    # Create bookings table
    op.create_table('bookings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('train_id', sa.Uuid(), nullable=False),
        sa.Column('travel_date', sa.Date(), nullable=False),
        sa.Column('ticket_class', sa.String(length=10), nullable=False),
        sa.Column('passenger_count', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=24), nullable=False),
        sa.Column('reservation_id', sa.String(length=64), nullable=False),
        sa.Column('hold_expires_at', sa.DateTime(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('fare_amount', sa.Integer(), nullable=True),
        sa.Column('booking_fee_amount', sa.Integer(), nullable=True),
        sa.Column('total_amount', sa.Integer(), nullable=True),
        sa.Column('contact_email', sa.String(length=255), nullable=True),
        sa.Column('contact_phone', sa.String(length=32), nullable=True),
        sa.Column('payment_method', sa.String(length=16), nullable=True),
        sa.Column('transaction_id', sa.String(length=64), nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('cancellation_reason', sa.String(length=64), nullable=True),
        sa.Column('ticket_number', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('passenger_count >= 1', name='ck_booking_passenger_count_positive'),
        sa.CheckConstraint('passenger_count <= 10', name='ck_booking_passenger_count_max'),
        sa.CheckConstraint('length(user_id) > 0', name='ck_booking_user_id_not_empty'),
        sa.CheckConstraint('total_amount IS NULL OR total_amount >= 0', name='ck_booking_total_non_negative'),
        sa.ForeignKeyConstraint(['train_id'], ['trains.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('reservation_id')
    )
    op.create_index(op.f('ix_bookings_user_id'), 'bookings', ['user_id'], unique=False)
    op.create_index(op.f('ix_bookings_train_id'), 'bookings', ['train_id'], unique=False)
    op.create_index(op.f('ix_bookings_travel_date'), 'bookings', ['travel_date'], unique=False)
    op.create_index(op.f('ix_bookings_status'), 'bookings', ['status'], unique=False)
    op.create_index(op.f('ix_bookings_hold_expires_at'), 'bookings', ['hold_expires_at'], unique=False)
    op.create_index(op.f('ix_bookings_ticket_number'), 'bookings', ['ticket_number'], unique=True)

    # Create passengers table
    op.create_table('passengers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('booking_id', sa.Uuid(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('first_name', sa.String(length=128), nullable=False),
        sa.Column('last_name', sa.String(length=128), nullable=False),
        sa.Column('id_number', sa.String(length=64), nullable=False),
        sa.Column('gender', sa.String(length=16), nullable=False),
        sa.Column('seat_label', sa.String(length=16), nullable=True),
        sa.CheckConstraint('position >= 0', name='ck_passenger_position_non_negative'),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_passengers_booking_id'), 'passengers', ['booking_id'], unique=False)

    # Create booking_events table
    op.create_table('booking_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('booking_id', sa.Uuid(), nullable=False),
        sa.Column('from_status', sa.String(length=24), nullable=True),
        sa.Column('to_status', sa.String(length=24), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('occurred_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_booking_events_booking_id'), 'booking_events', ['booking_id'], unique=False)
    op.create_index(op.f('ix_booking_events_occurred_at'), 'booking_events', ['occurred_at'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index(op.f('ix_booking_events_occurred_at'), table_name='booking_events')
    op.drop_index(op.f('ix_booking_events_booking_id'), table_name='booking_events')
    op.drop_table('booking_events')

    op.drop_index(op.f('ix_passengers_booking_id'), table_name='passengers')
    op.drop_table('passengers')

    op.drop_index(op.f('ix_bookings_ticket_number'), table_name='bookings')
    op.drop_index(op.f('ix_bookings_hold_expires_at'), table_name='bookings')
    op.drop_index(op.f('ix_bookings_status'), table_name='bookings')
    op.drop_index(op.f('ix_bookings_travel_date'), table_name='bookings')
    op.drop_index(op.f('ix_bookings_train_id'), table_name='bookings')
    op.drop_index(op.f('ix_bookings_user_id'), table_name='bookings')
    op.drop_table('bookings')

    op.drop_index(op.f('ix_trains_arrival_station_id'), table_name='trains')
    op.drop_index(op.f('ix_trains_departure_station_id'), table_name='trains')
    op.drop_index(op.f('ix_trains_train_number'), table_name='trains')
    op.drop_table('trains')

    op.drop_index(op.f('ix_stations_name'), table_name='stations')
    op.drop_table('stations')
