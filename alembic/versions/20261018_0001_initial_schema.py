"""Create initial schema

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '20261018_0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

OVERLAP_CONSTRAINT = 'ex_bookings_room_active_overlap'

def _has_table(bind, name: str) -> bool:
    try:
        insp = inspect(bind)
        return insp.has_table(name)
    except Exception:
        return False

def upgrade() -> None:
    # ### Create all tables and ENUM types ###
    bind = op.get_bind()
    dialect_name = bind.dialect.name

    roomstatus_enum = sa.Enum('available', 'occupied', 'maintenance', 'cleaning', name='roomstatus')
    idtype_enum = sa.Enum('passport', 'national_id', 'driving_license', name='idtype')
    bookingstatus_enum = sa.Enum('pending', 'confirmed', 'checked_in', 'checked_out', 'cancelled', name='bookingstatus')
    paymentmethod_enum = sa.Enum('cash', 'card', 'bank_transfer', 'mobile_money', name='paymentmethod')
    paymentstatus_enum = sa.Enum('pending', 'completed', 'failed', 'refunded', name='paymentstatus')

    if not _has_table(bind, 'users'):
        op.create_table('users',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('email', sa.String(length=255), nullable=False),
            sa.Column('full_name', sa.String(length=200), nullable=True),
            sa.Column('role', sa.String(length=20), server_default='staff', nullable=False),
            sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
        op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)

    if not _has_table(bind, 'room_types'):
        room_types_table = op.create_table('room_types',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=50), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('base_price', sa.Numeric(precision=10, scale=2), nullable=False),
            sa.Column('max_occupancy', sa.Integer(), server_default='2', nullable=False),
            sa.Column('amenities', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('name')
        )
        op.create_index(op.f('ix_room_types_id'), 'room_types', ['id'], unique=False)

        op.bulk_insert(room_types_table, [
            {'name': 'Single Room', 'description': 'Standard single occupancy room', 'base_price': 50, 'max_occupancy': 1, 'amenities': 'WiFi, TV, Air Conditioning'},
            {'name': 'Double Room', 'description': 'Standard double occupancy room', 'base_price': 80, 'max_occupancy': 2, 'amenities': 'WiFi, TV, Air Conditioning, Mini Bar'},
            {'name': 'Suite', 'description': 'Luxury suite with separate living area', 'base_price': 150, 'max_occupancy': 4, 'amenities': 'WiFi, TV, Air Conditioning, Mini Bar, Kitchenette, Balcony'},
            {'name': 'Family Room', 'description': 'Large room suitable for families', 'base_price': 120, 'max_occupancy': 6, 'amenities': 'WiFi, TV, Air Conditioning, Mini Bar, Extra Beds'},
        ])

    if not _has_table(bind, 'rooms'):
        op.create_table('rooms',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('room_number', sa.String(length=10), nullable=False),
            sa.Column('room_type_id', sa.Integer(), nullable=False),
            sa.Column('floor', sa.Integer(), nullable=True),
            sa.Column('status', roomstatus_enum, server_default='available', nullable=False),
            sa.Column('is_clean', sa.Boolean(), server_default=sa.true(), nullable=False),
            sa.Column('notes', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['room_type_id'], ['room_types.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('room_number')
        )
        op.create_index(op.f('ix_rooms_id'), 'rooms', ['id'], unique=False)
        op.create_index(op.f('ix_rooms_room_type_id'), 'rooms', ['room_type_id'], unique=False)
        op.create_index(op.f('ix_rooms_status'), 'rooms', ['status'], unique=False)

    if not _has_table(bind, 'guests'):
        op.create_table('guests',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('first_name', sa.String(length=50), nullable=False),
            sa.Column('last_name', sa.String(length=50), nullable=False),
            sa.Column('email', sa.String(length=100), nullable=True),
            sa.Column('phone', sa.String(length=20), nullable=True),
            sa.Column('address', sa.Text(), nullable=True),
            sa.Column('id_type', idtype_enum, server_default='national_id', nullable=False),
            sa.Column('id_number', sa.String(length=50), nullable=True),
            sa.Column('nationality', sa.String(length=50), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_guests_id'), 'guests', ['id'], unique=False)
        op.create_index(op.f('ix_guests_email'), 'guests', ['email'], unique=False)

    if not _has_table(bind, 'bookings'):
        op.create_table('bookings',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('booking_number', sa.String(length=20), nullable=False),
            sa.Column('guest_id', sa.Integer(), nullable=False),
            sa.Column('room_id', sa.Integer(), nullable=False),
            sa.Column('check_in_date', sa.Date(), nullable=False),
            sa.Column('check_out_date', sa.Date(), nullable=False),
            sa.Column('adults', sa.Integer(), server_default='1', nullable=False),
            sa.Column('children', sa.Integer(), server_default='0', nullable=False),
            sa.Column('total_amount', sa.Numeric(precision=10, scale=2), nullable=False),
            sa.Column('status', bookingstatus_enum, server_default='pending', nullable=False),
            sa.Column('special_requests', sa.Text(), nullable=True),
            sa.Column('created_by', sa.Integer(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.CheckConstraint('check_out_date > check_in_date', name='ck_bookings_check_out_after_check_in'),
            sa.CheckConstraint('adults >= 1', name='ck_bookings_adults_positive'),
            sa.CheckConstraint('children >= 0', name='ck_bookings_children_non_negative'),
            sa.ForeignKeyConstraint(['guest_id'], ['guests.id'], ),
            sa.ForeignKeyConstraint(['room_id'], ['rooms.id'], ),
            sa.ForeignKeyConstraint(['created_by'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_bookings_id'), 'bookings', ['id'], unique=False)
        op.create_index(op.f('ix_bookings_booking_number'), 'bookings', ['booking_number'], unique=True)
        op.create_index(op.f('ix_bookings_guest_id'), 'bookings', ['guest_id'], unique=False)
        op.create_index(op.f('ix_bookings_room_id'), 'bookings', ['room_id'], unique=False)
        op.create_index(op.f('ix_bookings_check_in_date'), 'bookings', ['check_in_date'], unique=False)
        op.create_index(op.f('ix_bookings_check_out_date'), 'bookings', ['check_out_date'], unique=False)
        op.create_index(op.f('ix_bookings_status'), 'bookings', ['status'], unique=False)

        if dialect_name == 'postgresql':
            # No two confirmed/checked-in stays of one room may overlap
            op.execute('CREATE EXTENSION IF NOT EXISTS btree_gist')
            op.execute(
                f"ALTER TABLE bookings ADD CONSTRAINT {OVERLAP_CONSTRAINT} "
                "EXCLUDE USING gist (room_id WITH =, daterange(check_in_date, check_out_date, '[)') WITH &&) "
                "WHERE (status IN ('confirmed', 'checked_in'))"
            )

    if not _has_table(bind, 'payments'):
        op.create_table('payments',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('booking_id', sa.Integer(), nullable=False),
            sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
            sa.Column('method', paymentmethod_enum, nullable=False),
            sa.Column('status', paymentstatus_enum, server_default='pending', nullable=False),
            sa.Column('transaction_id', sa.String(length=100), nullable=True),
            sa.Column('notes', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_payments_id'), 'payments', ['id'], unique=False)
        op.create_index(op.f('ix_payments_booking_id'), 'payments', ['booking_id'], unique=False)
        op.create_index(op.f('ix_payments_transaction_id'), 'payments', ['transaction_id'], unique=True)


def downgrade() -> None:
    bind = op.get_bind()
    dialect_name = bind.dialect.name
    op.drop_table('payments')
    op.drop_table('bookings')
    op.drop_table('guests')
    op.drop_table('rooms')
    op.drop_table('room_types')
    op.drop_table('users')

    # Drop ENUM types for PostgreSQL
    if dialect_name == 'postgresql':
        sa.Enum(name='paymentstatus').drop(bind, checkfirst=True)
        sa.Enum(name='paymentmethod').drop(bind, checkfirst=True)
        sa.Enum(name='bookingstatus').drop(bind, checkfirst=True)
        sa.Enum(name='idtype').drop(bind, checkfirst=True)
        sa.Enum(name='roomstatus').drop(bind, checkfirst=True)
