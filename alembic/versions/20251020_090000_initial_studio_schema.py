"""initial studio schema: stores, clients, artists, services, rooms, appointments

Revision ID: inkgest_0001
Revises:
Create Date: 2025-10-20 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'inkgest_0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'stores',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('timezone', sa.String(64), nullable=False, server_default='Europe/Madrid'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )
    op.create_table(
        'rooms',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('store_id', sa.String(36), sa.ForeignKey('stores.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(80), nullable=False),
    )
    op.create_index('ix_rooms_store_id', 'rooms', ['store_id'])

    op.create_table(
        'clients',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('store_id', sa.String(36), sa.ForeignKey('stores.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('email', sa.String(255)),
        sa.Column('phone', sa.String(32)),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )
    op.create_index('ix_clients_store_id', 'clients', ['store_id'])

    op.create_table(
        'artists',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('store_id', sa.String(36), sa.ForeignKey('stores.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('email', sa.String(255)),
        sa.Column('specialties', sa.JSON, nullable=False),
        sa.Column('schedule', sa.JSON, nullable=False),
        sa.Column('google_calendar_id', sa.String(255)),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
    )
    op.create_index('ix_artists_store_id', 'artists', ['store_id'])

    op.create_table(
        'services',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('store_id', sa.String(36), sa.ForeignKey('stores.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('duration_min', sa.Integer, nullable=False, server_default='60'),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('category', sa.String(32), nullable=False, server_default='TATTOO'),
        sa.Column('requires_consent', sa.Boolean, nullable=False, server_default=sa.true()),
    )
    op.create_index('ix_services_store_id', 'services', ['store_id'])

    op.create_table(
        'appointments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('store_id', sa.String(36), sa.ForeignKey('stores.id', ondelete='CASCADE'), nullable=False),
        sa.Column('client_id', sa.String(36), sa.ForeignKey('clients.id', ondelete='CASCADE'), nullable=False),
        sa.Column('artist_id', sa.String(36), sa.ForeignKey('artists.id'), nullable=False),
        sa.Column('service_id', sa.String(36), sa.ForeignKey('services.id'), nullable=False),
        sa.Column('room_id', sa.String(36), sa.ForeignKey('rooms.id', ondelete='SET NULL')),
        sa.Column('starts_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ends_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='SCHEDULED'),
        sa.Column('notes', sa.Text),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('deposit', sa.Numeric(10, 2)),
        sa.Column('google_event_id', sa.String(255)),
        sa.Column('cancelled_at', sa.DateTime(timezone=True)),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )
    op.create_index('ix_appointments_store_id_starts_at', 'appointments', ['store_id', 'starts_at'])
    op.create_index('ix_appointments_artist_id', 'appointments', ['artist_id'])
    op.create_index('ix_appointments_client_id', 'appointments', ['client_id'])


def downgrade() -> None:
    op.drop_index('ix_appointments_client_id', table_name='appointments')
    op.drop_index('ix_appointments_artist_id', table_name='appointments')
    op.drop_index('ix_appointments_store_id_starts_at', table_name='appointments')
    op.drop_table('appointments')
    op.drop_index('ix_services_store_id', table_name='services')
    op.drop_table('services')
    op.drop_index('ix_artists_store_id', table_name='artists')
    op.drop_table('artists')
    op.drop_index('ix_clients_store_id', table_name='clients')
    op.drop_table('clients')
    op.drop_index('ix_rooms_store_id', table_name='rooms')
    op.drop_table('rooms')
    op.drop_table('stores')
