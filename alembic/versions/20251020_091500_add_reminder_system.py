"""add reminder schedules, confirmation tokens and communication preferences

Revision ID: inkgest_0002
Revises: inkgest_0001
Create Date: 2025-10-20 09:15:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'inkgest_0002'
down_revision: Union[str, None] = 'inkgest_0001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'reminder_schedules',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('appointment_id', sa.String(36), sa.ForeignKey('appointments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(16), nullable=False),
        sa.Column('scheduled_for', sa.DateTime(timezone=True), nullable=False),
        sa.Column('sent', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('sent_at', sa.DateTime(timezone=True)),
        sa.Column('error', sa.Text),
        sa.Column('retry_count', sa.Integer, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.UniqueConstraint('appointment_id', 'type', name='uq_reminder_schedules_appointment_type'),
    )
    op.create_index('ix_reminder_schedules_due', 'reminder_schedules', ['sent', 'scheduled_for'])

    op.create_table(
        'appointment_confirmations',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('appointment_id', sa.String(36), sa.ForeignKey('appointments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('token', sa.String(64), nullable=False, unique=True),
        sa.Column('confirmed', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('confirmed_at', sa.DateTime(timezone=True)),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )
    op.create_index('ix_appointment_confirmations_appointment_id', 'appointment_confirmations', ['appointment_id'])

    op.create_table(
        'communication_preferences',
        sa.Column('client_id', sa.String(36), sa.ForeignKey('clients.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('whatsapp_enabled', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('email_enabled', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('sms_enabled', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('appointment_reminders', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('preferred_language', sa.String(8), nullable=False, server_default='es'),
        sa.Column('preferred_channel', sa.String(16), nullable=False, server_default='whatsapp'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )


def downgrade() -> None:
    op.drop_table('communication_preferences')
    op.drop_index('ix_appointment_confirmations_appointment_id', table_name='appointment_confirmations')
    op.drop_table('appointment_confirmations')
    op.drop_index('ix_reminder_schedules_due', table_name='reminder_schedules')
    op.drop_table('reminder_schedules')
