# inkgest/db/base.py

"""
Imports all ORM models so Alembic and create_all can discover them.
Whenever you add a new model, import it here.
"""
from inkgest.db.models.store import Store, Room
from inkgest.db.models.client import Client, CommunicationPreference
from inkgest.db.models.artist import Artist
from inkgest.db.models.service import Service
from inkgest.db.models.appointment import Appointment
from inkgest.db.models.reminder import ReminderSchedule, AppointmentConfirmation
from inkgest.db.session import engine, Base

async def init_db(bind=None):
    """Create all tables (development and tests; production uses Alembic)."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
