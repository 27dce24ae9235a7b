#!/usr/bin/env python3
"""
Create tables and a demo studio for local development.
Production databases are managed with `alembic upgrade head`.
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))


async def init_database() -> bool:
    from inkgest.db.base import init_db

    print("🗄️  Creating tables...")
    try:
        await init_db()
    except Exception as e:
        print(f"❌ Database initialization failed: {e}")
        return False
    print("✅ Database tables created")
    return True


async def create_sample_data() -> None:
    import sqlalchemy as sa

    from inkgest.db.models.artist import Artist
    from inkgest.db.models.client import Client
    from inkgest.db.models.service import Service
    from inkgest.db.models.store import Room, Store
    from inkgest.db.session import AsyncSessionLocal

    async with AsyncSessionLocal() as session:
        existing = await session.execute(sa.select(Store).limit(1))
        if existing.scalar_one_or_none():
            print("📊 Sample data already exists, skipping")
            return

        store = Store(name="Demo Ink Studio", timezone="Europe/Madrid")
        session.add(store)
        await session.flush()

        session.add_all([
            Room(store_id=store.id, name="Cabina 1"),
            Artist(store_id=store.id, name="Marta Vidal", specialties=["fine_line", "blackwork"],
                   schedule={"tuesday": [{"start": "10:00", "end": "19:00"}]}),
            Service(store_id=store.id, name="Tatuaje pequeño", duration_min=60, price=80),
            Client(store_id=store.id, name="Laura Gómez", email="laura@example.com", phone="+34600111222"),
        ])
        await session.commit()
        print(f"✅ Sample studio created: {store.id}")


if __name__ == "__main__":
    print("🚀 InkGest database initialization")
    if not asyncio.run(init_database()):
        sys.exit(1)
    asyncio.run(create_sample_data())
