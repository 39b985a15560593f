"""Seed the database with parish locations, celebrants and engine settings.

Run with: python -m scripts.seed
"""

import asyncio

from sqlalchemy import select

from app.core.database import async_session_factory, engine
from app.models import Base, Celebrant, CelebrantKind, Location, SettingType, SystemSetting

LOCATIONS = [
    {"name": "Igreja Matriz São José", "address": "Praça da Matriz, 1", "seating_capacity": 400},
    {"name": "Capela Nossa Senhora das Graças", "address": "Rua das Flores, 210", "seating_capacity": 120},
    {"name": "Capela Santo Antônio", "address": "Estrada do Morro, km 3", "seating_capacity": 80},
]

CELEBRANTS = [
    {"full_name": "Pe. João Batista Ferreira", "kind": CelebrantKind.PRIEST},
    {"full_name": "Pe. Marcos Antônio Lima", "kind": CelebrantKind.PRIEST},
    {"full_name": "Diác. Paulo Henrique Souza", "kind": CelebrantKind.DEACON},
]

# Stored as typed strings; see app.services.engine_config for defaults and validation.
ENGINE_SETTINGS = [
    ("ceremony_duration_minutes", "60", SettingType.INTEGER),
    ("location_buffer_minutes", "30", SettingType.INTEGER),
    ("celebrant_buffer_minutes", "30", SettingType.INTEGER),
    ("day_start", "08:00", SettingType.STRING),
    ("day_end", "20:00", SettingType.STRING),
    ("min_advance_days", "90", SettingType.INTEGER),
    ("max_advance_days", "365", SettingType.INTEGER),
    ("slot_granularity_minutes", "30", SettingType.INTEGER),
    ("same_day_notice_minutes", "120", SettingType.INTEGER),
    ("location_daily_capacity", "8", SettingType.INTEGER),
    ("celebrant_daily_capacity", "4", SettingType.INTEGER),
]


async def seed():
    # Create tables (in dev; production uses migrations)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as db:
        result = await db.execute(select(Location).limit(1))
        if result.scalar_one_or_none():
            print("Database already seeded - skipping.")
            return

        for data in LOCATIONS:
            db.add(Location(**data))
        for data in CELEBRANTS:
            db.add(Celebrant(**data))
        for key, value, value_type in ENGINE_SETTINGS:
            db.add(SystemSetting(key=key, value=value, value_type=value_type))

        await db.commit()

        print("Seeded:")
        print(f"  {len(LOCATIONS)} locations")
        print(f"  {len(CELEBRANTS)} celebrants")
        print(f"  {len(ENGINE_SETTINGS)} engine settings")


if __name__ == "__main__":
    asyncio.run(seed())
