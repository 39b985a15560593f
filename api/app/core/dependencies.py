"""FastAPI dependencies for injection into route handlers."""

from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.services.booking_repository import BookingRepository, SqlBookingRepository
from app.services.engine_config import EngineConfig, load_engine_config


async def get_booking_repository(db: AsyncSession = Depends(get_db)) -> BookingRepository:
    return SqlBookingRepository(db)


async def get_engine_config(db: AsyncSession = Depends(get_db)) -> EngineConfig:
    """Effective engine settings, read from the settings table once per request."""
    return await load_engine_config(db)


def get_now() -> datetime:
    """Current time in the parish timezone. Overridden in tests to pin the clock."""
    return datetime.now(ZoneInfo(settings.timezone))


def get_weekday_locale() -> str:
    return settings.weekday_locale
