"""All models imported here for Alembic autogenerate discovery."""

from app.models.base import Base
from app.models.booking import BookingStatus, WeddingBooking
from app.models.resources import Celebrant, CelebrantKind, Location
from app.models.setting import SettingType, SystemSetting

__all__ = [
    "Base",
    "Location",
    "Celebrant",
    "CelebrantKind",
    "WeddingBooking",
    "BookingStatus",
    "SystemSetting",
    "SettingType",
]
