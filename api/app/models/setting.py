"""Key/value system settings.

Engine tunables (ceremony duration, buffers, business hours, lead time...) are
stored as typed strings and converted by app.services.engine_config.
"""

import enum

from sqlalchemy import Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


class SettingType(str, enum.Enum):
    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    JSON = "json"


class SystemSetting(TimestampMixin, Base):
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    value_type: Mapped[SettingType] = mapped_column(
        Enum(SettingType, name="setting_type", values_callable=lambda e: [x.value for x in e]),
        default=SettingType.STRING,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<SystemSetting {self.key}={self.value!r}>"
