"""Engine configuration: defaults, conversion from the settings table, validation.

EngineConfig is loaded once per request by the caller and threaded through
every engine call. No engine function reads configuration on its own.
"""

import dataclasses
import json
import logging
from dataclasses import dataclass
from datetime import time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.setting import SettingType, SystemSetting
from app.services.snapshots import ResourceType

logger = logging.getLogger(__name__)


class EngineConfigError(Exception):
    """Raised when stored settings cannot produce a usable EngineConfig."""


@dataclass(frozen=True)
class EngineConfig:
    ceremony_duration_minutes: int = 60
    location_buffer_minutes: int = 30
    celebrant_buffer_minutes: int = 30  # displacement (travel) time
    day_start: time = time(8, 0)
    day_end: time = time(20, 0)
    min_advance_days: int = 90
    max_advance_days: int = 365
    slot_granularity_minutes: int = 30
    same_day_notice_minutes: int = 120
    location_daily_capacity: int = 8
    celebrant_daily_capacity: int = 4
    max_suggestions: int = 3
    alternative_day_window: int = 7
    busy_threshold_percent: float = 75.0
    moderate_threshold_percent: float = 50.0
    proximity_warning_bookings: int = 3

    def __post_init__(self) -> None:
        problems = []
        if self.ceremony_duration_minutes <= 0:
            problems.append("ceremony_duration_minutes must be positive")
        if self.location_buffer_minutes < 0 or self.celebrant_buffer_minutes < 0:
            problems.append("buffers cannot be negative")
        if self.slot_granularity_minutes <= 0:
            problems.append("slot_granularity_minutes must be positive")
        if self.day_start > self.day_end:
            problems.append("day_start must not be after day_end")
        if not 0 <= self.min_advance_days <= self.max_advance_days:
            problems.append("advance days must satisfy 0 <= min_advance_days <= max_advance_days")
        if self.location_daily_capacity <= 0 or self.celebrant_daily_capacity <= 0:
            problems.append("daily capacities must be positive")
        if self.same_day_notice_minutes < 0 or self.max_suggestions < 0 or self.alternative_day_window < 0:
            problems.append("notice, suggestion count and day window cannot be negative")
        if problems:
            raise EngineConfigError("; ".join(problems))

    def buffer_for(self, resource_type: ResourceType) -> int:
        if resource_type is ResourceType.LOCATION:
            return self.location_buffer_minutes
        return self.celebrant_buffer_minutes

    def capacity_for(self, resource_type: ResourceType) -> int:
        if resource_type is ResourceType.LOCATION:
            return self.location_daily_capacity
        return self.celebrant_daily_capacity


_FIELDS = {f.name: f for f in dataclasses.fields(EngineConfig)}


def _parse_time(value: object, key: str) -> time:
    if isinstance(value, time):
        return value
    try:
        h, m = map(int, str(value).split(":")[:2])
        return time(h, m)
    except ValueError as exc:
        raise EngineConfigError(f"Setting {key!r} must be HH:MM, got {value!r}") from exc


def _coerce(key: str, value: object) -> object:
    default = _FIELDS[key].default
    if isinstance(default, time):
        return _parse_time(value, key)
    if isinstance(value, bool):
        raise EngineConfigError(f"Setting {key!r} must be numeric, got {value!r}")
    try:
        if isinstance(default, float):
            return float(value)
        return int(value)
    except (TypeError, ValueError) as exc:
        raise EngineConfigError(f"Setting {key!r} must be numeric, got {value!r}") from exc


def config_from_values(values: dict[str, object]) -> EngineConfig:
    """Build an EngineConfig from already-typed setting values.

    Keys that are not engine tunables are ignored (the settings table is
    shared with the front office). Missing keys keep their defaults.
    """
    overrides = {key: _coerce(key, value) for key, value in values.items() if key in _FIELDS}
    missing = sorted(set(_FIELDS) - set(overrides))
    if missing:
        logger.debug("Engine settings using defaults: %s", ", ".join(missing))
    return EngineConfig(**overrides)


def convert_setting(setting: SystemSetting) -> object:
    """Convert a stored setting string according to its declared type."""
    raw = setting.value
    try:
        if setting.value_type == SettingType.INTEGER:
            return int(raw)
        if setting.value_type == SettingType.BOOLEAN:
            return raw.strip().lower() in ("1", "true", "yes")
        if setting.value_type == SettingType.JSON:
            return json.loads(raw)
    except ValueError as exc:
        raise EngineConfigError(f"Setting {setting.key!r} is not a valid {setting.value_type.value}") from exc
    return raw


async def load_engine_config(db: AsyncSession) -> EngineConfig:
    """Read the settings table and return the effective EngineConfig."""
    result = await db.execute(select(SystemSetting))
    values = {s.key: convert_setting(s) for s in result.scalars().all()}
    return config_from_values(values)
