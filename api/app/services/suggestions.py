"""Alternative times and days for a booking that hit a conflict.

Same-day alternatives: slots free for both the requested location and the
requested celebrant, ranked by distance from the requested time (earlier time
wins a tie). Alternative days: the requested time on nearby days, nearest
first, where neither resource has a conflict. The ceremony length is never
changed, only the start time or the day.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta

from app.services.booking_repository import BookingRepository
from app.services.conflicts import resources_free_at
from app.services.engine_config import EngineConfig
from app.services.intervals import to_minutes
from app.services.slots import generate_free_slots
from app.services.snapshots import BookingCandidate, ResourceType
from app.services.temporal import validate_temporal

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "pt_BR"

# Monday first, matching date.weekday()
WEEKDAY_NAMES = {
    "pt_BR": (
        "Segunda-feira",
        "Terça-feira",
        "Quarta-feira",
        "Quinta-feira",
        "Sexta-feira",
        "Sábado",
        "Domingo",
    ),
    "en": ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"),
}

_AT = {"pt_BR": "às", "en": "at"}


@dataclass(frozen=True)
class AlternativeDay:
    wedding_date: date
    start_time: time
    weekday_label: str
    description: str


@dataclass(frozen=True)
class Suggestions:
    same_day: list[time] = field(default_factory=list)
    other_days: list[AlternativeDay] = field(default_factory=list)


def weekday_label(d: date, locale: str = DEFAULT_LOCALE) -> str:
    names = WEEKDAY_NAMES.get(locale, WEEKDAY_NAMES[DEFAULT_LOCALE])
    return names[d.weekday()]


def describe_alternative(d: date, t: time, locale: str = DEFAULT_LOCALE) -> str:
    """e.g. 'Sábado, 13/06/2026 às 15:00'."""
    at = _AT.get(locale, _AT[DEFAULT_LOCALE])
    return f"{weekday_label(d, locale)}, {d.strftime('%d/%m/%Y')} {at} {t.strftime('%H:%M')}"


def rank_by_proximity(free: list[time], requested: time, limit: int) -> list[time]:
    """Nearest start times first by absolute minute distance; ties go to the earlier time."""
    target = to_minutes(requested)
    ranked = sorted(free, key=lambda t: (abs(to_minutes(t) - target), t))
    return ranked[:limit]


def day_offsets(window: int) -> list[int]:
    """-1, +1, -2, +2, ... up to +/-window. The requested day itself is never included."""
    offsets: list[int] = []
    for distance in range(1, window + 1):
        offsets.extend((-distance, distance))
    return offsets


async def same_day_alternatives(
    repo: BookingRepository,
    candidate: BookingCandidate,
    now: datetime,
    config: EngineConfig,
) -> list[time]:
    location_free = await generate_free_slots(
        repo,
        candidate.wedding_date,
        ResourceType.LOCATION,
        candidate.location_id,
        now,
        config,
        exclude_id=candidate.booking_id,
    )
    celebrant_free = set(
        await generate_free_slots(
            repo,
            candidate.wedding_date,
            ResourceType.CELEBRANT,
            candidate.celebrant_id,
            now,
            config,
            exclude_id=candidate.booking_id,
        )
    )
    both_free = [t for t in location_free if t in celebrant_free and t != candidate.start_time]
    return rank_by_proximity(both_free, candidate.start_time, config.max_suggestions)


async def alternative_days(
    repo: BookingRepository,
    candidate: BookingCandidate,
    today: date,
    config: EngineConfig,
    locale: str = DEFAULT_LOCALE,
) -> list[AlternativeDay]:
    """First days within the window where the requested time is free for both resources.

    Days that break the date rules (past, too soon, too far ahead) are skipped.
    """
    found: list[AlternativeDay] = []
    for offset in day_offsets(config.alternative_day_window):
        if len(found) >= config.max_suggestions:
            break
        day = candidate.wedding_date + timedelta(days=offset)
        if not validate_temporal(day, candidate.start_time, today, config, short_circuit=True).is_valid:
            continue
        if await resources_free_at(repo, candidate, day, config):
            found.append(
                AlternativeDay(
                    wedding_date=day,
                    start_time=candidate.start_time,
                    weekday_label=weekday_label(day, locale),
                    description=describe_alternative(day, candidate.start_time, locale),
                )
            )
    return found


async def suggest_alternatives(
    repo: BookingRepository,
    candidate: BookingCandidate,
    now: datetime,
    config: EngineConfig,
    locale: str = DEFAULT_LOCALE,
) -> Suggestions:
    suggestions = Suggestions(
        same_day=await same_day_alternatives(repo, candidate, now, config),
        other_days=await alternative_days(repo, candidate, now.date(), config, locale),
    )
    logger.debug(
        "Suggestions for %s %s: %d same-day, %d other days",
        candidate.wedding_date,
        candidate.start_time,
        len(suggestions.same_day),
        len(suggestions.other_days),
    )
    return suggestions
