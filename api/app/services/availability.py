"""Advisory load analysis for a wedding date.

Nothing here blocks a booking. The analysis compares the day's active
bookings against soft daily capacities; the proximity warnings flag days and
hours that tend to be crowded.
"""

import enum
from dataclasses import dataclass
from datetime import date, time

from app.services.booking_repository import BookingRepository
from app.services.engine_config import EngineConfig
from app.services.suggestions import DEFAULT_LOCALE

FRIDAY, SATURDAY = 4, 5
PEAK_HOURS = range(17, 21)  # 17:00-20:59, evening traffic


class Workload(str, enum.Enum):
    AVAILABLE = "available"
    MODERATE = "moderate"
    BUSY = "busy"


RECOMMENDATIONS = {
    "pt_BR": {
        Workload.BUSY: "Alta demanda - considere datas alternativas.",
        Workload.MODERATE: "Demanda moderada - reserve com antecedência.",
        Workload.AVAILABLE: "Boa disponibilidade.",
    },
    "en": {
        Workload.BUSY: "High demand - consider alternative dates.",
        Workload.MODERATE: "Moderate demand - book early.",
        Workload.AVAILABLE: "Good availability.",
    },
}

WARNINGS = {
    "pt_BR": {
        "crowded": "Já existem {count} casamentos agendados neste local para esta data.",
        "friday": "Sexta-feira costuma ter maior demanda e pode haver atrasos.",
        "saturday": "Sábado é o dia mais concorrido para casamentos.",
        "peak": "Horário de pico - considere possíveis atrasos no trânsito.",
    },
    "en": {
        "crowded": "There are already {count} weddings booked at this location on this date.",
        "friday": "Fridays are in high demand and delays are more likely.",
        "saturday": "Saturday is the busiest day for weddings.",
        "peak": "Peak traffic hours - allow for possible delays.",
    },
}


@dataclass(frozen=True)
class Occupancy:
    bookings: int
    capacity: int
    rate: float  # percent, one decimal


@dataclass(frozen=True)
class AvailabilityAnalysis:
    location: Occupancy
    celebrant: Occupancy
    classification: Workload
    locale: str = DEFAULT_LOCALE

    @property
    def recommendation(self) -> str:
        return RECOMMENDATIONS.get(self.locale, RECOMMENDATIONS[DEFAULT_LOCALE])[self.classification]


def occupancy(bookings: int, capacity: int) -> Occupancy:
    return Occupancy(bookings=bookings, capacity=capacity, rate=round(bookings / capacity * 100, 1))


def classify(location_rate: float, celebrant_rate: float, config: EngineConfig) -> Workload:
    """Busy above the busy threshold on either axis, moderate above the moderate one."""
    worst = max(location_rate, celebrant_rate)
    if worst > config.busy_threshold_percent:
        return Workload.BUSY
    if worst > config.moderate_threshold_percent:
        return Workload.MODERATE
    return Workload.AVAILABLE


async def analyze_availability(
    repo: BookingRepository,
    query_date: date,
    location_id: int,
    celebrant_id: int,
    config: EngineConfig,
    locale: str = DEFAULT_LOCALE,
) -> AvailabilityAnalysis:
    location = occupancy(
        await repo.count_active_bookings(query_date, location_id=location_id), config.location_daily_capacity
    )
    celebrant = occupancy(
        await repo.count_active_bookings(query_date, celebrant_id=celebrant_id), config.celebrant_daily_capacity
    )
    return AvailabilityAnalysis(location, celebrant, classify(location.rate, celebrant.rate, config), locale)


def proximity_warnings(
    query_date: date,
    start_time: time,
    location_bookings: int,
    config: EngineConfig,
    locale: str = DEFAULT_LOCALE,
) -> list[str]:
    texts = WARNINGS.get(locale, WARNINGS[DEFAULT_LOCALE])
    warnings = []
    if location_bookings >= config.proximity_warning_bookings:
        warnings.append(texts["crowded"].format(count=location_bookings))

    weekday = query_date.weekday()
    if weekday == FRIDAY:
        warnings.append(texts["friday"])
    elif weekday == SATURDAY:
        warnings.append(texts["saturday"])

    if start_time.hour in PEAK_HOURS:
        warnings.append(texts["peak"])
    return warnings


WORKING_DAYS_PER_MONTH = 22  # approximate


def month_occupancy_rate(weddings_this_month: int, working_days: int = WORKING_DAYS_PER_MONTH) -> float:
    """Weddings this month per working day, as a percentage with one decimal."""
    return round(weddings_this_month / working_days * 100, 1)
