"""Half-open time intervals for conflict testing.

Pure calculation module: no database, no async, no FastAPI dependencies.
Intervals are minute offsets from midnight of the ceremony date. A buffered
interval may start before 0 or end after 1440; it is only ever compared,
never stored.
"""

from dataclasses import dataclass
from datetime import time

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class Interval:
    """[start, end) in minutes from midnight."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"Interval end {self.end} is before start {self.start}")

    @classmethod
    def from_start(cls, start_time: time, duration_minutes: int) -> "Interval":
        start = to_minutes(start_time)
        return cls(start, start + duration_minutes)

    @property
    def duration_minutes(self) -> int:
        return self.end - self.start

    def __str__(self) -> str:
        return f"{format_minutes(self.start)}-{format_minutes(self.end)}"


def to_minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def from_minutes(minutes: int) -> time:
    """Inverse of to_minutes for offsets inside the day."""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"{minutes} minutes is outside the day")
    return time(minutes // 60, minutes % 60)


def format_minutes(minutes: int) -> str:
    """HH:MM for an offset, with a sign for buffers that spill over midnight."""
    sign = "-" if minutes < 0 else ""
    h, m = divmod(abs(minutes), 60)
    return f"{sign}{h:02d}:{m:02d}"


def overlaps(a: Interval, b: Interval) -> bool:
    """Touching intervals ([10, 20) and [20, 30)) do not overlap."""
    return a.start < b.end and b.start < a.end


def with_buffer(interval: Interval, before: int, after: int | None = None) -> Interval:
    """Expand an interval by `before` minutes at the start and `after` at the end.

    `after` defaults to `before` (symmetric padding).
    """
    if after is None:
        after = before
    return Interval(interval.start - before, interval.end + after)


def occupied_interval(start_time: time, duration_minutes: int, buffer_minutes: int) -> Interval:
    """The interval a ceremony blocks for collision testing: duration plus buffer on both sides."""
    return with_buffer(Interval.from_start(start_time, duration_minutes), buffer_minutes)


def starts_collide(candidate: time, existing: time, duration_minutes: int, buffer_minutes: int) -> bool:
    """Whether two ceremonies starting at these times collide on a shared resource.

    Both sides are padded identically, so the check is symmetric in its two
    start times. This single predicate backs both conflict detection and slot
    generation.
    """
    return overlaps(
        occupied_interval(candidate, duration_minutes, buffer_minutes),
        occupied_interval(existing, duration_minutes, buffer_minutes),
    )
