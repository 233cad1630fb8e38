"""
Domain models for availability, showings, slots and calendar layout.
"""

from dataclasses import dataclass, field
from datetime import time
from enum import Enum
from typing import Dict, List, Optional, Tuple

import pendulum
from pendulum import DateTime

from .exceptions import InvalidConfiguration

WEEKDAY_NAMES = {
    0: "monday",
    1: "tuesday",
    2: "wednesday",
    3: "thursday",
    4: "friday",
    5: "saturday",
    6: "sunday",
}


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """
        Check if this range overlaps with another.

        Ranges are half-open, so back-to-back ranges do not overlap.
        """
        return self.start < other.end and other.start < self.end

    def intersect(self, other: "TimeRange") -> "TimeRange | None":
        """
        Calculate the intersection of two time ranges.
        Returns None if there is no overlap.
        """
        if not self.overlaps(other):
            return None

        start = max(self.start, other.start)
        end = min(self.end, other.end)

        return TimeRange(start=start, end=end)

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class DayHours:
    """Working hours for one weekday, as local wall-clock times."""
    start_time: time
    end_time: time
    enabled: bool = True

    def __post_init__(self):
        if self.enabled and self.start_time >= self.end_time:
            raise InvalidConfiguration(
                f"Working hours must start before they end, got {self.start_time}-{self.end_time}"
            )


@dataclass
class AvailabilityConfig:
    """
    An agent's weekly availability.

    Maps weekday (0=Monday, 6=Sunday) to the hours the agent takes showings.
    Weekdays missing from the mapping are treated as disabled.
    """
    days: Dict[int, DayHours] = field(default_factory=dict)

    def hours_for(self, weekday: int) -> DayHours | None:
        """Return the enabled hours for a weekday, or None."""
        hours = self.days.get(weekday)
        if hours is None or not hours.enabled:
            return None
        return hours

    def enabled_weekdays(self) -> List[int]:
        return sorted(day for day in self.days if self.hours_for(day))

    def window_for(self, date: DateTime) -> TimeRange | None:
        """
        Get the working window for a specific local day.
        Returns None if the agent does not work that day.
        """
        hours = self.hours_for(date.weekday())
        if hours is None:
            return None

        start = pendulum.datetime(
            date.year, date.month, date.day,
            hours.start_time.hour, hours.start_time.minute,
            tz=date.timezone,
        )
        end = pendulum.datetime(
            date.year, date.month, date.day,
            hours.end_time.hour, hours.end_time.minute,
            tz=date.timezone,
        )

        return TimeRange(start=start, end=end)

    def visible_hour_range(self) -> Tuple[int, int]:
        """
        Hour range shown by the agent's calendar grid.

        One hour of padding on each side of the earliest start and latest end
        across enabled days.
        """
        enabled = [self.days[day] for day in self.enabled_weekdays()]
        if not enabled:
            return 9, 17

        earliest = min(hours.start_time.hour for hours in enabled)
        latest = max(hours.end_time.hour for hours in enabled)
        return max(0, earliest - 1), min(24, latest + 1)


class ShowingStatus(str, Enum):
    """Lifecycle of a showing."""
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"

    @property
    def blocks_time(self) -> bool:
        """Whether a showing in this status occupies its time slot."""
        return self is not ShowingStatus.CANCELLED

    @property
    def is_terminal(self) -> bool:
        return self in (ShowingStatus.COMPLETED, ShowingStatus.CANCELLED, ShowingStatus.NO_SHOW)


@dataclass(frozen=True)
class ShowingInterval:
    """A booked showing reduced to the part the scheduling core cares about."""
    showing_id: str
    start: DateTime
    duration_minutes: int
    status: ShowingStatus = ShowingStatus.SCHEDULED

    @property
    def end(self) -> DateTime:
        return self.start.add(minutes=self.duration_minutes)

    @property
    def blocks_time(self) -> bool:
        return self.status.blocks_time and self.duration_minutes > 0

    def time_range(self) -> TimeRange:
        """Scheduled interval; only valid for positive durations."""
        return TimeRange(start=self.start, end=self.end)


@dataclass(frozen=True)
class ClientInfo:
    """Contact details of the person booking the showing."""
    name: str
    email: str
    phone: str = ""
    notes: str = ""
    pre_approved: bool = False


@dataclass
class ShowingRecord:
    """
    A persisted showing document.

    The core only reads these and writes a single new record or a single
    timestamp/status update back through the store.
    """
    id: str
    property_id: str
    scheduled_at: DateTime
    duration_minutes: int
    status: ShowingStatus = ShowingStatus.SCHEDULED
    client: Optional[ClientInfo] = None
    agent_id: str = ""
    rescheduled_from: Optional[DateTime] = None
    cancelled_at: Optional[DateTime] = None
    cancellation_reason: str = ""
    created_at: Optional[DateTime] = None

    def to_interval(self) -> ShowingInterval:
        return ShowingInterval(
            showing_id=self.id,
            start=self.scheduled_at,
            duration_minutes=self.duration_minutes,
            status=self.status,
        )


@dataclass(frozen=True)
class SlotRequest:
    """Inputs resolved for one slot generation call. Never persisted."""
    property_id: str
    duration_minutes: int
    buffer_minutes: int
    timezone: str
    booking_window_days: int
    now: DateTime


@dataclass(frozen=True)
class CandidateSlot:
    """
    A bookable (or already taken) slot offered to a client.
    """
    date_key: str
    start: DateTime
    end: DateTime
    label: str
    available: bool

    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() / 60)


@dataclass
class DaySlotGroup:
    """
    Slots of one local calendar day, ordered by start.

    ``date_key`` is ``YYYY-MM-DD`` in the property's timezone and is the
    stable lookup key between generation and the caller's selection state.
    """
    date_key: str
    display_date: str
    slots: List[CandidateSlot] = field(default_factory=list)

    @property
    def available_slots(self) -> List[CandidateSlot]:
        return [slot for slot in self.slots if slot.available]

    def find(self, start: DateTime) -> CandidateSlot | None:
        """Find the slot starting at the given instant."""
        for slot in self.slots:
            if slot.start == start:
                return slot
        return None


@dataclass(frozen=True)
class LayoutAssignment:
    """Side-by-side column placement of a showing on the agent's calendar."""
    showing_id: str
    column: int
    total_columns: int


@dataclass(frozen=True)
class BlockPosition:
    """
    Rendered rectangle of a showing block.

    ``top`` and ``height`` are in pixels relative to the grid's first hour,
    ``left_percent`` and ``width_percent`` are fractions of the day column.
    """
    top: float
    height: float
    left_percent: float
    width_percent: float
