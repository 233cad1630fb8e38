"""
Core business logic for generating bookable showing slots.

This is the heart of the booking page - pure domain logic without any
external dependencies (no API calls, no database, no I/O).
"""

import logging
from typing import Dict, Iterable, List, Sequence

from pendulum import DateTime

from .exceptions import InvalidConfiguration
from .models import (
    AvailabilityConfig,
    CandidateSlot,
    DaySlotGroup,
    ShowingInterval,
    ShowingStatus,
    SlotRequest,
    TimeRange,
)
from .timezones import validate_timezone

logger = logging.getLogger(__name__)

DATE_KEY_FORMAT = "YYYY-MM-DD"
DISPLAY_DATE_FORMAT = "dddd, MMM D"
LABEL_FORMAT = "h:mm A"


def validate_slot_settings(duration_minutes: int, buffer_minutes: int) -> None:
    """
    Reject durations and buffers that cannot produce a slot grid.

    Raises:
        InvalidConfiguration: If the values are malformed
    """
    if duration_minutes <= 0:
        raise InvalidConfiguration(
            f"Showing duration must be greater than zero, got {duration_minutes}"
        )
    if buffer_minutes < 0:
        raise InvalidConfiguration(f"Buffer time must not be negative, got {buffer_minutes}")
    if duration_minutes + buffer_minutes <= 0:
        raise InvalidConfiguration("Slot step (duration + buffer) must be positive")


def blocking_ranges(existing: Iterable[ShowingInterval]) -> List[TimeRange]:
    """Time ranges occupied by showings that still hold their slot."""
    return sorted(
        (showing.time_range() for showing in existing if showing.blocks_time),
        key=lambda r: r.start,
    )


def find_conflicts(
    candidate: TimeRange,
    existing: Iterable[ShowingInterval],
) -> List[ShowingInterval]:
    """
    Return the non-cancelled showings intersecting ``candidate``.

    Uses half-open intersection, so a showing ending exactly when the
    candidate starts is not a conflict.
    """
    return [
        showing for showing in existing
        if showing.blocks_time and candidate.overlaps(showing.time_range())
    ]


class SlotGenerator:
    """
    Generates the day-grouped slot grid for a property.

    Algorithm:
    1. Walk the local days of the booking window, starting with today
    2. Skip days the agent does not work
    3. Step through the working window every ``duration + buffer`` minutes,
       keeping slots that end within the window
    4. Flag slots in the past or intersecting a booked showing as unavailable
    5. Group slots by their local ``YYYY-MM-DD`` date key
    """

    def __init__(self, availability: AvailabilityConfig):
        self.availability = availability

    def generate(
        self,
        existing: Sequence[ShowingInterval],
        request: SlotRequest,
        include_empty_days: bool = False,
    ) -> List[DaySlotGroup]:
        """
        Generate slots for every day of the booking window.

        Args:
            existing: Showings already booked for the property
            request: Duration, buffer, timezone, window and reference time
            include_empty_days: Keep working days that produced no slots

        Returns:
            List of DaySlotGroup objects ordered by date

        Raises:
            InvalidConfiguration: If duration, buffer or timezone is malformed
        """
        validate_slot_settings(request.duration_minutes, request.buffer_minutes)
        tz = validate_timezone(request.timezone)

        if request.booking_window_days <= 0:
            return []

        now = request.now.in_timezone(tz)
        busy = blocking_ranges(existing)
        groups: List[DaySlotGroup] = []

        for day in self._iter_days(now, request.booking_window_days):
            window = self.availability.window_for(day)
            if window is None:
                continue

            slots = self._slots_for_window(
                window=window,
                duration_minutes=request.duration_minutes,
                buffer_minutes=request.buffer_minutes,
                busy=busy,
                now=now,
            )

            if not slots and not include_empty_days:
                continue

            groups.append(
                DaySlotGroup(
                    date_key=day.format(DATE_KEY_FORMAT),
                    display_date=day.format(DISPLAY_DATE_FORMAT),
                    slots=slots,
                )
            )

        logger.debug(
            "Generated %d slots over %d days for property %s",
            sum(len(group.slots) for group in groups),
            len(groups),
            request.property_id,
        )
        return groups

    def _iter_days(self, now: DateTime, window_days: int) -> Iterable[DateTime]:
        """Local midnights of today and the following ``window_days - 1`` days."""
        today = now.start_of("day")
        for offset in range(window_days):
            yield today.add(days=offset)

    def _slots_for_window(
        self,
        window: TimeRange,
        duration_minutes: int,
        buffer_minutes: int,
        busy: List[TimeRange],
        now: DateTime,
    ) -> List[CandidateSlot]:
        """
        Step through one working window.

        Example (duration 30, buffer 15, window 09:00 - 10:30):
        Result: [09:00-09:30, 09:45-10:15]
        """
        slots: List[CandidateSlot] = []
        step = duration_minutes + buffer_minutes
        current = window.start

        while True:
            slot_end = current.add(minutes=duration_minutes)
            if slot_end > window.end:
                break

            candidate = TimeRange(start=current, end=slot_end)
            is_past = current < now
            has_conflict = any(candidate.overlaps(taken) for taken in busy)

            slots.append(
                CandidateSlot(
                    date_key=current.format(DATE_KEY_FORMAT),
                    start=current,
                    end=slot_end,
                    label=current.format(LABEL_FORMAT),
                    available=not is_past and not has_conflict,
                )
            )

            current = current.add(minutes=step)

        return slots


def generate_slots(
    config: AvailabilityConfig,
    existing: Sequence[ShowingInterval],
    duration_minutes: int,
    buffer_minutes: int,
    timezone: str,
    booking_window_days: int,
    now: DateTime,
    property_id: str = "",
    include_empty_days: bool = False,
) -> List[DaySlotGroup]:
    """Functional entry point around ``SlotGenerator.generate``."""
    request = SlotRequest(
        property_id=property_id,
        duration_minutes=duration_minutes,
        buffer_minutes=buffer_minutes,
        timezone=timezone,
        booking_window_days=booking_window_days,
        now=now,
    )
    return SlotGenerator(config).generate(
        existing, request, include_empty_days=include_empty_days
    )


def group_slots_by_time_of_day(slots: Iterable[CandidateSlot]) -> Dict[str, List[CandidateSlot]]:
    """
    Split one day's slots into morning, afternoon and evening buckets.

    Morning ends at noon and afternoon at 17:00, in the slot's local time.
    """
    buckets: Dict[str, List[CandidateSlot]] = {"morning": [], "afternoon": [], "evening": []}

    for slot in slots:
        hour = slot.start.hour
        if hour < 12:
            buckets["morning"].append(slot)
        elif hour < 17:
            buckets["afternoon"].append(slot)
        else:
            buckets["evening"].append(slot)

    return buckets


def count_showings_in_week(
    showings: Iterable[ShowingInterval],
    now: DateTime,
    timezone: str,
) -> int:
    """Count non-cancelled showings in the Sunday-start week containing ``now``."""
    local_now = now.in_timezone(validate_timezone(timezone))
    # weekday(): Monday=0 .. Sunday=6
    days_since_sunday = (local_now.weekday() + 1) % 7
    week_start = local_now.start_of("day").subtract(days=days_since_sunday)
    week_end = week_start.add(days=7)

    return sum(
        1 for showing in showings
        if showing.status is not ShowingStatus.CANCELLED
        and week_start <= showing.start < week_end
    )
