"""
Application services for booking and rescheduling showings.

Slot generation works on a snapshot of the property's showings, while the
public booking page and the agent dashboard write concurrently. The service
therefore re-reads the store and re-checks the chosen interval immediately
before every write. It narrows the race window; atomicity of the write itself
is the store's job.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable, Dict, List, Optional, Protocol

import pendulum
from pendulum import DateTime

from ..config import AgentSettings, PropertySettings, resolve_slot_request
from ..domain.exceptions import (
    InvalidStatusTransition,
    ShowingNotFound,
    SlotNoLongerAvailable,
)
from ..domain.models import (
    CandidateSlot,
    ClientInfo,
    DaySlotGroup,
    ShowingInterval,
    ShowingRecord,
    ShowingStatus,
    TimeRange,
)
from ..domain.slot_generator import SlotGenerator, find_conflicts, validate_slot_settings

logger = logging.getLogger(__name__)


class ShowingStore(Protocol):
    """Protocol describing the showing store behaviour needed by the service."""

    def list_showings(self, property_id: str) -> List[ShowingRecord]:
        """Return every showing of the property, in any status."""

    def create_showing(self, record: ShowingRecord) -> str:
        """Persist a new showing and return its id."""

    def update_showing(self, showing_id: str, fields: Dict[str, Any]) -> None:
        """Apply a partial update keyed by ShowingRecord attribute names."""


def _utc_now() -> DateTime:
    return pendulum.now("UTC")


class BookingService:
    """
    Orchestrates showing retrieval, slot generation and guarded writes.

    Store failures (``UpstreamUnavailable``) propagate unchanged; the service
    never retries and never substitutes a different slot.
    """

    def __init__(
        self,
        store: ShowingStore,
        clock: Callable[[], DateTime] = _utc_now,
    ) -> None:
        self._store = store
        self._clock = clock

    def fetch_intervals(
        self,
        property_id: str,
        exclude_showing_id: Optional[str] = None,
    ) -> List[ShowingInterval]:
        """Current showings of a property as intervals, minus an excluded one."""
        return [
            record.to_interval()
            for record in self._store.list_showings(property_id)
            if record.id != exclude_showing_id
        ]

    def find_slots(
        self,
        *,
        agent: AgentSettings,
        prop: PropertySettings,
        now: Optional[DateTime] = None,
        exclude_showing_id: Optional[str] = None,
        include_empty_days: bool = False,
    ) -> List[DaySlotGroup]:
        """
        Fetch the property's showings and compute its slot grid.

        Pass ``exclude_showing_id`` when offering new times for a showing
        that is being rescheduled, so it does not block its own slot.
        """
        request = resolve_slot_request(agent, prop, now or self._clock())
        existing = self.fetch_intervals(prop.id, exclude_showing_id=exclude_showing_id)

        return SlotGenerator(agent.to_availability()).generate(
            existing,
            request,
            include_empty_days=include_empty_days,
        )

    def commit_booking(
        self,
        slot: CandidateSlot,
        property_id: str,
        client: ClientInfo,
        *,
        agent_id: str = "",
        duration_minutes: Optional[int] = None,
    ) -> str:
        """
        Book a showing into the chosen slot.

        Args:
            slot: Slot the client picked from the generated grid
            property_id: Property being shown
            client: Contact details of the client
            agent_id: Owning agent, stored on the record
            duration_minutes: Showing length; defaults to the slot length

        Returns:
            Id of the created showing

        Raises:
            SlotNoLongerAvailable: If the slot was taken since it was offered
            UpstreamUnavailable: If the store cannot be read or written
        """
        duration = duration_minutes if duration_minutes is not None else slot.duration_minutes
        validate_slot_settings(duration, 0)

        if not slot.available:
            raise SlotNoLongerAvailable(f"Slot {slot.label} on {slot.date_key} is not bookable")

        now = self._clock()
        requested = TimeRange(start=slot.start, end=slot.start.add(minutes=duration))
        self._ensure_bookable(requested, property_id, now=now)

        record = ShowingRecord(
            id="",
            property_id=property_id,
            scheduled_at=slot.start.in_timezone("UTC"),
            duration_minutes=duration,
            status=ShowingStatus.SCHEDULED,
            client=client,
            agent_id=agent_id,
            created_at=now,
        )
        showing_id = self._store.create_showing(record)

        logger.info("Booked showing %s for property %s at %s", showing_id, property_id, requested)
        return showing_id

    def reschedule_showing(
        self,
        showing_id: str,
        property_id: str,
        slot: CandidateSlot,
    ) -> ShowingRecord:
        """
        Move an existing showing into a new slot.

        The showing's own current interval never counts as a conflict.

        Returns:
            The showing as stored after the move

        Raises:
            ShowingNotFound: If the property has no showing with this id
            InvalidStatusTransition: If the showing is completed, cancelled or a no-show
            InvalidConfiguration: If the stored showing has no positive duration
            SlotNoLongerAvailable: If the new slot was taken since it was offered
        """
        if not slot.available:
            raise SlotNoLongerAvailable(f"Slot {slot.label} on {slot.date_key} is not bookable")

        now = self._clock()
        records = self._store.list_showings(property_id)
        current = self._find(records, showing_id, property_id)

        if current.status.is_terminal:
            raise InvalidStatusTransition(
                f"Showing {showing_id} is {current.status.value} and cannot be rescheduled"
            )

        validate_slot_settings(current.duration_minutes, 0)
        requested = TimeRange(
            start=slot.start,
            end=slot.start.add(minutes=current.duration_minutes),
        )
        others = [record.to_interval() for record in records if record.id != showing_id]
        self._check_interval(requested, others, property_id, now=now)

        new_start = slot.start.in_timezone("UTC")
        self._store.update_showing(
            showing_id,
            {"scheduled_at": new_start, "rescheduled_from": current.scheduled_at},
        )

        logger.info(
            "Rescheduled showing %s from %s to %s",
            showing_id,
            current.scheduled_at.to_iso8601_string(),
            new_start.to_iso8601_string(),
        )
        return dataclasses.replace(
            current,
            scheduled_at=new_start,
            rescheduled_from=current.scheduled_at,
        )

    def update_status(
        self,
        showing_id: str,
        property_id: str,
        status: ShowingStatus,
        reason: Optional[str] = None,
    ) -> ShowingRecord:
        """
        Move a showing through its lifecycle.

        Completed, cancelled and no-show are final. Cancelling records when
        and why, and frees the slot for new bookings.

        Raises:
            ShowingNotFound: If the property has no showing with this id
            InvalidStatusTransition: If the showing is already in a final status
        """
        current = self._find(self._store.list_showings(property_id), showing_id, property_id)

        if current.status is status:
            return current
        if current.status.is_terminal:
            raise InvalidStatusTransition(
                f"Showing {showing_id} is already {current.status.value}"
            )

        fields: Dict[str, Any] = {"status": status}
        updated = dataclasses.replace(current, status=status)
        if status is ShowingStatus.CANCELLED:
            cancelled_at = self._clock()
            fields["cancelled_at"] = cancelled_at
            fields["cancellation_reason"] = reason or ""
            updated = dataclasses.replace(
                updated, cancelled_at=cancelled_at, cancellation_reason=reason or ""
            )

        self._store.update_showing(showing_id, fields)
        logger.info("Showing %s: %s -> %s", showing_id, current.status.value, status.value)
        return updated

    def _ensure_bookable(self, requested: TimeRange, property_id: str, *, now: DateTime) -> None:
        existing = self.fetch_intervals(property_id)
        self._check_interval(requested, existing, property_id, now=now)

    def _check_interval(
        self,
        requested: TimeRange,
        existing: List[ShowingInterval],
        property_id: str,
        *,
        now: DateTime,
    ) -> None:
        if requested.start < now:
            raise SlotNoLongerAvailable(f"Slot {requested} is in the past")

        conflicts = find_conflicts(requested, existing)
        if conflicts:
            conflicting_ids = [showing.showing_id for showing in conflicts]
            logger.warning(
                "Slot %s for property %s conflicts with showings %s",
                requested,
                property_id,
                ", ".join(conflicting_ids),
            )
            raise SlotNoLongerAvailable(
                f"Slot {requested} is no longer available",
                conflicting_ids=conflicting_ids,
            )

    @staticmethod
    def _find(records: List[ShowingRecord], showing_id: str, property_id: str) -> ShowingRecord:
        for record in records:
            if record.id == showing_id:
                return record
        raise ShowingNotFound(f"Showing {showing_id} not found for property {property_id}")
