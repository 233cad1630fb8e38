"""
Domain layer - Pure scheduling logic without external dependencies.
"""

from .exceptions import (
    InvalidConfiguration,
    InvalidStatusTransition,
    ShowingNotFound,
    ShowingSlotsError,
    SlotNoLongerAvailable,
    UpstreamUnavailable,
)
from .layout import LayoutResolver, compute_layout
from .models import (
    AvailabilityConfig,
    BlockPosition,
    CandidateSlot,
    ClientInfo,
    DayHours,
    DaySlotGroup,
    LayoutAssignment,
    ShowingInterval,
    ShowingRecord,
    ShowingStatus,
    SlotRequest,
    TimeRange,
)
from .slot_generator import SlotGenerator, generate_slots

__all__ = [
    "AvailabilityConfig",
    "BlockPosition",
    "CandidateSlot",
    "ClientInfo",
    "DayHours",
    "DaySlotGroup",
    "InvalidConfiguration",
    "InvalidStatusTransition",
    "LayoutAssignment",
    "LayoutResolver",
    "ShowingInterval",
    "ShowingNotFound",
    "ShowingRecord",
    "ShowingSlotsError",
    "ShowingStatus",
    "SlotGenerator",
    "SlotNoLongerAvailable",
    "SlotRequest",
    "TimeRange",
    "UpstreamUnavailable",
    "compute_layout",
    "generate_slots",
]
