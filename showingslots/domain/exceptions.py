"""
Domain-specific exception hierarchy for the showing booking core.
"""

from typing import Sequence


class ShowingSlotsError(Exception):
    """Base class for all application-level errors."""


class InvalidConfiguration(ShowingSlotsError):
    """Raised when availability, duration, buffer or timezone input is malformed."""


class UpstreamUnavailable(ShowingSlotsError):
    """Raised when the showing store or configuration source cannot be reached."""


class ShowingNotFound(ShowingSlotsError):
    """Raised when a showing id does not exist for the given property."""


class InvalidStatusTransition(ShowingSlotsError):
    """Raised when a showing cannot move to the requested status."""


class SlotNoLongerAvailable(ShowingSlotsError):
    """
    Raised at commit time when the chosen slot has been taken.

    Callers are expected to regenerate slots and ask the user to pick again.
    """

    def __init__(self, message: str, conflicting_ids: Sequence[str] = ()):
        super().__init__(message)
        self.conflicting_ids = list(conflicting_ids)
