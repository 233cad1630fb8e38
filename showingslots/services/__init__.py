"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .booking import BookingService, ShowingStore

__all__ = ["BookingService", "ShowingStore"]
