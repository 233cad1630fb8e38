"""
Adapters layer - External integrations (showing document stores).
"""

from .json_store import JsonShowingStore
from .rest_store import RestShowingStore

__all__ = ["JsonShowingStore", "RestShowingStore"]
