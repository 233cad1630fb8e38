"""
showingslots - availability slots and booking conflict checks for property showings.
"""

__version__ = "0.1.0"
