"""
Timezone helpers for property locations.

Properties carry an IANA timezone; older records only carry a US state code,
which is mapped here.
"""

import pendulum
from pendulum import DateTime

from .exceptions import InvalidConfiguration

DEFAULT_TIMEZONE = "America/New_York"

US_TIMEZONES = {
    # Eastern
    "CT": "America/New_York",
    "DE": "America/New_York",
    "FL": "America/New_York",
    "GA": "America/New_York",
    "IN": "America/New_York",
    "KY": "America/New_York",
    "ME": "America/New_York",
    "MD": "America/New_York",
    "MA": "America/New_York",
    "MI": "America/New_York",
    "NH": "America/New_York",
    "NJ": "America/New_York",
    "NY": "America/New_York",
    "NC": "America/New_York",
    "OH": "America/New_York",
    "PA": "America/New_York",
    "RI": "America/New_York",
    "SC": "America/New_York",
    "VT": "America/New_York",
    "VA": "America/New_York",
    "WV": "America/New_York",
    # Central
    "AL": "America/Chicago",
    "AR": "America/Chicago",
    "IL": "America/Chicago",
    "IA": "America/Chicago",
    "KS": "America/Chicago",
    "LA": "America/Chicago",
    "MN": "America/Chicago",
    "MS": "America/Chicago",
    "MO": "America/Chicago",
    "NE": "America/Chicago",
    "ND": "America/Chicago",
    "OK": "America/Chicago",
    "SD": "America/Chicago",
    "TN": "America/Chicago",
    "TX": "America/Chicago",
    "WI": "America/Chicago",
    # Mountain (Arizona does not observe DST)
    "AZ": "America/Phoenix",
    "CO": "America/Denver",
    "ID": "America/Denver",
    "MT": "America/Denver",
    "NM": "America/Denver",
    "UT": "America/Denver",
    "WY": "America/Denver",
    # Pacific
    "CA": "America/Los_Angeles",
    "NV": "America/Los_Angeles",
    "OR": "America/Los_Angeles",
    "WA": "America/Los_Angeles",
    "AK": "America/Anchorage",
    "HI": "America/Honolulu",
}


def get_timezone_for_state(state_code: str) -> str:
    """Return the IANA timezone for a US state code, Eastern when unknown."""
    return US_TIMEZONES.get((state_code or "").strip().upper(), DEFAULT_TIMEZONE)


def validate_timezone(name: str) -> str:
    """
    Ensure ``name`` is a known IANA timezone.

    Raises:
        InvalidConfiguration: If the identifier cannot be resolved
    """
    if not name:
        raise InvalidConfiguration("Timezone must not be empty")
    try:
        pendulum.timezone(name)
    except (KeyError, ValueError) as exc:
        raise InvalidConfiguration(f"Unknown timezone: '{name}'") from exc
    return name


def short_timezone_name(name: str, at: DateTime | None = None) -> str:
    """Abbreviation in effect at ``at`` (e.g. "PST" or "PDT")."""
    moment = (at or pendulum.now("UTC")).in_timezone(validate_timezone(name))
    return moment.tzname() or ""
