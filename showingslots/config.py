"""
Configuration management using Pydantic.

Agent and property documents arrive loosely shaped (camelCase keys, optional
fields, legacy per-property overrides). They are normalised here, once, into
versioned settings objects so the scheduling core never has to branch on
document shape.
"""

from datetime import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pendulum import DateTime
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .domain.exceptions import InvalidConfiguration
from .domain.models import WEEKDAY_NAMES, AvailabilityConfig, DayHours, SlotRequest
from .domain.timezones import DEFAULT_TIMEZONE, get_timezone_for_state, validate_timezone

CURRENT_SCHEMA_VERSION = 2

DEFAULT_SHOWING_DURATION = 30
DEFAULT_BUFFER_TIME = 15
DEFAULT_BOOKING_WINDOW = 14

_WEEKDAY_INDEX = {name: index for index, name in WEEKDAY_NAMES.items()}


def parse_clock(value: Any) -> time:
    """Parse a wall-clock string such as "09:00" or "9:30"."""
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Expected a HH:MM string, got {value!r}")

    parts = value.strip().split(":")
    if len(parts) != 2 or not all(part.isdigit() for part in parts):
        raise ValueError(f"Expected a HH:MM string, got {value!r}")

    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Time out of range: {value!r}")
    return time(hour=hour, minute=minute)


def weekday_name(key: Any) -> str:
    """Map "Monday", "mon", "monday" or 0..6 to the canonical lowercase name."""
    text = str(key).strip().lower()
    if text.isdigit() and int(text) in WEEKDAY_NAMES:
        return WEEKDAY_NAMES[int(text)]
    for name in _WEEKDAY_INDEX:
        if len(text) >= 3 and name.startswith(text):
            return name
    raise ValueError(f"Unknown weekday: {key!r}")


class DayHoursConfig(BaseModel):
    """Working hours of one weekday."""
    start: time = time(9, 0)
    end: time = time(17, 0)
    enabled: bool = False

    @field_validator("start", "end", mode="before")
    @classmethod
    def validate_clock(cls, value: Any) -> time:
        return parse_clock(value)

    @model_validator(mode="after")
    def validate_hours_order(self) -> "DayHoursConfig":
        """Ensure an enabled window opens before it closes."""
        if self.enabled and self.end <= self.start:
            raise ValueError("end must be later than start on enabled days")
        return self

    def to_domain(self) -> DayHours:
        return DayHours(start_time=self.start, end_time=self.end, enabled=self.enabled)


class AgentSettings(BaseModel):
    """Scheduling settings of an agent."""
    model_config = ConfigDict(populate_by_name=True)

    schema_version: int = Field(CURRENT_SCHEMA_VERSION, alias="schemaVersion")
    default_showing_duration: int = Field(DEFAULT_SHOWING_DURATION, alias="defaultShowingDuration")
    buffer_time: int = Field(DEFAULT_BUFFER_TIME, alias="bufferTime")
    booking_window: int = Field(DEFAULT_BOOKING_WINDOW, alias="bookingWindow")
    working_hours: Dict[str, DayHoursConfig] = Field(default_factory=dict, alias="workingHours")

    @model_validator(mode="before")
    @classmethod
    def upgrade_legacy_shape(cls, data: Any) -> Any:
        """
        Bring any stored shape up to the current schema.

        Unversioned documents may omit numbers, omit days, or key days as
        "Monday"/"mon". Nulls fall back to defaults and missing days become
        disabled, so every normalised agent has all seven days.
        """
        if not isinstance(data, dict):
            return data

        upgraded: Dict[str, Any] = {}
        for field_name, info in cls.model_fields.items():
            value = data.get(info.alias, data.get(field_name))
            if value is not None:
                upgraded[info.alias] = value

        raw_hours = upgraded.get("workingHours") or {}
        if not isinstance(raw_hours, dict):
            raise ValueError("workingHours must be a mapping of weekday to hours")

        hours: Dict[str, Any] = {name: {"enabled": False} for name in _WEEKDAY_INDEX}
        for key, value in raw_hours.items():
            hours[weekday_name(key)] = value if value is not None else {"enabled": False}

        upgraded["workingHours"] = hours
        upgraded["schemaVersion"] = CURRENT_SCHEMA_VERSION
        return upgraded

    @field_validator("default_showing_duration")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        """Ensure showing duration is positive."""
        if value <= 0:
            raise ValueError("defaultShowingDuration must be greater than zero")
        return value

    @field_validator("buffer_time")
    @classmethod
    def validate_buffer(cls, value: int) -> int:
        if value < 0:
            raise ValueError("bufferTime must not be negative")
        return value

    def to_availability(self) -> AvailabilityConfig:
        """Build the weekly availability used by the slot generator."""
        return AvailabilityConfig(
            days={
                _WEEKDAY_INDEX[name]: hours.to_domain()
                for name, hours in self.working_hours.items()
            }
        )


class AddressConfig(BaseModel):
    street: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""


class PropertySettings(BaseModel):
    """Booking-relevant settings of a listed property."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    agent_id: str = Field("", alias="agentId")
    timezone: Optional[str] = None
    address: AddressConfig = Field(default_factory=AddressConfig)
    # Legacy per-property overrides of the agent defaults
    showing_duration: Optional[int] = Field(None, alias="showingDuration")
    buffer_time: Optional[int] = Field(None, alias="bufferTime")
    is_booking_enabled: bool = Field(True, alias="isBookingEnabled")

    @model_validator(mode="after")
    def resolve_timezone(self) -> "PropertySettings":
        """Fall back to the state's timezone when none is stored."""
        if not self.timezone:
            self.timezone = (
                get_timezone_for_state(self.address.state)
                if self.address.state else DEFAULT_TIMEZONE
            )
        try:
            validate_timezone(self.timezone)
        except InvalidConfiguration as exc:
            raise ValueError(str(exc)) from exc
        return self


def resolve_slot_request(agent: AgentSettings, prop: PropertySettings, now: DateTime) -> SlotRequest:
    """
    Apply the defaulting rules for one slot generation call.

    Property overrides win over agent defaults when they are set.
    """
    duration = prop.showing_duration if prop.showing_duration is not None else agent.default_showing_duration
    buffer = prop.buffer_time if prop.buffer_time is not None else agent.buffer_time

    return SlotRequest(
        property_id=prop.id,
        duration_minutes=duration,
        buffer_minutes=buffer,
        timezone=prop.timezone or DEFAULT_TIMEZONE,
        booking_window_days=agent.booking_window,
        now=now,
    )


def normalize_agent_settings(raw: Dict[str, Any] | None) -> AgentSettings:
    """
    Validate a raw agent settings document.

    Raises:
        InvalidConfiguration: If the document cannot be normalised
    """
    try:
        return AgentSettings.model_validate(raw or {})
    except ValidationError as exc:
        raise InvalidConfiguration(f"Invalid agent settings: {exc}") from exc


def normalize_property(raw: Dict[str, Any]) -> PropertySettings:
    """
    Validate a raw property document.

    Raises:
        InvalidConfiguration: If the document cannot be normalised
    """
    try:
        return PropertySettings.model_validate(raw)
    except ValidationError as exc:
        raise InvalidConfiguration(f"Invalid property settings: {exc}") from exc


class StoreConfig(BaseModel):
    """Where showings are read from and written to."""
    path: Optional[Path] = None
    base_url: Optional[str] = None
    api_key: str = ""

    @model_validator(mode="after")
    def validate_backend(self) -> "StoreConfig":
        if self.path and self.base_url:
            raise ValueError("Configure either store.path or store.base_url, not both")
        if not self.path and not self.base_url:
            self.path = Path("showings.json")
        return self


class CalendarConfig(BaseModel):
    """Agent calendar grid settings."""
    pixels_per_hour: float = 80.0
    min_block_height: Optional[float] = None

    @field_validator("pixels_per_hour")
    @classmethod
    def validate_pixels(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("pixels_per_hour must be greater than zero")
        return value


class AppConfig(BaseModel):
    """Application configuration."""
    store: StoreConfig = Field(default_factory=StoreConfig)
    agent: AgentSettings = Field(default_factory=AgentSettings)
    properties: List[PropertySettings] = Field(default_factory=list)
    calendar: CalendarConfig = Field(default_factory=CalendarConfig)

    @field_validator("properties")
    @classmethod
    def validate_properties(cls, value: List[PropertySettings]) -> List[PropertySettings]:
        """Ensure property ids are unique."""
        seen: set[str] = set()
        for prop in value:
            if prop.id in seen:
                raise ValueError(f"Duplicate property id detected: {prop.id}")
            seen.add(prop.id)
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)

        # Relative store paths are relative to the config file
        if config.store.path and not config.store.path.is_absolute():
            config.store.path = config_path.parent / config.store.path

        return config

    def find_property(self, property_id: str) -> PropertySettings | None:
        """Find a configured property by id."""
        for prop in self.properties:
            if prop.id == property_id:
                return prop
        return None

    def require_property(self, property_id: str) -> PropertySettings:
        """
        Find a configured property by id.

        Raises:
            ValueError: If the property is not configured
        """
        prop = self.find_property(property_id)
        if prop is None:
            known = ", ".join(p.id for p in self.properties) or "none"
            raise ValueError(f"Unknown property '{property_id}'. Configured properties: {known}")
        return prop


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
