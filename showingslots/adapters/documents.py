"""
Conversion between showing documents and domain records.

Documents use the store's camelCase field names and ISO-8601 timestamps;
Firestore-style ``{"seconds": ...}`` timestamps are accepted on read.
"""

from typing import Any, Dict, Optional

import pendulum
from pendulum import DateTime

from ..domain.models import ClientInfo, ShowingRecord, ShowingStatus

DEFAULT_DURATION_MINUTES = 30

FIELD_NAMES = {
    "id": "id",
    "property_id": "propertyId",
    "agent_id": "agentId",
    "scheduled_at": "scheduledAt",
    "duration_minutes": "duration",
    "status": "status",
    "rescheduled_from": "rescheduledFrom",
    "cancelled_at": "cancelledAt",
    "cancellation_reason": "cancellationReason",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}


def parse_timestamp(value: Any) -> Optional[DateTime]:
    """
    Parse a stored timestamp into a UTC pendulum DateTime.

    Raises:
        ValueError: If the value is not a recognisable timestamp
    """
    if value is None or value == "":
        return None
    if isinstance(value, DateTime):
        return value.in_timezone("UTC")
    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is None:
            raise ValueError(f"Could not parse timestamp: {value!r}")
        nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
        return pendulum.from_timestamp(seconds + nanos / 1e9, tz="UTC")
    if isinstance(value, (int, float)):
        return pendulum.from_timestamp(value, tz="UTC")

    parsed = pendulum.parse(str(value))
    if isinstance(parsed, DateTime):
        return parsed.in_timezone("UTC")

    raise ValueError(f"Could not parse timestamp: {value!r}")


def format_timestamp(value: Optional[DateTime]) -> Optional[str]:
    if value is None:
        return None
    return value.in_timezone("UTC").to_iso8601_string()


def record_from_document(document: Dict[str, Any]) -> ShowingRecord:
    """
    Build a ShowingRecord from a stored document.

    Raises:
        ValueError: If required fields are missing or malformed
    """
    try:
        showing_id = str(document["id"])
        property_id = str(document["propertyId"])
        scheduled_at = parse_timestamp(document["scheduledAt"])
    except KeyError as exc:
        raise ValueError(f"Showing document is missing field {exc}") from exc

    if scheduled_at is None:
        raise ValueError(f"Showing {showing_id} has no scheduledAt")

    duration = document.get("duration")
    client = ClientInfo(
        name=document.get("clientName") or "",
        email=document.get("clientEmail") or "",
        phone=document.get("clientPhone") or "",
        notes=document.get("notes") or "",
        pre_approved=bool(document.get("preApproved", False)),
    )

    return ShowingRecord(
        id=showing_id,
        property_id=property_id,
        scheduled_at=scheduled_at,
        duration_minutes=int(duration) if duration is not None else DEFAULT_DURATION_MINUTES,
        status=ShowingStatus(document.get("status") or ShowingStatus.SCHEDULED.value),
        client=client,
        agent_id=document.get("agentId") or "",
        rescheduled_from=parse_timestamp(document.get("rescheduledFrom")),
        cancelled_at=parse_timestamp(document.get("cancelledAt")),
        cancellation_reason=document.get("cancellationReason") or "",
        created_at=parse_timestamp(document.get("createdAt")),
    )


def record_to_document(record: ShowingRecord) -> Dict[str, Any]:
    """Serialise a ShowingRecord into the store's document shape."""
    client = record.client or ClientInfo(name="", email="")
    return {
        "id": record.id,
        "propertyId": record.property_id,
        "agentId": record.agent_id,
        "clientName": client.name,
        "clientEmail": client.email,
        "clientPhone": client.phone,
        "notes": client.notes or None,
        "preApproved": client.pre_approved,
        "scheduledAt": format_timestamp(record.scheduled_at),
        "duration": record.duration_minutes,
        "status": record.status.value,
        "rescheduledFrom": format_timestamp(record.rescheduled_from),
        "cancelledAt": format_timestamp(record.cancelled_at),
        "cancellationReason": record.cancellation_reason or None,
        "createdAt": format_timestamp(record.created_at),
    }


def encode_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Translate a partial update keyed by record attribute names.

    Example: {"scheduled_at": DateTime} -> {"scheduledAt": "2024-11-25T14:00:00Z"}
    """
    encoded: Dict[str, Any] = {}
    for name, value in fields.items():
        if name not in FIELD_NAMES:
            raise ValueError(f"Unknown showing field: {name}")
        if isinstance(value, DateTime):
            value = format_timestamp(value)
        elif isinstance(value, ShowingStatus):
            value = value.value
        encoded[FIELD_NAMES[name]] = value
    return encoded
