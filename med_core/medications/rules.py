# med_core/medications/rules.py
"""
Validation and classification rules for medication records.

Everything here is pure: no ORM access, no side effects. Services and
selectors call into this module before touching the store.
"""
from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Mapping
from uuid import UUID

from django.utils import timezone

from med_core.common.errors import AuthorizationError, ValidationError


class MedicationStatus:
    """
    Derived classification. Keep strings aligned with the API's `status` field.
    """
    ACTIVE = "active"
    EXPIRED = "expired"


TEXT_FIELDS = {
    "name": 255,
    "dosage": 128,
    "frequency": 128,
    "prescribing_doctor": 255,
}

# Fields an update may change. id, patient_id and created_at are immutable.
CONTENT_FIELDS = ("organization_id", *TEXT_FIELDS, "end_date", "inventory")

REQUIRED = "This field is required."

# ASCII digits only; str.isdigit() also accepts characters int() rejects
_ISO_DATE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_DIGITS = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class MedicationCreate:
    patient_id: UUID
    name: str
    dosage: str
    frequency: str
    prescribing_doctor: str
    end_date: date
    inventory: int
    organization_id: UUID | None = None

    def as_fields(self) -> dict[str, Any]:
        return asdict(self)

    def as_details(self) -> dict[str, Any]:
        data = asdict(self)
        data["patient_id"] = str(self.patient_id)
        data["organization_id"] = str(self.organization_id) if self.organization_id else None
        data["end_date"] = self.end_date.isoformat()
        return data


@dataclass(frozen=True)
class MedicationUpdate:
    id: UUID
    patient_id: UUID
    changes: dict[str, Any] = field(default_factory=dict)


class _FieldError(Exception):
    pass


def today() -> date:
    """Current UTC calendar date (settings.USE_TZ keeps timezone.now() in UTC)."""
    return timezone.now().date()


def require_uuid(value: Any, field_name: str) -> UUID:
    try:
        return _clean_uuid(value)
    except _FieldError as exc:
        message = str(exc)
        raise ValidationError(f"{field_name}: {message}", details={field_name: message})


def _clean_uuid(value: Any) -> UUID:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise _FieldError(REQUIRED)
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value).strip())
    except ValueError:
        raise _FieldError("Must be a valid UUID.")


def _clean_optional_uuid(value: Any) -> UUID | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return _clean_uuid(value)


def _clean_text(value: Any, max_length: int) -> str:
    if value is None:
        raise _FieldError(REQUIRED)
    if not isinstance(value, str):
        raise _FieldError("Must be a string.")
    value = value.strip()
    if not value:
        raise _FieldError("This field may not be blank.")
    if len(value) > max_length:
        raise _FieldError(f"Ensure this field has no more than {max_length} characters.")
    return value


def _clean_date(value: Any) -> date:
    if value is None or value == "":
        raise _FieldError(REQUIRED)
    # datetime is a date subclass; a time component is never meaningful here
    if isinstance(value, datetime):
        raise _FieldError("Expected a calendar date (YYYY-MM-DD), not a timestamp.")
    if isinstance(value, date):
        return value
    if isinstance(value, str) and _ISO_DATE.fullmatch(value.strip()):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            raise _FieldError("Not a valid calendar date.")
    raise _FieldError("Expected a calendar date (YYYY-MM-DD).")


def _clean_inventory(value: Any) -> int:
    if value is None or value == "":
        raise _FieldError(REQUIRED)
    if isinstance(value, bool):
        raise _FieldError("Must be a non-negative integer.")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and _DIGITS.fullmatch(value.strip()):
        number = int(value.strip())
    else:
        raise _FieldError("Must be a non-negative integer.")
    if number < 0:
        raise _FieldError("Must be a non-negative integer.")
    return number


def _clean_content_field(name: str, value: Any) -> Any:
    if name == "organization_id":
        return _clean_optional_uuid(value)
    if name in TEXT_FIELDS:
        return _clean_text(value, TEXT_FIELDS[name])
    if name == "end_date":
        return _clean_date(value)
    if name == "inventory":
        return _clean_inventory(value)
    raise KeyError(name)


def validate_for_create(data: Mapping[str, Any]) -> MedicationCreate:
    """
    Every descriptive field, patient_id and end_date are required;
    inventory must be a non-negative integer; organization_id is optional.
    All field errors are reported together.
    """
    cleaned: dict[str, Any] = {}
    errors: dict[str, str] = {}

    try:
        cleaned["patient_id"] = _clean_uuid(data.get("patient_id"))
    except _FieldError as exc:
        errors["patient_id"] = str(exc)

    for name in CONTENT_FIELDS:
        try:
            cleaned[name] = _clean_content_field(name, data.get(name))
        except _FieldError as exc:
            errors[name] = str(exc)

    if errors:
        raise ValidationError("Invalid medication.", details=errors)

    return MedicationCreate(**cleaned)


def validate_for_update(data: Mapping[str, Any]) -> MedicationUpdate:
    """
    id and patient_id are required. Only supplied content fields are
    validated and returned; omitted fields are left untouched by the caller.
    """
    errors: dict[str, str] = {}
    keys: dict[str, UUID] = {}

    for key in ("id", "patient_id"):
        try:
            keys[key] = _clean_uuid(data.get(key))
        except _FieldError as exc:
            errors[key] = str(exc)

    changes: dict[str, Any] = {}
    for name in CONTENT_FIELDS:
        if name not in data:
            continue
        try:
            changes[name] = _clean_content_field(name, data[name])
        except _FieldError as exc:
            errors[name] = str(exc)

    if errors:
        raise ValidationError("Invalid medication update.", details=errors)

    if not changes:
        raise ValidationError(
            "At least one field is required for update.",
            details={"fields": list(CONTENT_FIELDS)},
        )

    return MedicationUpdate(id=keys["id"], patient_id=keys["patient_id"], changes=changes)


def _as_iso_date(value: Any) -> str:
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def classify(record: Any, reference_date: date | str | None = None) -> str:
    """
    ACTIVE if end_date >= reference date, else EXPIRED.

    Compared as ISO YYYY-MM-DD strings, so time of day never matters and
    records/mappings carrying string dates classify the same as date objects.
    """
    end_date = record["end_date"] if isinstance(record, Mapping) else record.end_date
    ref = today() if reference_date is None else reference_date

    if _as_iso_date(end_date) >= _as_iso_date(ref):
        return MedicationStatus.ACTIVE
    return MedicationStatus.EXPIRED


def assert_owner(record: Any, patient_id: UUID) -> None:
    """
    Ownership check: the caller-supplied patient must be the record's owner.
    """
    if str(record.patient_id) != str(patient_id):
        raise AuthorizationError("Medication does not belong to this patient.")
