from typing import Dict, Iterable, Optional, Set
import enum
import re

from formbuilder.models.form import FieldType
from formbuilder.services.field_types import parse_geopoint, parse_number

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[0-9\s+\-()]+$")


class ErrorKind(str, enum.Enum):
    REQUIRED_MISSING = "required_missing"
    INVALID_EMAIL = "invalid_email"
    INVALID_NUMBER = "invalid_number"
    INVALID_PHONE = "invalid_phone"
    INVALID_LOCATION = "invalid_location"


def _format_error(kind: ErrorKind, field) -> str:
    if kind == ErrorKind.REQUIRED_MISSING:
        return f"{field.label} is required"
    if kind == ErrorKind.INVALID_EMAIL:
        return "Please enter a valid email address"
    if kind == ErrorKind.INVALID_NUMBER:
        return "Please enter a valid number"
    if kind == ErrorKind.INVALID_PHONE:
        return "Please enter a valid phone number"
    return "Please pick a location on the map"


def check_value(field, value: Optional[str]) -> Optional[ErrorKind]:
    """Error for one visible field, or None when its answer is acceptable"""
    if not (value or "").strip():
        return ErrorKind.REQUIRED_MISSING if field.required else None

    field_type = FieldType(field.type)
    if field_type == FieldType.EMAIL and not EMAIL_PATTERN.fullmatch(value):
        return ErrorKind.INVALID_EMAIL
    if field_type == FieldType.NUMBER and parse_number(value) is None:
        return ErrorKind.INVALID_NUMBER
    if field_type == FieldType.PHONE and not PHONE_PATTERN.fullmatch(value):
        return ErrorKind.INVALID_PHONE
    if field_type == FieldType.LOCATION and parse_geopoint(value) is None:
        return ErrorKind.INVALID_LOCATION
    return None


def validate(fields: Iterable, visible_field_ids: Set[int], answers: Dict[int, str]) -> Dict[int, ErrorKind]:
    """
    Validate every visible field at once.

    Fields outside visible_field_ids are skipped entirely, whatever their
    required flag. An empty result means the answers may be submitted.
    """
    errors: Dict[int, ErrorKind] = {}
    for field in fields:
        if field.id not in visible_field_ids:
            continue
        kind = check_value(field, answers.get(field.id))
        if kind is not None:
            errors[field.id] = kind
    return errors


def describe_errors(fields: Iterable, errors: Dict[int, ErrorKind]) -> Dict[int, dict]:
    by_id = {f.id: f for f in fields}
    return {
        field_id: {"kind": kind.value, "message": _format_error(kind, by_id[field_id])}
        for field_id, kind in errors.items()
    }
