"""
Field type registry.

Maps each declared field type to the control the public page should draw and
to the parser/serializer pair between native answer values and the string
stored in submission_values.value. Storage stays string based; the answer
kind tag is recoverable from the field's declared type.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union
import enum
import json
import math

from pydantic import BaseModel, Field, ValidationError

from formbuilder.models.form import FieldType

CHECKBOX_SEPARATOR = ", "


class AnswerKind(str, enum.Enum):
    TEXT = "text"
    NUMBER = "number"
    CHOICES = "choices"
    GEOPOINT = "geopoint"


class GeoPoint(BaseModel):
    lat: float = Field(ge=-90, le=90, allow_inf_nan=False)
    lng: float = Field(ge=-180, le=180, allow_inf_nan=False)
    address: Optional[str] = None

    def to_storage(self) -> str:
        data = {"lat": self.lat, "lng": self.lng}
        if self.address:
            data["address"] = self.address
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


class TaggedAnswer(BaseModel):
    kind: AnswerKind
    value: Union[GeoPoint, List[str], float, str, None]


class FieldTypeSpec:
    def __init__(self, name: FieldType, control: str, kind: AnswerKind,
                 input_type: Optional[str] = None, needs_options: bool = False):
        self.name = name
        self.control = control
        self.kind = kind
        self.input_type = input_type
        self.needs_options = needs_options


FIELD_TYPES: Dict[FieldType, FieldTypeSpec] = {
    FieldType.TEXT: FieldTypeSpec(FieldType.TEXT, "input", AnswerKind.TEXT, input_type="text"),
    FieldType.NUMBER: FieldTypeSpec(FieldType.NUMBER, "input", AnswerKind.NUMBER, input_type="number"),
    FieldType.EMAIL: FieldTypeSpec(FieldType.EMAIL, "input", AnswerKind.TEXT, input_type="email"),
    FieldType.PHONE: FieldTypeSpec(FieldType.PHONE, "input", AnswerKind.TEXT, input_type="tel"),
    FieldType.TEXTAREA: FieldTypeSpec(FieldType.TEXTAREA, "textarea", AnswerKind.TEXT),
    FieldType.SELECT: FieldTypeSpec(FieldType.SELECT, "select", AnswerKind.TEXT, needs_options=True),
    FieldType.CHECKBOX: FieldTypeSpec(FieldType.CHECKBOX, "checkbox_group", AnswerKind.CHOICES, needs_options=True),
    FieldType.DATE: FieldTypeSpec(FieldType.DATE, "date", AnswerKind.TEXT, input_type="date"),
    FieldType.LOCATION: FieldTypeSpec(FieldType.LOCATION, "map", AnswerKind.GEOPOINT),
}


def get_spec(field_type) -> FieldTypeSpec:
    return FIELD_TYPES[FieldType(field_type)]


def needs_options(field_type) -> bool:
    return get_spec(field_type).needs_options


def normalize_options(field_type, options: Optional[List[str]]) -> Optional[List[str]]:
    """Options are kept only for choice types; blank entries are dropped"""
    if not needs_options(field_type):
        return None
    cleaned = [o.strip() for o in (options or []) if o and o.strip()]
    return cleaned or None


def render_field(field) -> dict:
    """Control descriptor the browser uses to draw one field"""
    spec = get_spec(field.type)
    return {
        "id": field.id,
        "label": field.label,
        "type": spec.name.value,
        "control": spec.control,
        "input_type": spec.input_type,
        "required": field.required,
        "placeholder": field.placeholder,
        "options": list(field.options or []) if spec.needs_options else None,
        "depends_on_field_id": field.depends_on_field_id,
        "show_when_value": field.show_when_value,
    }


def split_choices(raw: str) -> List[str]:
    # Option values containing the separator itself do not survive this split
    return [part for part in (raw or "").split(CHECKBOX_SEPARATOR) if part]


def parse_geopoint(raw: str) -> Optional[GeoPoint]:
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    lat, lng = data.get("lat"), data.get("lng")
    if isinstance(lat, bool) or isinstance(lng, bool):
        return None
    if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
        return None
    try:
        lat, lng = float(lat), float(lng)
    except OverflowError:
        return None
    # json.loads accepts NaN and Infinity literals
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return None
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None
    address = data.get("address")
    return GeoPoint(lat=lat, lng=lng, address=address if isinstance(address, str) and address else None)


def parse_number(raw: str) -> Optional[float]:
    text = (raw or "").strip()
    # float() also takes digit separators, which browsers reject
    if not text or "_" in text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def serialize_answer(field_type, value: Any) -> str:
    """Native answer value -> stored string"""
    field_type = FieldType(field_type)
    if value is None:
        return ""

    if field_type == FieldType.CHECKBOX:
        if isinstance(value, (list, tuple, set)):
            return CHECKBOX_SEPARATOR.join(str(v) for v in value if str(v))
        return str(value)

    if field_type == FieldType.LOCATION:
        if isinstance(value, GeoPoint):
            return value.to_storage()
        if isinstance(value, dict):
            try:
                return GeoPoint(**value).to_storage()
            except (TypeError, ValidationError):
                # left for check_value() to report as invalid_location
                return json.dumps(value, ensure_ascii=False, default=str)
        return str(value)

    if field_type == FieldType.DATE and isinstance(value, (date, datetime)):
        return value.date().isoformat() if isinstance(value, datetime) else value.isoformat()

    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return repr(value) if isinstance(value, float) else str(value)
    return str(value)


def parse_answer(field_type, raw: str) -> TaggedAnswer:
    """Stored string -> tagged value"""
    spec = get_spec(field_type)
    if spec.kind == AnswerKind.CHOICES:
        return TaggedAnswer(kind=spec.kind, value=split_choices(raw))
    if spec.kind == AnswerKind.GEOPOINT:
        return TaggedAnswer(kind=spec.kind, value=parse_geopoint(raw))
    if spec.kind == AnswerKind.NUMBER:
        return TaggedAnswer(kind=spec.kind, value=parse_number(raw))
    return TaggedAnswer(kind=spec.kind, value=raw)
