from pydantic import BaseModel
from typing import Any, Dict, Optional


class SubmitAnswers(BaseModel):
    # field id -> native value: str, number, list of str (checkbox), {lat, lng, address?} (location)
    answers: Dict[int, Any] = {}


class VisibilityRequest(BaseModel):
    answers: Dict[int, Any] = {}
    changed_field_id: Optional[int] = None
    value: Any = None


class LocationRequest(BaseModel):
    source: str = "map"  # "map" | "device"
    lat: Optional[float] = None
    lng: Optional[float] = None
    error: Optional[str] = None  # device failure reason
    current: Optional[str] = None  # previously stored answer
    resolve_address: bool = True
