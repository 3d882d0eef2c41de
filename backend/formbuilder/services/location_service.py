"""
Location capture state machine: Unset -> Set(lat, lng) -> Set(lat, lng, address).

A new pick always overwrites the previous one. An address only attaches to the
coordinate it was looked up for, so a slow lookup for an old pick is dropped.
"""
from typing import Callable, Optional, Tuple
import enum
import logging

from formbuilder.services.field_types import GeoPoint, parse_geopoint

logger = logging.getLogger(__name__)


class LocationState(str, enum.Enum):
    UNSET = "unset"
    SET = "set"
    SET_WITH_ADDRESS = "set_with_address"


class GeolocationError(Exception):
    """Device geolocation could not produce a coordinate"""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


GEOLOCATION_NOTICES = {
    "permission_denied": "Location permission was denied. Pick your location on the map instead.",
    "unsupported": "This browser does not support location detection. Pick your location on the map instead.",
    "timeout": "Getting your current location took too long. Pick your location on the map instead.",
}
DEFAULT_GEOLOCATION_NOTICE = "Could not get your current location. Pick your location on the map instead."


class LocationCapture:
    def __init__(self, current: Optional[str] = None):
        self.point: Optional[GeoPoint] = parse_geopoint(current) if current else None

    @property
    def state(self) -> LocationState:
        if self.point is None:
            return LocationState.UNSET
        if self.point.address:
            return LocationState.SET_WITH_ADDRESS
        return LocationState.SET

    def pick(self, lat: float, lng: float) -> None:
        self.point = GeoPoint(lat=lat, lng=lng)

    def use_device_location(self, locate: Callable[[], Tuple[float, float]]) -> Optional[str]:
        """Pick the device coordinate; on failure keep the current state and return a notice"""
        try:
            lat, lng = locate()
        except GeolocationError as e:
            logger.info(f"Device geolocation failed: {e.reason}")
            return GEOLOCATION_NOTICES.get(e.reason, DEFAULT_GEOLOCATION_NOTICE)
        self.pick(lat, lng)
        return None

    def attach_address(self, lat: float, lng: float, address: Optional[str]) -> bool:
        if self.point is None or not address:
            return False
        if (self.point.lat, self.point.lng) != (lat, lng):
            return False
        self.point = GeoPoint(lat=lat, lng=lng, address=address)
        return True

    def resolve_address(self, geocode: Callable[[float, float], Optional[str]]) -> bool:
        if self.point is None:
            return False
        lat, lng = self.point.lat, self.point.lng
        return self.attach_address(lat, lng, geocode(lat, lng))

    def to_answer(self) -> str:
        return self.point.to_storage() if self.point else ""
