from typing import Optional
import logging

import requests

from formbuilder.config import settings
from formbuilder.services.map_loader import map_loader

logger = logging.getLogger(__name__)


def reverse_geocode(lat: float, lng: float) -> Optional[str]:
    """Best-effort address lookup. Returns None on any failure or timeout."""
    try:
        with map_loader.client(timeout=settings.GEOCODER_TIMEOUT_SECONDS) as session:
            response = session.get(
                settings.GEOCODER_URL,
                params={
                    "format": "json",
                    "lat": lat,
                    "lon": lng,
                    "accept-language": settings.GEOCODER_LANGUAGE,
                },
                timeout=settings.GEOCODER_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
            data = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning(f"Reverse geocoding failed: {e.__class__.__name__}")
        return None
    except Exception as e:
        # loader failures and future timeouts are non-fatal too
        logger.warning(f"Reverse geocoding unavailable: {e.__class__.__name__}")
        return None

    address = data.get("display_name") if isinstance(data, dict) else None
    return address or None
