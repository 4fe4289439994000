"""
Pickup location normalization.

Join requests may describe the pickup point in two shapes:
    {"latitude": 12.9, "longitude": 77.6, "address": "X"}
    {"coordinates": {"lat": 12.9, "lng": 77.6}, "address": "X"}
Both are folded into one PickupLocation, validated once.
"""

import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, Dict, Optional

from rideshare.app.core.exceptions import InvalidPickupLocationError


@dataclass(frozen=True)
class PickupLocation:
    """Canonical pickup location."""
    address: str
    latitude: float
    longitude: float

    def to_document(self) -> Dict[str, Any]:
        """Storage shape, shared with ride start/end locations."""
        return {
            "address": self.address,
            "coordinates": {"lat": self.latitude, "lng": self.longitude},
        }


def _coordinate(value: Any, bound: float) -> Optional[float]:
    # bool is a Real subclass
    if isinstance(value, bool) or not isinstance(value, (Real, str)):
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    if not math.isfinite(number) or abs(number) > bound:
        return None
    return number


def normalize_pickup_location(raw: Any) -> PickupLocation:
    """
    Normalize a pickup location from either accepted shape.
    
    Each coordinate is taken from its flat field when present, else from the
    nested coordinates pair, so mixed inputs resolve field by field.
    
    Raises:
        InvalidPickupLocationError: If no shape yields a latitude, a longitude
            and a non-empty address.
    """
    if not isinstance(raw, dict):
        raise InvalidPickupLocationError()
    
    address = raw.get("address")
    if not isinstance(address, str) or not address.strip():
        raise InvalidPickupLocationError()
    
    nested = raw.get("coordinates")
    if not isinstance(nested, dict):
        nested = {}
    
    lat = raw.get("latitude")
    if lat is None:
        lat = nested.get("lat")
    
    lng = raw.get("longitude")
    if lng is None:
        lng = nested.get("lng")
    
    latitude = _coordinate(lat, 90)
    longitude = _coordinate(lng, 180)
    if latitude is None or longitude is None:
        raise InvalidPickupLocationError()
    
    return PickupLocation(address=address.strip(), latitude=latitude, longitude=longitude)
