"""Location primitives shared by the geolocation provider and the distance engine."""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Mapping


@dataclass(slots=True, frozen=True)
class Coordinate:
    """A point on the globe expressed in decimal degrees."""

    lat: float
    lng: float

    def as_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}

    @classmethod
    def from_mapping(cls, data: Any) -> "Coordinate | None":
        """Build a coordinate from a ``{"lat": ..., "lng": ...}`` mapping.

        Returns ``None`` when either component is missing or not numeric so that
        corrupted persisted values never surface as a position.
        """

        if not isinstance(data, Mapping):
            return None
        lat = _coerce_float(data.get("lat"))
        lng = _coerce_float(data.get("lng"))
        if lat is None or lng is None:
            return None
        return cls(lat=lat, lng=lng)


@dataclass(slots=True, frozen=True)
class UserLocation:
    """Resolved user position, optionally annotated with the zip code it came from."""

    position: Coordinate
    zip_code: str | None = None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = self.position.as_dict()
        if self.zip_code:
            payload["zipCode"] = self.zip_code
        return payload


@dataclass(slots=True, frozen=True)
class PositionOptions:
    """Options handed to the device position source."""

    enable_high_accuracy: bool = True
    timeout_ms: int = 10_000
    maximum_age_ms: int = 300_000


class PositionErrorCode(IntEnum):
    """Error categories reported by device position sources."""

    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3


def _coerce_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None
