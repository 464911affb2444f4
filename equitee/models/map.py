"""Map widget configuration served by the backend."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from equitee.models.location import Coordinate
from equitee.models.parsing import number_or, optional_str

DEFAULT_CENTER = Coordinate(lat=25.7617, lng=-80.1918)
DEFAULT_STYLE = "mapbox://styles/mapbox/light-v11"


@dataclass(slots=True, frozen=True)
class MapConfig:
    access_token: str | None = None
    style: str = DEFAULT_STYLE
    center: Coordinate = DEFAULT_CENTER
    zoom: float = 10.0
    pitch: float = 0.0
    bearing: float = 0.0

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "MapConfig":
        """Parse the ``GET /map/config`` payload, keeping defaults for absent keys."""

        return cls(
            access_token=optional_str(data.get("accessToken")),
            style=optional_str(data.get("style")) or DEFAULT_STYLE,
            center=Coordinate.from_mapping(data.get("center")) or DEFAULT_CENTER,
            zoom=number_or(data.get("zoom"), 10.0),
            pitch=number_or(data.get("pitch")),
            bearing=number_or(data.get("bearing")),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "accessToken": self.access_token,
            "style": self.style,
            "center": self.center.as_dict(),
            "zoom": self.zoom,
            "pitch": self.pitch,
            "bearing": self.bearing,
        }
