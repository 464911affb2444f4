"""Map scene composition: course markers, zip fills, selection and hover state.

The scene owns no business data. It is rebuilt from the ranked course list and
the joined zip regions whenever either changes, and every rebuild starts from
an empty selection and tooltip.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
import html
import logging
from typing import Any, Mapping

import folium

from equitee.models.course import Course
from equitee.models.demographic import ZipRegion
from equitee.models.location import Coordinate
from equitee.models.map import DEFAULT_CENTER, MapConfig
from equitee.services.distance import RankedCourse, format_distance
from equitee.services.income import income_color, income_recommendations

LOGGER = logging.getLogger(__name__)

MARKER_HEX: Mapping[str, str] = {
    "green": "#22c55e",
    "yellow": "#eab308",
    "red": "#dc2626",
}
SELECTED_OUTLINE = "#2563eb"

CourseSelectedCallback = Callable[[Course], None]


def marker_color(course: Course) -> str:
    """Three-band price colour: ``<= 50`` green, ``<= 100`` yellow, else red."""

    price = course.average_price
    if price <= 50:
        return "green"
    if price <= 100:
        return "yellow"
    return "red"


class SelectionState(str, Enum):
    NONE_SELECTED = "none-selected"
    COURSE_SELECTED = "course-selected"


@dataclass(slots=True, frozen=True)
class MarkerSelection:
    state: SelectionState = SelectionState.NONE_SELECTED
    course_id: str | None = None

    @classmethod
    def none(cls) -> "MarkerSelection":
        return cls()

    @classmethod
    def course(cls, course_id: str) -> "MarkerSelection":
        return cls(state=SelectionState.COURSE_SELECTED, course_id=course_id)


@dataclass(slots=True)
class CourseMarker:
    course: Course
    color: str
    distance_miles: float | None = None
    highlighted: bool = False
    popup_open: bool = False

    @property
    def course_id(self) -> str:
        return self.course.id

    def popup_html(self) -> str:
        course = self.course
        lines = [
            f"<h4>{html.escape(course.name)}</h4>",
            f"<p>{html.escape(course.address)}</p>",
            f"<p>Green fees: ${course.green_fee_min:.0f} - ${course.green_fee_max:.0f}</p>",
            f"<p>Difficulty: {course.difficulty_rating:g}/5</p>",
        ]
        amenities = [
            label
            for label, enabled in (
                ("Youth programs", course.youth_programs),
                ("Equipment rental", course.equipment_rental),
            )
            if enabled
        ]
        if amenities:
            lines.append(f"<p>{', '.join(amenities)}</p>")
        if self.distance_miles is not None:
            lines.append(f"<p>{format_distance(self.distance_miles)} away</p>")
        return "".join(lines)


@dataclass(slots=True)
class ZipFill:
    zip_code: str
    geometry: Mapping[str, Any] = field(compare=False)
    color: str
    median_income: float | None = None
    accessibility_score: float | None = None
    recommendations: list[str] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class Tooltip:
    zip_code: str
    median_income: float | None
    recommendations: tuple[str, ...]
    x: float
    y: float

    def as_dict(self) -> dict[str, Any]:
        return {
            "zipCode": self.zip_code,
            "medianIncome": self.median_income,
            "recommendations": list(self.recommendations),
            "position": {"x": self.x, "y": self.y},
        }


class MapScene:
    """Composable map state with a single active marker.

    ``on_course_select`` is invoked with the selected :class:`Course` each time
    a marker is selected.
    """

    def __init__(self, on_course_select: CourseSelectedCallback | None = None) -> None:
        self._on_course_select = on_course_select
        self.markers: list[CourseMarker] = []
        self.fills: list[ZipFill] = []
        self.origin: Coordinate | None = None
        self.selection = MarkerSelection.none()
        self.tooltip: Tooltip | None = None

    def rebuild(
        self,
        ranked: Sequence[RankedCourse],
        regions: Sequence[ZipRegion] = (),
        *,
        origin: Coordinate | None = None,
    ) -> "MapScene":
        """Replace all rendered state with markers and fills for the new inputs."""

        self.markers = [
            CourseMarker(course=item.course, color=marker_color(item.course), distance_miles=item.distance_miles)
            for item in ranked
        ]
        self.fills = [
            ZipFill(
                zip_code=region.zip_code,
                geometry=region.boundary,
                color=income_color(region.median_income),
                median_income=region.median_income,
                accessibility_score=region.accessibility_score,
                recommendations=income_recommendations(region.median_income),
            )
            for region in regions
        ]
        self.origin = origin
        self.selection = MarkerSelection.none()
        self.tooltip = None
        LOGGER.debug(
            "Map scene rebuilt",
            extra={"event": "map.rebuilt", "markers": len(self.markers), "fills": len(self.fills)},
        )
        return self

    # --- marker selection ---------------------------------------------------------

    def select_marker(self, course_id: str) -> Course:
        """Open ``course_id``'s popup, closing and un-highlighting every other marker."""

        target = self._marker(course_id)
        for marker in self.markers:
            is_target = marker is target
            marker.highlighted = is_target
            marker.popup_open = is_target
        self.selection = MarkerSelection.course(course_id)
        if self._on_course_select is not None:
            self._on_course_select(target.course)
        return target.course

    def clear_selection(self) -> None:
        for marker in self.markers:
            marker.highlighted = False
            marker.popup_open = False
        self.selection = MarkerSelection.none()

    @property
    def selected_course(self) -> Course | None:
        if self.selection.course_id is None:
            return None
        return self._marker(self.selection.course_id).course

    def _marker(self, course_id: str) -> CourseMarker:
        for marker in self.markers:
            if marker.course_id == course_id:
                return marker
        raise KeyError(course_id)

    # --- zip hover ------------------------------------------------------------------

    def hover_zip(self, zip_code: str, x: float, y: float) -> Tooltip:
        fill = next((item for item in self.fills if item.zip_code == zip_code), None)
        if fill is None:
            raise KeyError(zip_code)
        self.tooltip = Tooltip(
            zip_code=fill.zip_code,
            median_income=fill.median_income,
            recommendations=tuple(fill.recommendations),
            x=x,
            y=y,
        )
        return self.tooltip

    def leave_zip(self) -> None:
        self.tooltip = None

    # --- export ---------------------------------------------------------------------

    def to_geojson(self) -> dict[str, Any]:
        features: list[dict[str, Any]] = []
        for fill in self.fills:
            features.append(
                {
                    "type": "Feature",
                    "geometry": dict(fill.geometry),
                    "properties": {
                        "kind": "zip",
                        "zipCode": fill.zip_code,
                        "color": fill.color,
                        "medianIncome": fill.median_income,
                        "accessibilityScore": fill.accessibility_score,
                        "recommendations": list(fill.recommendations),
                    },
                }
            )
        for marker in self.markers:
            course = marker.course
            features.append(
                {
                    "type": "Feature",
                    "geometry": {"type": "Point", "coordinates": [course.lng, course.lat]},
                    "properties": {
                        "kind": "course",
                        "courseId": course.id,
                        "name": course.name,
                        "color": marker.color,
                        "averagePrice": course.average_price,
                        "distanceMiles": marker.distance_miles,
                        "highlighted": marker.highlighted,
                        "popupOpen": marker.popup_open,
                    },
                }
            )
        return {
            "type": "FeatureCollection",
            "features": features,
            "selection": {"state": self.selection.state.value, "courseId": self.selection.course_id},
        }

    def to_folium(self, config: MapConfig | None = None) -> folium.Map:
        """Render the scene onto a Leaflet map."""

        config = config or MapConfig()
        center = self.origin or config.center or DEFAULT_CENTER
        fmap = folium.Map(location=[center.lat, center.lng], zoom_start=int(config.zoom), tiles=None)
        _add_base_tiles(fmap, config)

        if self.fills:
            zip_layer = folium.FeatureGroup(name="Median income")
            folium.GeoJson(
                {
                    "type": "FeatureCollection",
                    "features": [
                        _with_recommendation_text(feature)
                        for feature in self.to_geojson()["features"]
                        if feature["properties"]["kind"] == "zip"
                    ],
                },
                style_function=lambda feature: {
                    "fillColor": feature["properties"]["color"],
                    "color": "#ffffff",
                    "weight": 1,
                    "fillOpacity": 0.6,
                },
                tooltip=folium.GeoJsonTooltip(
                    fields=["zipCode", "medianIncome", "recommendationText"],
                    aliases=["Zip Code:", "Median Income:", "Recommendations:"],
                ),
            ).add_to(zip_layer)
            zip_layer.add_to(fmap)

        course_layer = folium.FeatureGroup(name="Golf courses")
        for marker in self.markers:
            course = marker.course
            folium.CircleMarker(
                location=[course.lat, course.lng],
                radius=11 if marker.highlighted else 8,
                color=SELECTED_OUTLINE if marker.highlighted else "#ffffff",
                weight=3 if marker.highlighted else 2,
                fill=True,
                fill_color=MARKER_HEX[marker.color],
                fill_opacity=0.9,
                popup=folium.Popup(marker.popup_html(), max_width=250, show=marker.popup_open),
                tooltip=course.name,
            ).add_to(course_layer)
        course_layer.add_to(fmap)

        if self.origin is not None:
            folium.Marker(
                location=[self.origin.lat, self.origin.lng],
                icon=folium.Icon(color="blue", icon="user", prefix="fa"),
                tooltip="Your location",
            ).add_to(fmap)

        folium.LayerControl(collapsed=False).add_to(fmap)
        return fmap

    def render_html(self, config: MapConfig | None = None) -> str:
        return self.to_folium(config).get_root().render()


def _add_base_tiles(fmap: folium.Map, config: MapConfig) -> None:
    style = config.style or ""
    prefix = "mapbox://styles/"
    if config.access_token and style.startswith(prefix):
        style_path = style[len(prefix):]
        folium.TileLayer(
            tiles=(
                f"https://api.mapbox.com/styles/v1/{style_path}/tiles/{{z}}/{{x}}/{{y}}"
                f"?access_token={config.access_token}"
            ),
            attr="Mapbox",
            name="Mapbox",
            control=False,
        ).add_to(fmap)
        return
    folium.TileLayer("cartodbpositron", control=False).add_to(fmap)


def _with_recommendation_text(feature: dict[str, Any]) -> dict[str, Any]:
    """Copy a zip feature with its recommendations joined for the hover tooltip."""

    properties = dict(feature["properties"])
    properties["recommendationText"] = "; ".join(properties["recommendations"]) or "None"
    return {**feature, "properties": properties}


__all__ = [
    "CourseMarker",
    "MapScene",
    "MarkerSelection",
    "SelectionState",
    "Tooltip",
    "ZipFill",
    "marker_color",
]
