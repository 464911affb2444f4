from __future__ import annotations

import pytest

from equitee.models.demographic import ZipRegion
from equitee.models.location import Coordinate
from equitee.models.map import MapConfig
from equitee.services.distance import rank_courses
from equitee.services.income import NEUTRAL_FILL
from equitee.services.map_layer import MapScene, SelectionState, marker_color
from equitee.tests.conftest import build_course

_SQUARE = {
    "type": "Polygon",
    "coordinates": [[[-80.19, 25.76], [-80.18, 25.76], [-80.18, 25.77], [-80.19, 25.77], [-80.19, 25.76]]],
}


@pytest.mark.parametrize(
    ("fees", "color"),
    [((40, 60), "green"), ((50, 51), "yellow"), ((90, 110), "yellow"), ((100, 101), "red")],
)
def test_marker_color_bands(fees: tuple[int, int], color: str) -> None:
    course = build_course("c", green_fee_min=fees[0], green_fee_max=fees[1])

    assert marker_color(course) == color


def _scene(callback=None) -> MapScene:
    courses = [build_course("a"), build_course("b", lat=25.8, name="Bravo <Links>")]
    regions = [
        ZipRegion(zip_code="33101", boundary=_SQUARE, median_income=45_000),
        ZipRegion(zip_code="33125", boundary=_SQUARE),
    ]
    return MapScene(on_course_select=callback).rebuild(
        rank_courses(courses, origin=Coordinate(lat=25.76, lng=-80.19)),
        regions,
        origin=Coordinate(lat=25.76, lng=-80.19),
    )


def test_selecting_a_marker_highlights_only_that_marker() -> None:
    selected = []
    scene = _scene(selected.append)

    scene.select_marker("a")
    course = scene.select_marker("b")

    assert [marker.highlighted for marker in scene.markers] == [False, True]
    assert [marker.popup_open for marker in scene.markers] == [False, True]
    assert scene.selection.state is SelectionState.COURSE_SELECTED
    assert scene.selected_course == course
    assert [item.id for item in selected] == ["a", "b"]


def test_selecting_unknown_marker_raises() -> None:
    with pytest.raises(KeyError):
        _scene().select_marker("missing")


def test_rebuild_resets_selection_and_tooltip() -> None:
    scene = _scene()
    scene.select_marker("a")
    scene.hover_zip("33101", 10, 20)

    scene.rebuild([], [])

    assert scene.selection.state is SelectionState.NONE_SELECTED
    assert scene.tooltip is None
    assert scene.selected_course is None


def test_hover_tooltip_carries_income_and_recommendations() -> None:
    scene = _scene()

    tooltip = scene.hover_zip("33101", 12.5, 40.0)

    assert tooltip.median_income == 45_000
    assert tooltip.recommendations
    assert tooltip.as_dict()["position"] == {"x": 12.5, "y": 40.0}

    scene.leave_zip()
    assert scene.tooltip is None


def test_zip_without_demographics_uses_neutral_fill() -> None:
    scene = _scene()

    fills = {fill.zip_code: fill for fill in scene.fills}

    assert fills["33101"].color == "#f59e0b"
    assert fills["33125"].color == NEUTRAL_FILL
    assert fills["33125"].recommendations == []


def test_geojson_export_lists_zip_and_course_features() -> None:
    scene = _scene()
    scene.select_marker("a")

    payload = scene.to_geojson()

    kinds = [feature["properties"]["kind"] for feature in payload["features"]]
    assert kinds == ["zip", "zip", "course", "course"]
    assert payload["features"][2]["geometry"]["coordinates"] == [-80.1918, 25.7617]
    assert payload["selection"] == {"state": "course-selected", "courseId": "a"}


def test_popup_html_escapes_course_text() -> None:
    scene = _scene()

    marker = next(marker for marker in scene.markers if marker.course_id == "b")

    assert "Bravo &lt;Links&gt;" in marker.popup_html()
    assert "miles away" in marker.popup_html()


def test_render_html_uses_fallback_tiles_without_token() -> None:
    html = _scene().render_html(MapConfig())

    assert "leaflet" in html.lower()
    assert "Golf courses" in html
    assert "api.mapbox.com" not in html


def test_render_html_uses_mapbox_tiles_with_token() -> None:
    html = _scene().render_html(MapConfig(access_token="pk.test"))

    assert "api.mapbox.com/styles/v1/mapbox/light-v11" in html


def test_zip_tooltip_lists_income_recommendations() -> None:
    html = _scene().render_html(MapConfig())

    assert "Recommendations:" in html
    assert "recommendationText" in html
    assert "Public courses with twilight rates; Nine-hole executive courses for beginners" in html
