"""Tests for the course discovery orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field

from equitee.models.course import Course
from equitee.models.demographic import Demographic
from equitee.models.filters import FilterState
from equitee.models.location import Coordinate
from equitee.models.map import MapConfig
from equitee.services.api_client import ApiError
from equitee.services.discovery import CourseDiscovery
from equitee.services.income import NEUTRAL_FILL, load_zip_boundaries
from equitee.tests.conftest import build_course


@dataclass(slots=True)
class StubBackend:
    """Backend returning canned data, or raising for the named sources."""

    courses: list[Course] = field(default_factory=list)
    demographics: list[Demographic] = field(default_factory=list)
    config: MapConfig = field(default_factory=MapConfig)
    failing: set[str] = field(default_factory=set)
    calls: list[str] = field(default_factory=list, init=False)

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failing:
            raise ApiError(f"{name} unavailable", status_code=503)

    def fetch_courses(self) -> list[Course]:
        self._record("courses")
        return list(self.courses)

    def fetch_demographics(self) -> list[Demographic]:
        self._record("demographics")
        return list(self.demographics)

    def fetch_map_config(self) -> MapConfig:
        self._record("config")
        return self.config


def _backend(**kwargs) -> StubBackend:
    return StubBackend(
        courses=[
            build_course("far", lat=26.5),
            build_course("near", lat=25.77),
            build_course("expensive", lat=25.76, green_fee_min=150, green_fee_max=250),
        ],
        demographics=[
            Demographic(zip_code="33101", median_income=45_000),
            Demographic(zip_code="33134", median_income=90_000),
        ],
        **kwargs,
    )


def test_run_builds_ranked_scene() -> None:
    backend = _backend()
    discovery = CourseDiscovery(client=backend, boundaries=load_zip_boundaries())

    result = discovery.run(FilterState(price_range=(0, 100)), Coordinate(lat=25.76, lng=-80.19))

    assert result.succeeded
    assert [item.course.id for item in result.courses] == ["near", "far"]
    assert [marker.course_id for marker in result.scene.markers] == ["near", "far"]
    colors = {fill.zip_code: fill.color for fill in result.scene.fills}
    assert colors == {"33101": "#f59e0b", "33125": NEUTRAL_FILL, "33134": "#16a34a", "33143": NEUTRAL_FILL}
    assert backend.calls == ["courses", "demographics"]


def test_failed_demographics_keep_courses_and_neutral_regions() -> None:
    discovery = CourseDiscovery(client=_backend(failing={"demographics"}), boundaries=load_zip_boundaries())

    result = discovery.run()

    assert not result.succeeded
    assert len(result.courses) == 3
    assert {fill.color for fill in result.scene.fills} == {NEUTRAL_FILL}
    assert result.errors == ["Demographics unavailable: demographics unavailable"]


def test_failed_courses_leave_empty_markers() -> None:
    discovery = CourseDiscovery(client=_backend(failing={"courses"}), boundaries=load_zip_boundaries())

    result = discovery.run()

    assert result.courses == []
    assert result.scene.markers == []
    assert len(result.scene.fills) == 4


def test_map_config_is_optional_and_falls_back_to_defaults() -> None:
    backend = _backend(config=MapConfig(access_token="pk.test"), failing={"config"})

    result = CourseDiscovery(client=backend).run(include_config=True)

    assert result.config == MapConfig()
    assert result.errors == ["Map configuration unavailable: config unavailable"]
