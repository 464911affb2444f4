"""Orchestration layer that joins courses, location and demographics into a map scene."""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from equitee.models.course import Course
from equitee.models.demographic import Demographic, ZipRegion
from equitee.models.filters import FilterState
from equitee.models.location import Coordinate
from equitee.models.map import MapConfig
from equitee.services.api_client import ApiError
from equitee.services.distance import RankedCourse, rank_courses
from equitee.services.income import join_demographics
from equitee.services.map_layer import MapScene


logger = logging.getLogger(__name__)


class SupportsDiscovery(Protocol):
    """Subset of :class:`EquiTeeApiClient` relied on by the discovery flow."""

    def fetch_courses(self) -> list[Course]:
        """Return every course known to the backend."""

    def fetch_demographics(self) -> list[Demographic]:
        """Return the heatmap demographic records."""

    def fetch_map_config(self) -> MapConfig:
        """Return the map widget configuration."""


@dataclass(slots=True)
class DiscoveryResult:
    """Everything needed to draw the course map, plus per-source failures."""

    courses: list[RankedCourse]
    regions: list[ZipRegion]
    scene: MapScene
    config: MapConfig = field(default_factory=MapConfig)
    origin: Coordinate | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.errors


@dataclass(slots=True)
class CourseDiscovery:
    """Fetch, filter and rank courses, then compose the map scene.

    Each upstream source fails independently: a failed course listing yields an
    empty marker set, failed demographics leave every zip region with the
    neutral fill, and a failed map configuration falls back to the defaults.
    """

    client: SupportsDiscovery
    boundaries: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    on_course_select: Callable[[Course], None] | None = None

    def ranked_courses(self, filters: FilterState | None = None, origin: Coordinate | None = None) -> list[RankedCourse]:
        """Return filtered courses ordered by distance; raises :class:`ApiError`."""

        courses = self.client.fetch_courses()
        return rank_courses(courses, filters, origin)

    def zip_regions(self) -> list[ZipRegion]:
        """Join the boundary file with backend demographics; raises :class:`ApiError`."""

        return join_demographics(self.boundaries, self.client.fetch_demographics())

    def run(
        self,
        filters: FilterState | None = None,
        origin: Coordinate | None = None,
        *,
        include_config: bool = False,
    ) -> DiscoveryResult:
        errors: list[str] = []

        try:
            courses = self.ranked_courses(filters, origin)
        except ApiError as exc:
            logger.warning("Course listing unavailable: %s", exc, extra={"event": "discovery.courses_failed"})
            errors.append(f"Courses unavailable: {exc}")
            courses = []

        try:
            regions = self.zip_regions()
        except ApiError as exc:
            logger.warning(
                "Demographics unavailable: %s", exc, extra={"event": "discovery.demographics_failed"}
            )
            errors.append(f"Demographics unavailable: {exc}")
            regions = join_demographics(self.boundaries, [])

        config = MapConfig()
        if include_config:
            try:
                config = self.client.fetch_map_config()
            except ApiError as exc:
                logger.warning(
                    "Map configuration unavailable: %s", exc, extra={"event": "discovery.config_failed"}
                )
                errors.append(f"Map configuration unavailable: {exc}")

        scene = MapScene(on_course_select=self.on_course_select).rebuild(courses, regions, origin=origin)
        return DiscoveryResult(
            courses=courses,
            regions=regions,
            scene=scene,
            config=config,
            origin=origin,
            errors=errors,
        )
