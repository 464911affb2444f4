"""Great-circle distance, course filtering and proximity ranking."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
import math

from equitee.models.course import Course, Equipment
from equitee.models.filters import FilterState
from equitee.models.location import Coordinate

EARTH_RADIUS_MILES = 3959.0


def haversine_miles(origin: Coordinate, destination: Coordinate) -> float:
    """Return the great-circle distance in miles between two coordinates."""

    lat1 = math.radians(origin.lat)
    lat2 = math.radians(destination.lat)
    dlat = lat2 - lat1
    dlng = math.radians(destination.lng - origin.lng)

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    # Floating point error can push ``a`` marginally outside [0, 1].
    a = min(1.0, max(0.0, a))
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def course_matches(course: Course, filters: FilterState) -> bool:
    """Return ``True`` when ``course`` satisfies every active filter.

    Both ranges are inclusive. The default filter state passes every course,
    including records whose difficulty was never rated.
    """

    if filters.is_default:
        return True

    price_min, price_max = filters.price_range
    if not price_min <= course.average_price <= price_max:
        return False

    difficulty_min, difficulty_max = filters.difficulty_range
    if not difficulty_min <= course.difficulty_rating <= difficulty_max:
        return False

    if filters.youth_programs and not course.youth_programs:
        return False
    if filters.equipment_rental and not course.equipment_rental:
        return False
    return True


def filter_courses(courses: Iterable[Course], filters: FilterState) -> list[Course]:
    return [course for course in courses if course_matches(course, filters)]


@dataclass(slots=True, frozen=True)
class RankedCourse:
    course: Course
    distance_miles: float | None = None

    def as_dict(self) -> dict[str, object]:
        payload: dict[str, object] = self.course.as_dict()
        payload["distanceMiles"] = None if self.distance_miles is None else round(self.distance_miles, 2)
        payload["distance"] = format_distance(self.distance_miles)
        return payload


def rank_courses(
    courses: Sequence[Course],
    filters: FilterState | None = None,
    origin: Coordinate | None = None,
) -> list[RankedCourse]:
    """Filter ``courses`` and order them by distance from ``origin``.

    Distances are recomputed on every call. ``sorted`` is stable, so courses at
    the same distance keep their fetch order; without an origin the fetch order
    is kept as is.
    """

    active_filters = filters or FilterState()
    matching = filter_courses(courses, active_filters)
    if origin is None:
        return [RankedCourse(course=course) for course in matching]

    ranked = [RankedCourse(course=course, distance_miles=haversine_miles(origin, course.position)) for course in matching]
    return sorted(ranked, key=lambda item: item.distance_miles)


def with_equipment_distances(items: Iterable[Equipment], origin: Coordinate | None) -> list[Equipment]:
    """Annotate equipment listings with their distance from ``origin``.

    Listings without a location keep ``distance_miles`` unset.
    """

    annotated: list[Equipment] = []
    for item in items:
        position = item.position
        if origin is not None and position is not None:
            item.distance_miles = haversine_miles(origin, position)
        else:
            item.distance_miles = None
        annotated.append(item)
    return annotated


def format_distance(distance_miles: float | None) -> str:
    if distance_miles is None:
        return ""
    return f"{distance_miles:.1f} miles"


__all__ = [
    "EARTH_RADIUS_MILES",
    "RankedCourse",
    "course_matches",
    "filter_courses",
    "format_distance",
    "haversine_miles",
    "rank_courses",
    "with_equipment_distances",
]
