"""Median-income colour binning for the zip-code choropleth layer."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from functools import lru_cache
import json
import logging
import os
from pathlib import Path
from typing import Any

from equitee.models.demographic import Demographic, ZipRegion

LOGGER = logging.getLogger(__name__)

DEFAULT_BOUNDARIES_PATH = Path(__file__).resolve().parents[1] / "data" / "zip_boundaries.geojson"
NEUTRAL_FILL = "#9ca3af"


@dataclass(slots=True, frozen=True)
class IncomeBucket:
    """A half-open income band ``[lower, upper)`` with its fill colour and copy."""

    key: str
    label: str
    color: str
    lower: float | None
    upper: float | None
    recommendations: tuple[str, ...]

    def contains(self, income: float) -> bool:
        if self.lower is not None and income < self.lower:
            return False
        if self.upper is not None and income >= self.upper:
            return False
        return True

    def as_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "color": self.color,
            "min": self.lower,
            "max": self.upper,
            "recommendations": list(self.recommendations),
        }


INCOME_BUCKETS: tuple[IncomeBucket, ...] = (
    IncomeBucket(
        key="red",
        label="Under $45k",
        color="#dc2626",
        lower=None,
        upper=45_000,
        recommendations=(
            "Municipal courses with green fees under $30",
            "Junior golf programs with free or donated equipment",
            "Driving ranges offering bucket discounts",
            "Community First Tee chapters with sliding-scale fees",
        ),
    ),
    IncomeBucket(
        key="orange",
        label="$45k - $65k",
        color="#f59e0b",
        lower=45_000,
        upper=65_000,
        recommendations=(
            "Public courses with twilight rates",
            "Nine-hole executive courses for beginners",
            "Equipment rental instead of buying a full set",
        ),
    ),
    IncomeBucket(
        key="light-green",
        label="$65k - $85k",
        color="#84cc16",
        lower=65_000,
        upper=85_000,
        recommendations=(
            "Mid-range public courses with practice facilities",
            "Group lessons with a PGA professional",
            "Weekday league play",
        ),
    ),
    IncomeBucket(
        key="dark-green",
        label="$85k+",
        color="#16a34a",
        lower=85_000,
        upper=None,
        recommendations=(
            "Semi-private clubs with junior memberships",
            "Championship courses with coaching packages",
            "Sponsor a youth golfer in a nearby community",
        ),
    ),
)


def income_bucket(median_income: float) -> IncomeBucket:
    """Return the bucket holding ``median_income``; thresholds are exact."""

    for bucket in INCOME_BUCKETS[:-1]:
        if bucket.contains(median_income):
            return bucket
    return INCOME_BUCKETS[-1]


def income_color(median_income: float | None) -> str:
    if median_income is None:
        return NEUTRAL_FILL
    return income_bucket(median_income).color


def income_recommendations(median_income: float | None) -> list[str]:
    if median_income is None:
        return []
    return list(income_bucket(median_income).recommendations)


def income_legend() -> list[dict[str, Any]]:
    return [bucket.as_dict() for bucket in INCOME_BUCKETS]


def resolve_boundaries_path(path: str | Path | None = None) -> Path:
    if path:
        return Path(path).expanduser()
    override = os.getenv("EQUITEE_BOUNDARIES_PATH")
    return Path(override).expanduser() if override else DEFAULT_BOUNDARIES_PATH


def load_zip_boundaries(path: str | Path | None = None) -> dict[str, Mapping[str, Any]]:
    """Return boundary geometries keyed by zip code, in file order.

    The file is parsed once per path; callers receive a fresh dict each time.
    """

    return dict(_read_boundaries(str(resolve_boundaries_path(path))))


@lru_cache(maxsize=8)
def _read_boundaries(path: str) -> tuple[tuple[str, Mapping[str, Any]], ...]:
    with open(path, encoding="utf-8") as handle:
        payload = json.load(handle)

    features = payload.get("features") if isinstance(payload, Mapping) else None
    if not isinstance(features, list):
        raise ValueError(f"{path} is not a GeoJSON FeatureCollection")

    boundaries: dict[str, Mapping[str, Any]] = {}
    for feature in features:
        if not isinstance(feature, Mapping):
            continue
        properties = feature.get("properties") or {}
        zip_code = properties.get("zipCode") or properties.get("ZCTA5CE10")
        geometry = feature.get("geometry")
        if not zip_code or not isinstance(geometry, Mapping):
            LOGGER.warning(
                "Skipping boundary feature without zip code or geometry",
                extra={"event": "income.boundary_skipped"},
            )
            continue
        boundaries[str(zip_code)] = geometry
    return tuple(boundaries.items())


def join_demographics(
    boundaries: Mapping[str, Mapping[str, Any]],
    demographics: Iterable[Demographic],
) -> list[ZipRegion]:
    """Attach demographic figures to each boundary by exact zip-code match.

    Boundaries without a demographic record are kept with empty figures so they
    render with the neutral fill. Demographic records without a boundary are
    dropped since there is nothing to draw.
    """

    by_zip = {record.zip_code: record for record in demographics}
    regions: list[ZipRegion] = []
    for zip_code, geometry in boundaries.items():
        record = by_zip.get(zip_code)
        regions.append(
            ZipRegion(
                zip_code=zip_code,
                boundary=geometry,
                median_income=record.median_income if record else None,
                accessibility_score=record.accessibility_score if record else None,
            )
        )
    return regions


def build_zip_color_map(regions: Iterable[ZipRegion]) -> dict[str, str]:
    return {region.zip_code: income_color(region.median_income) for region in regions}


__all__ = [
    "DEFAULT_BOUNDARIES_PATH",
    "INCOME_BUCKETS",
    "IncomeBucket",
    "NEUTRAL_FILL",
    "build_zip_color_map",
    "income_bucket",
    "income_color",
    "income_legend",
    "income_recommendations",
    "join_demographics",
    "load_zip_boundaries",
    "resolve_boundaries_path",
]
