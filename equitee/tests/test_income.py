from __future__ import annotations

import json
from pathlib import Path

import pytest

from equitee.models.demographic import Demographic
from equitee.services.income import (
    NEUTRAL_FILL,
    build_zip_color_map,
    income_bucket,
    income_color,
    income_legend,
    income_recommendations,
    join_demographics,
    load_zip_boundaries,
)


@pytest.mark.parametrize(
    ("income", "color"),
    [
        (44_999, "#dc2626"),
        (45_000, "#f59e0b"),
        (64_999, "#f59e0b"),
        (65_000, "#84cc16"),
        (84_999, "#84cc16"),
        (85_000, "#16a34a"),
        (250_000, "#16a34a"),
    ],
)
def test_income_thresholds_are_exact(income: int, color: str) -> None:
    assert income_color(income) == color


def test_missing_income_uses_neutral_fill_and_no_recommendations() -> None:
    assert income_color(None) == NEUTRAL_FILL
    assert income_recommendations(None) == []


def test_each_bucket_has_recommendations() -> None:
    for income in (30_000, 50_000, 70_000, 90_000):
        recommendations = income_recommendations(income)
        assert 3 <= len(recommendations) <= 4
        assert recommendations == list(income_bucket(income).recommendations)


def test_legend_lists_buckets_in_ascending_order() -> None:
    legend = income_legend()

    assert [entry["key"] for entry in legend] == ["red", "orange", "light-green", "dark-green"]
    assert legend[0]["min"] is None
    assert legend[-1]["max"] is None


def test_bundled_boundaries_cover_sample_zip_codes() -> None:
    boundaries = load_zip_boundaries()

    assert list(boundaries) == ["33101", "33125", "33134", "33143"]
    assert boundaries["33101"]["type"] == "Polygon"


def test_boundaries_path_can_be_overridden(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "zips.geojson"
    path.write_text(
        json.dumps(
            {
                "type": "FeatureCollection",
                "features": [
                    {
                        "type": "Feature",
                        "properties": {"zipCode": "10001"},
                        "geometry": {"type": "Point", "coordinates": [-73.99, 40.75]},
                    },
                    {"type": "Feature", "properties": {}, "geometry": None},
                ],
            }
        )
    )
    monkeypatch.setenv("EQUITEE_BOUNDARIES_PATH", str(path))

    assert list(load_zip_boundaries()) == ["10001"]


def test_join_keeps_boundaries_without_data_and_drops_orphan_records() -> None:
    boundaries = {
        "33101": {"type": "Polygon", "coordinates": []},
        "33125": {"type": "Polygon", "coordinates": []},
    }
    demographics = [
        Demographic(zip_code="33101", median_income=45_000),
        Demographic(zip_code="99999", median_income=120_000),
    ]

    regions = join_demographics(boundaries, demographics)

    assert [region.zip_code for region in regions] == ["33101", "33125"]
    assert regions[0].median_income == 45_000
    assert not regions[1].has_demographics
    assert build_zip_color_map(regions) == {"33101": "#f59e0b", "33125": NEUTRAL_FILL}
