"""Demographic records and the zip-code regions drawn on the choropleth layer."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from equitee.models.parsing import number_or, optional_number, text_value


@dataclass(slots=True, frozen=True)
class Demographic:
    """Median income and population figures for a single zip code.

    The heatmap endpoint already answers in camelCase, so both spellings are
    accepted when parsing.
    """

    zip_code: str
    median_income: float
    population: float = 0.0
    county: str = ""
    accessibility_score: float | None = None

    @property
    def id(self) -> str:
        return f"demo_{self.zip_code}"

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "zipCode": self.zip_code,
            "medianIncome": self.median_income,
            "population": self.population,
            "county": self.county,
            "accessibilityScore": self.accessibility_score,
        }

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Demographic":
        zip_code = data.get("zipCode", data.get("zip_code"))
        return cls(
            zip_code=str(zip_code).strip() if zip_code is not None else "",
            median_income=number_or(data.get("medianIncome", data.get("median_income"))),
            population=number_or(data.get("population")),
            county=text_value(data.get("county")),
            accessibility_score=optional_number(
                data.get("accessibilityScore", data.get("accessibility_score"))
            ),
        )


@dataclass(slots=True, frozen=True)
class ZipRegion:
    """A zip-code boundary joined with its demographic record, when one exists."""

    zip_code: str
    boundary: Mapping[str, Any] = field(compare=False)
    median_income: float | None = None
    accessibility_score: float | None = None

    @property
    def has_demographics(self) -> bool:
        return self.median_income is not None
