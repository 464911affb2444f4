"""User-controlled course filters."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

DEFAULT_PRICE_RANGE: tuple[float, float] = (0.0, 200.0)
DEFAULT_DIFFICULTY_RANGE: tuple[float, float] = (1.0, 5.0)


@dataclass(slots=True, frozen=True)
class FilterState:
    """Price, difficulty and amenity filters applied to the course list.

    Ranges are inclusive on both ends. Instances are immutable; use
    :meth:`updated` to derive a new state after a user interaction.
    """

    price_range: tuple[float, float] = DEFAULT_PRICE_RANGE
    difficulty_range: tuple[float, float] = DEFAULT_DIFFICULTY_RANGE
    youth_programs: bool = False
    equipment_rental: bool = False

    def __post_init__(self) -> None:
        for name in ("price_range", "difficulty_range"):
            low, high = getattr(self, name)
            if low > high:
                raise ValueError(f"{name} lower bound must not exceed the upper bound")
            object.__setattr__(self, name, (float(low), float(high)))

    @property
    def is_default(self) -> bool:
        return self == FilterState()

    def updated(self, **changes: Any) -> "FilterState":
        return replace(self, **changes)

    def as_dict(self) -> dict[str, Any]:
        return {
            "priceRange": list(self.price_range),
            "difficultyRange": list(self.difficulty_range),
            "youthPrograms": self.youth_programs,
            "equipmentRental": self.equipment_rental,
        }
