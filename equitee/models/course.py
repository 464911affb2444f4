"""Course and equipment listings fetched from the EquiTee backend."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from equitee.models.location import Coordinate
from equitee.models.parsing import (
    flag,
    listify_strings,
    mapping_value,
    number_or,
    optional_number,
    optional_str,
    record_id,
    text_value,
)


EQUIPMENT_TYPES = ("driver", "woods", "irons", "wedges", "putter", "bag")
EQUIPMENT_CONDITIONS = ("new", "excellent", "good", "fair")
EQUIPMENT_STATUSES = ("available", "pending", "donated", "sold")


@dataclass(slots=True, frozen=True)
class Course:
    """Snapshot of a golf course record. Never mutated after it is fetched."""

    id: str
    name: str
    address: str
    lat: float
    lng: float
    green_fee_min: float = 0.0
    green_fee_max: float = 0.0
    youth_programs: bool = False
    difficulty_rating: float = 0.0
    equipment_rental: bool = False
    contact_info: Mapping[str, Any] | None = field(default=None, compare=False)
    website: str | None = None

    @property
    def average_price(self) -> float:
        return (self.green_fee_min + self.green_fee_max) / 2

    @property
    def position(self) -> Coordinate:
        return Coordinate(lat=self.lat, lng=self.lng)

    def as_dict(self) -> dict[str, Any]:
        """Serialise using the camelCase field names the map UI expects."""

        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "lat": self.lat,
            "lng": self.lng,
            "greenFeeMin": self.green_fee_min,
            "greenFeeMax": self.green_fee_max,
            "youthPrograms": self.youth_programs,
            "difficultyRating": self.difficulty_rating,
            "equipmentRental": self.equipment_rental,
        }
        if self.contact_info is not None:
            payload["contactInfo"] = dict(self.contact_info)
        if self.website:
            payload["website"] = self.website
        return payload

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Course":
        """Translate a backend ``snake_case`` course record."""

        contact = data.get("contact_info")
        return cls(
            id=record_id(data),
            name=text_value(data.get("name")),
            address=text_value(data.get("address")),
            lat=number_or(data.get("lat")),
            lng=number_or(data.get("lng")),
            green_fee_min=number_or(data.get("green_fee_min")),
            green_fee_max=number_or(data.get("green_fee_max")),
            youth_programs=flag(data.get("youth_programs")),
            difficulty_rating=number_or(data.get("difficulty_rating")),
            equipment_rental=flag(data.get("equipment_rental")),
            contact_info=mapping_value(contact) if contact is not None else None,
            website=optional_str(data.get("website")),
        )

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "Course":
        """Rebuild a course from its :meth:`as_dict` form, e.g. a stored transcript."""

        contact = data.get("contactInfo")
        return cls(
            id=record_id(data),
            name=text_value(data.get("name")),
            address=text_value(data.get("address")),
            lat=number_or(data.get("lat")),
            lng=number_or(data.get("lng")),
            green_fee_min=number_or(data.get("greenFeeMin")),
            green_fee_max=number_or(data.get("greenFeeMax")),
            youth_programs=flag(data.get("youthPrograms")),
            difficulty_rating=number_or(data.get("difficultyRating")),
            equipment_rental=flag(data.get("equipmentRental")),
            contact_info=mapping_value(contact) if contact is not None else None,
            website=optional_str(data.get("website")),
        )


@dataclass(slots=True)
class Equipment:
    """Marketplace listing for donated or second-hand golf equipment."""

    id: str
    title: str
    equipment_type: str
    condition: str
    status: str
    description: str = ""
    age_range: str = ""
    price: float = 0.0
    images: list[str] = field(default_factory=list)
    user_id: str = "anonymous"
    user_name: str = "Anonymous"
    location_lat: float | None = None
    location_lng: float | None = None
    distance_miles: float | None = None

    @property
    def position(self) -> Coordinate | None:
        if self.location_lat is None or self.location_lng is None:
            return None
        return Coordinate(lat=self.location_lat, lng=self.location_lng)

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "equipmentType": self.equipment_type,
            "condition": self.condition,
            "ageRange": self.age_range,
            "price": self.price,
            "images": list(self.images),
            "status": self.status,
            "userName": self.user_name,
            "userId": self.user_id,
            "locationLat": self.location_lat,
            "locationLng": self.location_lng,
        }
        if self.distance_miles is not None:
            payload["distanceMiles"] = self.distance_miles
        return payload

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Equipment":
        owner = optional_str(data.get("user_id"))
        return cls(
            id=record_id(data),
            title=text_value(data.get("title")),
            description=text_value(data.get("description")),
            equipment_type=text_value(data.get("equipment_type")),
            condition=text_value(data.get("condition")),
            status=text_value(data.get("status")),
            age_range=text_value(data.get("age_range")),
            price=number_or(data.get("price")),
            images=listify_strings(data.get("images")),
            user_id=owner or "anonymous",
            user_name=f"User {owner[:8]}" if owner else "Anonymous",
            location_lat=optional_number(data.get("location_lat")),
            location_lng=optional_number(data.get("location_lng")),
        )
