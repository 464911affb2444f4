"""Mentors and youth programmes listed alongside courses."""
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


@dataclass(slots=True)
class Mentor:
    id: str
    user_id: str
    bio: str = ""
    experience_years: float = 0.0
    hourly_rate: float = 0.0
    available: bool = False
    specialties: list[str] = field(default_factory=list)
    certifications: list[str] = field(default_factory=list)
    location_radius: float = 0.0
    contact_info: dict[str, Any] = field(default_factory=dict)
    user_name: str | None = None
    user_email: str | None = None
    user_location: Coordinate | None = None
    distance_miles: float | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "bio": self.bio,
            "experienceYears": self.experience_years,
            "hourlyRate": self.hourly_rate,
            "available": self.available,
            "specialties": list(self.specialties),
            "certifications": list(self.certifications),
            "locationRadius": self.location_radius,
            "contactInfo": dict(self.contact_info),
            "userName": self.user_name,
            "userEmail": self.user_email,
            "userLocation": self.user_location.as_dict() if self.user_location else None,
            "distanceMiles": self.distance_miles,
        }

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Mentor":
        user = data.get("user")
        user_location = None
        if isinstance(user, Mapping):
            user_location = Coordinate(
                lat=number_or(user.get("location_lat")),
                lng=number_or(user.get("location_lng")),
            )
        else:
            user = {}

        return cls(
            id=record_id(data),
            user_id=text_value(data.get("user_id")),
            bio=text_value(data.get("bio")),
            experience_years=number_or(data.get("experience_years")),
            hourly_rate=number_or(data.get("hourly_rate")),
            available=flag(data.get("available")),
            specialties=listify_strings(data.get("specialties")),
            certifications=listify_strings(data.get("certifications")),
            location_radius=number_or(data.get("location_radius")),
            contact_info=mapping_value(data.get("contact_info")),
            user_name=optional_str(user.get("name")),
            user_email=optional_str(user.get("email")),
            user_location=user_location,
            distance_miles=optional_number(data.get("distance_miles")),
        )


@dataclass(slots=True)
class YouthProgram:
    id: str
    name: str
    organization: str
    location_lat: float = 0.0
    location_lng: float = 0.0
    address: str | None = None
    age_min: int = 5
    age_max: int = 18
    cost_per_session: float = 0.0
    schedule_days: list[str] = field(default_factory=list)
    description: str = ""
    equipment_provided: bool = False
    transportation_available: bool = False
    contact_info: dict[str, Any] = field(default_factory=dict)
    distance_miles: float | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "organization": self.organization,
            "locationLat": self.location_lat,
            "locationLng": self.location_lng,
            "address": self.address,
            "ageMin": self.age_min,
            "ageMax": self.age_max,
            "costPerSession": self.cost_per_session,
            "scheduleDays": list(self.schedule_days),
            "description": self.description,
            "equipmentProvided": self.equipment_provided,
            "transportationAvailable": self.transportation_available,
            "contactInfo": dict(self.contact_info),
            "distanceMiles": self.distance_miles,
        }

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "YouthProgram":
        # Zero ages are treated as missing, matching the backend's sparse records.
        return cls(
            id=record_id(data),
            name=text_value(data.get("name")),
            organization=text_value(data.get("organization")),
            location_lat=number_or(data.get("location_lat")),
            location_lng=number_or(data.get("location_lng")),
            address=optional_str(data.get("address")),
            age_min=int(number_or(data.get("age_min"))) or 5,
            age_max=int(number_or(data.get("age_max"))) or 18,
            cost_per_session=number_or(data.get("cost_per_session")),
            schedule_days=listify_strings(data.get("schedule_days")),
            description=text_value(data.get("description")),
            equipment_provided=flag(data.get("equipment_provided")),
            transportation_available=flag(data.get("transportation_available")),
            contact_info=mapping_value(data.get("contact_info")),
            distance_miles=optional_number(data.get("distance_miles")),
        )
