from __future__ import annotations

from datetime import datetime, timezone

from equitee.models.chat import ChatConversation, ChatMessage, CourseRecommendation
from equitee.models.community import Mentor
from equitee.models.course import Course
from equitee.models.location import Coordinate, UserLocation
from equitee.models.map import DEFAULT_CENTER, MapConfig
from equitee.models.parsing import number_or, optional_number, parse_timestamp
from equitee.tests.conftest import build_course, course_record


def test_course_from_api_tolerates_missing_and_bad_values() -> None:
    course = Course.from_api({"id": 5, "name": " Links ", "green_fee_min": "n/a", "youth_programs": "true"})

    assert course.id == "5"
    assert course.name == "Links"
    assert course.green_fee_min == 0.0
    assert course.youth_programs is True
    assert course.website is None


def test_course_document_round_trip_keeps_camel_case_fields() -> None:
    course = Course.from_api(course_record("9", website="https://golf.example"))

    assert Course.from_document(course.as_dict()) == course


def test_coordinate_from_mapping_rejects_incomplete_values() -> None:
    assert Coordinate.from_mapping({"lat": "25.5", "lng": -80}) == Coordinate(lat=25.5, lng=-80.0)
    assert Coordinate.from_mapping({"lat": 25.5}) is None
    assert Coordinate.from_mapping({"lat": True, "lng": 1}) is None
    assert Coordinate.from_mapping("25.5,-80") is None


def test_user_location_payload_includes_zip_only_when_known() -> None:
    position = Coordinate(lat=1.0, lng=2.0)

    assert UserLocation(position).as_dict() == {"lat": 1.0, "lng": 2.0}
    assert UserLocation(position, "33101").as_dict()["zipCode"] == "33101"


def test_map_config_defaults_for_missing_keys() -> None:
    config = MapConfig.from_api({"center": "nowhere"})

    assert config.center == DEFAULT_CENTER
    assert config.zoom == 10.0
    assert config.style == "mapbox://styles/mapbox/light-v11"


def test_mentor_reads_nested_user() -> None:
    mentor = Mentor.from_api(
        {
            "id": "m1",
            "user_id": "u1",
            "specialties": ["putting", ""],
            "user": {"name": "Pat", "email": "pat@example.com", "location_lat": 25.8, "location_lng": -80.2},
        }
    )

    assert mentor.user_name == "Pat"
    assert mentor.specialties == ["putting"]
    assert mentor.as_dict()["userLocation"] == {"lat": 25.8, "lng": -80.2}


def test_chat_message_document_round_trip() -> None:
    course = build_course("1")
    message = ChatMessage(
        id="msg_1",
        type="bot",
        content="Here you go",
        timestamp=datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
        options=["More"],
        recommendations=[
            CourseRecommendation(course=course, reason="Cheap", priority=1, estimated_cost=45, travel_time="10 min")
        ],
        citations=[course],
    )

    document = message.to_document()
    restored = ChatMessage.from_document(document)

    assert document["courseCitations"][0]["id"] == "1"
    assert restored == message


def test_conversation_parses_timestamps() -> None:
    conversation = ChatConversation.from_api(
        {"id": "c1", "user_id": "u1", "created_at": "2024-03-01T12:00:00Z", "conversation_state": None}
    )

    assert conversation.created_at == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
    assert conversation.conversation_state == {}


def test_parsing_helpers() -> None:
    assert number_or(float("inf"), 3.0) == 3.0
    assert optional_number("abc") is None
    assert optional_number("4.5") == 4.5
    assert parse_timestamp("not a date") is None
    assert parse_timestamp(datetime(2024, 1, 1)).tzinfo is timezone.utc
