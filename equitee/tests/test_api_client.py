"""Tests for the backend HTTP client using ``httpx.MockTransport``."""

from __future__ import annotations

import httpx
import pytest

from equitee.models.location import Coordinate
from equitee.models.session import AuthSession
from equitee.services.api_client import ApiError, EquiTeeApiClient
from equitee.tests.conftest import RecordingRouter, course_record, json_response


def test_fetch_courses_translates_snake_case(api_client: EquiTeeApiClient, router: RecordingRouter) -> None:
    router.routes[("GET", "/courses")] = [
        course_record("1", name="Red Reef Golf Course", youth_programs=True, contact_info={"phone": "555"}),
    ]

    courses = api_client.fetch_courses()

    assert len(courses) == 1
    course = courses[0]
    assert course.name == "Red Reef Golf Course"
    assert course.youth_programs is True
    assert course.average_price == 50
    assert course.as_dict()["contactInfo"] == {"phone": "555"}


def test_http_errors_raise_api_error_with_status(api_client: EquiTeeApiClient, router: RecordingRouter) -> None:
    router.routes[("GET", "/courses")] = lambda request: json_response({"error": "boom"}, status_code=500)

    with pytest.raises(ApiError) as excinfo:
        api_client.fetch_courses()

    assert excinfo.value.status_code == 500


def test_transport_errors_raise_api_error_without_status() -> None:
    def _fail(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = EquiTeeApiClient("http://backend.test", transport=httpx.MockTransport(_fail))

    with pytest.raises(ApiError) as excinfo:
        client.fetch_courses()

    assert excinfo.value.status_code is None


def test_malformed_json_raises_api_error(api_client: EquiTeeApiClient, router: RecordingRouter) -> None:
    router.routes[("GET", "/courses")] = lambda request: httpx.Response(200, content=b"<html>")

    with pytest.raises(ApiError):
        api_client.fetch_courses()


def test_search_courses_sends_backend_filters(api_client: EquiTeeApiClient, router: RecordingRouter) -> None:
    router.routes[("GET", "/courses")] = []

    api_client.search_courses(lat=25.5, lng=-80.0, radius=25, youth_programs=True, equipment_rental=False)

    params = dict(router.requests[0].url.params)
    assert params == {
        "lat": "25.5",
        "lng": "-80",
        "radius": "25",
        "youth_programs": "true",
        "equipment_rental": "false",
    }


def test_equipment_owner_names(api_client: EquiTeeApiClient, router: RecordingRouter) -> None:
    router.routes[("GET", "/equipment")] = [
        {"id": "e1", "title": "Putter", "equipment_type": "putter", "user_id": "abcdef123456"},
        {"id": "e2", "title": "Bag", "equipment_type": "bag"},
    ]

    items = api_client.fetch_equipment(equipment_type="putter", max_price=50)

    assert [item.user_name for item in items] == ["User abcdef12", "Anonymous"]
    assert dict(router.requests[0].url.params) == {"equipment_type": "putter", "max_price": "50"}


def test_demographics_by_zip_returns_none_on_404(api_client: EquiTeeApiClient, router: RecordingRouter) -> None:
    assert api_client.fetch_demographics_by_zip("00000") is None


def test_demographics_accept_camel_case(api_client: EquiTeeApiClient, router: RecordingRouter) -> None:
    router.routes[("GET", "/demographics/heatmap")] = [
        {"zipCode": "33101", "medianIncome": 45000, "population": 12000, "county": "Miami-Dade"},
    ]

    records = api_client.fetch_demographics()

    assert records[0].id == "demo_33101"
    assert records[0].median_income == 45000


def test_map_config_reads_center_object(api_client: EquiTeeApiClient, router: RecordingRouter) -> None:
    router.routes[("GET", "/map/config")] = {
        "accessToken": "pk.test",
        "style": "mapbox://styles/mapbox/streets-v12",
        "center": {"lat": 26.0, "lng": -80.5},
        "zoom": 11,
    }

    config = api_client.fetch_map_config()

    assert config.access_token == "pk.test"
    assert config.center == Coordinate(lat=26.0, lng=-80.5)
    assert config.zoom == 11


def test_nearby_mentors_use_nearby_path(api_client: EquiTeeApiClient, router: RecordingRouter) -> None:
    router.routes[("GET", "/mentors/nearby")] = [
        {"id": "m1", "user_id": "u1", "user": {"name": "Pat", "location_lat": 25.8, "location_lng": -80.2}},
    ]

    mentors = api_client.fetch_mentors(Coordinate(lat=25.76, lng=-80.19), radius=10)

    assert mentors[0].user_name == "Pat"
    assert dict(router.requests[0].url.params) == {"lat": "25.76", "lng": "-80.19", "radius": "10"}


def test_youth_programs_default_age_range(api_client: EquiTeeApiClient, router: RecordingRouter) -> None:
    router.routes[("GET", "/youth-programs")] = [{"id": "p1", "name": "First Tee", "age_min": 0}]

    programs = api_client.fetch_youth_programs()

    assert (programs[0].age_min, programs[0].age_max) == (5, 18)


def test_send_chat_message_starts_conversation(api_client: EquiTeeApiClient, router: RecordingRouter) -> None:
    router.routes[("POST", "/chat/start")] = {"conversationId": "c-1", "message": "Hi!", "options": ["Yes", "No"]}
    router.routes[("POST", "/chat/message")] = {"message": "Great", "options": ["Next"]}

    exchange = api_client.send_chat_message(None, "Hello")

    assert exchange.conversation_id == "c-1"
    assert exchange.greeting is not None and exchange.greeting.options == ["Yes", "No"]
    assert exchange.reply is not None and exchange.reply.message == "Great"
    assert router.bodies("/chat/start") == [{"userLocation": {"lat": 25.7617, "lng": -80.1918}}]
    assert router.bodies("/chat/message") == [{"conversationId": "c-1", "message": "Hello"}]


def test_blank_first_message_only_starts_conversation(
    api_client: EquiTeeApiClient, router: RecordingRouter
) -> None:
    router.routes[("POST", "/chat/start")] = {"conversationId": "c-2", "message": "Hi!"}

    exchange = api_client.send_chat_message(None, "   ")

    assert exchange.reply is None
    assert router.paths() == ["/chat/start"]


def test_start_chat_without_conversation_id_fails(api_client: EquiTeeApiClient, router: RecordingRouter) -> None:
    router.routes[("POST", "/chat/start")] = {"message": "Hi!"}

    with pytest.raises(ApiError):
        api_client.start_chat()


def test_ai_query_resolves_course_citations(api_client: EquiTeeApiClient, router: RecordingRouter) -> None:
    router.routes[("POST", "/ai/query")] = {
        "success": True,
        "message": "Try Red Reef Golf Course for a relaxed round, or Osprey Point.",
        "followUpQuestions": ["What about lessons?"],
    }
    router.routes[("GET", "/courses")] = [
        course_record("1", name="Red Reef Golf Course"),
        course_record("2", name="Osprey Point Golf Course"),
        course_record("3", name="Crandon Golf"),
    ]

    result = api_client.send_ai_query("Where should I play?", Coordinate(lat=26.0, lng=-80.1))

    assert result.follow_up_questions == ["What about lessons?"]
    assert [course.id for course in result.course_citations] == ["1", "2"]
    assert router.bodies("/ai/query") == [
        {"query": "Where should I play?", "userLocation": {"lat": 26.0, "lng": -80.1}}
    ]


def test_ai_query_tolerates_citation_lookup_failure(
    api_client: EquiTeeApiClient, router: RecordingRouter
) -> None:
    router.routes[("POST", "/ai/query")] = {"message": "Red Reef Golf Course is lovely."}
    router.routes[("GET", "/courses")] = lambda request: json_response({}, status_code=503)

    result = api_client.send_ai_query("Anything nearby?")

    assert result.success is True
    assert result.course_citations == []


def test_session_token_is_sent_as_bearer_header(router: RecordingRouter) -> None:
    router.routes[("GET", "/courses")] = []
    client = EquiTeeApiClient(
        "http://backend.test",
        session=AuthSession(name="Sam", access_token="secret"),
        transport=httpx.MockTransport(router),
    )

    client.fetch_courses()

    assert router.requests[0].headers["Authorization"] == "Bearer secret"


def test_check_connection_counts_unauthorised_as_working(
    api_client: EquiTeeApiClient, router: RecordingRouter
) -> None:
    router.routes[("GET", "/courses")] = []
    router.routes[("GET", "/auth/login")] = lambda request: json_response({}, status_code=401)

    report = api_client.check_connection(["/courses", "/auth/login", "/missing"])

    assert report.base_url == "http://backend.test"
    assert report.working_endpoints == ["/courses", "/auth/login"]
    assert report.failed_endpoints == ["/missing (404)"]


def test_base_url_comes_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EQUITEE_API_URL", "https://api.example.com/")

    client = EquiTeeApiClient(transport=httpx.MockTransport(lambda request: json_response([])))

    assert client.base_url == "https://api.example.com"


def test_course_records_without_id_are_skipped(
    api_client: EquiTeeApiClient, router: RecordingRouter, caplog: pytest.LogCaptureFixture
) -> None:
    nameless = course_record("x")
    del nameless["id"]
    router.routes[("GET", "/courses")] = [course_record("1"), nameless, course_record("2"), {**nameless}]

    with caplog.at_level("WARNING", logger="equitee.services.api_client"):
        courses = api_client.fetch_courses()

    assert [course.id for course in courses] == ["1", "2"]
    assert any(getattr(record, "event", None) == "api.course_missing_id" for record in caplog.records)


def test_accessibility_score_path_and_value(api_client: EquiTeeApiClient, router: RecordingRouter) -> None:
    router.routes[("GET", "/demographics/accessibility-score/25.5/-80")] = {"score": "72.5"}

    assert api_client.fetch_accessibility_score(25.5, -80.0) == 72.5


def test_conversation_history_translates_snake_case(api_client: EquiTeeApiClient, router: RecordingRouter) -> None:
    router.routes[("GET", "/conversations")] = [
        {"id": "c1", "user_id": "u1", "current_step": "skill", "created_at": "2024-03-01T12:00:00Z"},
    ]
    router.routes[("GET", "/chat/conversation/c1/history")] = [
        {"id": 7, "conversation_id": "c1", "sender": "bot", "message": "Hi", "message_type": "options"},
    ]

    conversation = api_client.fetch_conversations()[0].as_dict()
    record = api_client.fetch_chat_history("c1")[0].as_dict()

    assert conversation["userId"] == "u1"
    assert conversation["currentStep"] == "skill"
    assert conversation["createdAt"] == "2024-03-01T12:00:00+00:00"
    assert conversation["updatedAt"] is None
    assert record == {
        "id": "7",
        "conversationId": "c1",
        "sender": "bot",
        "message": "Hi",
        "messageType": "options",
        "metadata": {},
        "createdAt": None,
    }
