"""HTTP client for the EquiTee backend REST API."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
import logging
from typing import Any

import httpx

from equitee.models.chat import ChatConversation, ChatMessageRecord
from equitee.models.community import Mentor, YouthProgram
from equitee.models.course import Course, Equipment
from equitee.models.demographic import Demographic
from equitee.models.location import Coordinate
from equitee.models.map import DEFAULT_CENTER, MapConfig
from equitee.models.parsing import listify_strings, number_or, optional_str, text_value
from equitee.models.session import AuthSession
from equitee.utils.env import load_headers_from_env, load_timeout_from_env, load_url_from_env
from equitee.utils.text import find_course_citations

LOGGER = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:3001"

CONNECTIVITY_ENDPOINTS: tuple[str, ...] = (
    "/courses",
    "/equipment",
    "/map/config",
    "/demographics/heatmap",
    "/mentors",
    "/mentors/nearby",
    "/youth-programs",
    "/youth-programs/nearby",
    "/chat/start",
    "/chat/message",
    "/ai/query",
    "/auth/login",
    "/community/golf-groups",
)


class ApiError(RuntimeError):
    """Raised when a backend request fails for any reason.

    ``status_code`` is set for HTTP error responses and ``None`` for transport
    failures or unreadable payloads.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class ChatStart:
    conversation_id: str
    message: str
    options: list[str] = field(default_factory=list)
    mode: str = "chat"


@dataclass(slots=True)
class ChatReply:
    message: str
    options: list[str] = field(default_factory=list)
    recommendations: list[dict[str, Any]] = field(default_factory=list)


@dataclass(slots=True)
class ChatExchange:
    """Outcome of :meth:`EquiTeeApiClient.send_chat_message`."""

    conversation_id: str
    greeting: ChatStart | None = None
    reply: ChatReply | None = None


@dataclass(slots=True)
class AIQueryResult:
    success: bool
    message: str
    follow_up_questions: list[str] = field(default_factory=list)
    course_citations: list[Course] = field(default_factory=list)


@dataclass(slots=True)
class ConnectionReport:
    base_url: str
    working_endpoints: list[str]
    failed_endpoints: list[str]


class EquiTeeApiClient:
    """Thin request/response wrapper around the backend endpoints.

    Every call is a single best-effort request: nothing is cached and nothing is
    retried here. Failures surface as :class:`ApiError`.
    """

    _DEFAULT_HEADERS: Mapping[str, str] = {
        "Accept": "application/json",
        "Content-Type": "application/json",
        "User-Agent": "EquiTeeClient/1.0",
    }
    _BASE_URL_ENV_VAR = "EQUITEE_API_URL"
    _HEADERS_ENV_VAR = "EQUITEE_API_HEADERS"
    _TIMEOUT_ENV_VAR = "EQUITEE_API_TIMEOUT"
    _DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        base_url: str | None = None,
        *,
        session: AuthSession | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        client: httpx.Client | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or load_url_from_env(self._BASE_URL_ENV_VAR, DEFAULT_API_URL)).rstrip("/")
        self._headers = self._build_headers(headers)
        self._timeout = self._resolve_timeout(timeout)
        self._client = client or httpx.Client(
            headers=self._headers,
            timeout=self._timeout,
            transport=transport,
        )
        self.session = session

    @property
    def base_url(self) -> str:
        return self._base_url

    def close(self) -> None:
        self._client.close()

    # --- courses ----------------------------------------------------------------

    def fetch_courses(self) -> list[Course]:
        return self._courses_from(self._get_list("/courses"))

    def fetch_course(self, course_id: str) -> Course:
        payload = self._get_json(f"/courses/{course_id}")
        if not isinstance(payload, Mapping):
            raise ApiError(f"Unexpected course payload for {course_id}")
        return Course.from_api(payload)

    def search_courses(
        self,
        *,
        lat: float | None = None,
        lng: float | None = None,
        radius: float | None = None,
        price: float | None = None,
        youth_programs: bool | None = None,
        equipment_rental: bool | None = None,
        max_difficulty: float | None = None,
    ) -> list[Course]:
        """Ask the backend to filter courses server-side."""

        params = _query_params(
            lat=lat,
            lng=lng,
            radius=radius,
            price=price,
            youth_programs=youth_programs,
            equipment_rental=equipment_rental,
            max_difficulty=max_difficulty,
        )
        return self._courses_from(self._get_list("/courses", params=params))

    # --- equipment --------------------------------------------------------------

    def fetch_equipment(
        self,
        *,
        equipment_type: str | None = None,
        condition: str | None = None,
        status: str | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
    ) -> list[Equipment]:
        params = _query_params(
            equipment_type=equipment_type,
            condition=condition,
            status=status,
            max_price=max_price,
            min_price=min_price,
        )
        return [Equipment.from_api(item) for item in self._get_list("/equipment", params=params)]

    # --- map and demographics ---------------------------------------------------

    def fetch_map_config(self) -> MapConfig:
        payload = self._get_json("/map/config")
        if not isinstance(payload, Mapping):
            raise ApiError("Unexpected map configuration payload")
        return MapConfig.from_api(payload)

    def fetch_demographics(self) -> list[Demographic]:
        return [Demographic.from_api(item) for item in self._get_list("/demographics/heatmap")]

    def fetch_demographics_by_zip(self, zip_code: str) -> Demographic | None:
        """Return the demographic record for ``zip_code`` or ``None`` when unknown."""

        try:
            payload = self._get_json(f"/demographics/zip/{zip_code}")
        except ApiError as exc:
            if exc.status_code == 404:
                LOGGER.info(
                    "No demographic data for zip code",
                    extra={"event": "api.demographics_missing", "zip_code": zip_code},
                )
                return None
            raise
        if not isinstance(payload, Mapping):
            raise ApiError(f"Unexpected demographic payload for {zip_code}")
        return Demographic.from_api(payload)

    def fetch_accessibility_score(self, lat: float, lng: float) -> float:
        payload = self._get_json(
            f"/demographics/accessibility-score/{_format_number(lat)}/{_format_number(lng)}"
        )
        if not isinstance(payload, Mapping):
            raise ApiError("Unexpected accessibility score payload")
        return number_or(payload.get("score"))

    # --- community ----------------------------------------------------------------

    def fetch_mentors(self, near: Coordinate | None = None, *, radius: float | None = None) -> list[Mentor]:
        path, params = _nearby_request("/mentors", near, radius)
        return [Mentor.from_api(item) for item in self._get_list(path, params=params)]

    def fetch_youth_programs(
        self, near: Coordinate | None = None, *, radius: float | None = None
    ) -> list[YouthProgram]:
        path, params = _nearby_request("/youth-programs", near, radius)
        return [YouthProgram.from_api(item) for item in self._get_list(path, params=params)]

    # --- chat -------------------------------------------------------------------

    def fetch_conversations(self) -> list[ChatConversation]:
        return [ChatConversation.from_api(item) for item in self._get_list("/conversations")]

    def fetch_chat_history(self, conversation_id: str) -> list[ChatMessageRecord]:
        path = f"/chat/conversation/{conversation_id}/history"
        return [ChatMessageRecord.from_api(item) for item in self._get_list(path)]

    def start_chat(self, user_location: Coordinate | None = None) -> ChatStart:
        location = user_location or DEFAULT_CENTER
        payload = self._post_json("/chat/start", {"userLocation": location.as_dict()})
        conversation_id = optional_str(payload.get("conversationId"))
        if not conversation_id:
            raise ApiError("Chat start response did not include a conversation id")
        return ChatStart(
            conversation_id=conversation_id,
            message=text_value(payload.get("message")),
            options=listify_strings(payload.get("options")),
            mode=text_value(payload.get("mode")) or "chat",
        )

    def post_chat_message(self, conversation_id: str, message: str) -> ChatReply:
        payload = self._post_json(
            "/chat/message",
            {"conversationId": conversation_id, "message": message},
        )
        recommendations = payload.get("recommendations")
        return ChatReply(
            message=text_value(payload.get("message")),
            options=listify_strings(payload.get("options")),
            recommendations=[dict(item) for item in recommendations if isinstance(item, Mapping)]
            if isinstance(recommendations, list)
            else [],
        )

    def send_chat_message(
        self,
        conversation_id: str | None,
        message: str,
        *,
        user_location: Coordinate | None = None,
    ) -> ChatExchange:
        """Send ``message`` to a backend conversation, starting one when needed.

        A new conversation returns the backend greeting; the user's first message
        is only posted when it is not blank.
        """

        if conversation_id:
            reply = self.post_chat_message(conversation_id, message)
            return ChatExchange(conversation_id=conversation_id, reply=reply)

        greeting = self.start_chat(user_location)
        LOGGER.info(
            "Chat conversation started",
            extra={"event": "api.chat_started", "conversation_id": greeting.conversation_id},
        )
        reply = None
        if message.strip():
            reply = self.post_chat_message(greeting.conversation_id, message)
        return ChatExchange(conversation_id=greeting.conversation_id, greeting=greeting, reply=reply)

    def send_ai_query(self, query: str, user_location: Coordinate | None = None) -> AIQueryResult:
        """Ask the AI consultant a question and resolve the courses it mentions."""

        location = user_location or DEFAULT_CENTER
        payload = self._post_json("/ai/query", {"query": query, "userLocation": location.as_dict()})
        message = text_value(payload.get("message"))
        success = payload.get("success")
        return AIQueryResult(
            success=True if success is None else bool(success),
            message=message,
            follow_up_questions=listify_strings(payload.get("followUpQuestions")),
            course_citations=self._find_citations(message),
        )

    # --- diagnostics --------------------------------------------------------------

    def check_connection(self, endpoints: Sequence[str] = CONNECTIVITY_ENDPOINTS) -> ConnectionReport:
        """Probe each endpoint; ``401`` counts as reachable."""

        working: list[str] = []
        failed: list[str] = []
        for endpoint in endpoints:
            try:
                response = self._client.get(self._url(endpoint), headers=self._auth_headers())
            except httpx.HTTPError:
                failed.append(f"{endpoint} (network error)")
                continue
            if response.is_success or response.status_code == 401:
                working.append(endpoint)
            else:
                failed.append(f"{endpoint} ({response.status_code})")
        return ConnectionReport(base_url=self._base_url, working_endpoints=working, failed_endpoints=failed)

    # --- internals ----------------------------------------------------------------

    def _courses_from(self, items: list[Mapping[str, Any]]) -> list[Course]:
        """Build courses, skipping records the backend sent without an id."""

        courses: list[Course] = []
        skipped = 0
        for item in items:
            course = Course.from_api(item)
            if not course.id:
                skipped += 1
                continue
            courses.append(course)
        if skipped:
            LOGGER.warning(
                "Skipped %d course records without an id",
                skipped,
                extra={"event": "api.course_missing_id", "skipped": skipped},
            )
        return courses

    def _find_citations(self, message: str) -> list[Course]:
        if not message:
            return []
        try:
            courses = self.fetch_courses()
        except ApiError as exc:
            LOGGER.warning(
                "Course citations unavailable: %s",
                exc,
                extra={"event": "api.citations_failed"},
            )
            return []
        return find_course_citations(message, courses)

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    def _auth_headers(self) -> dict[str, str]:
        return self.session.bearer_header if self.session else {}

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json_body: Any = None,
    ) -> Any:
        url = self._url(path)
        try:
            response = self._client.request(
                method,
                url,
                params=params or None,
                json=json_body,
                headers=self._auth_headers(),
            )
        except httpx.HTTPError as exc:
            LOGGER.warning(
                "Request to %s failed: %s",
                path,
                exc,
                extra={"event": "api.transport_error", "path": path},
            )
            raise ApiError(f"Request to {path} failed: {exc}") from exc

        if not response.is_success:
            LOGGER.warning(
                "Request to %s returned HTTP %s",
                path,
                response.status_code,
                extra={"event": "api.http_error", "path": path, "status_code": response.status_code},
            )
            raise ApiError(f"Request to {path} failed: {response.status_code}", response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(f"Malformed JSON from {path}", response.status_code) from exc

    def _get_json(self, path: str, *, params: Mapping[str, str] | None = None) -> Any:
        return self._request("GET", path, params=params)

    def _get_list(self, path: str, *, params: Mapping[str, str] | None = None) -> list[Mapping[str, Any]]:
        payload = self._get_json(path, params=params)
        if not isinstance(payload, list):
            raise ApiError(f"Expected a list from {path}")
        return [item for item in payload if isinstance(item, Mapping)]

    def _post_json(self, path: str, body: Mapping[str, Any]) -> Mapping[str, Any]:
        payload = self._request("POST", path, json_body=dict(body))
        if not isinstance(payload, Mapping):
            raise ApiError(f"Expected an object from {path}")
        return payload

    def _build_headers(self, headers: Mapping[str, str] | None) -> dict[str, str]:
        """Combine default, environment, and user-specified headers."""

        combined: dict[str, str] = dict(self._DEFAULT_HEADERS)
        combined.update(load_headers_from_env(self._HEADERS_ENV_VAR))
        if headers:
            combined.update({str(key): str(value) for key, value in headers.items()})
        return combined

    def _resolve_timeout(self, timeout: float | None) -> float:
        if timeout is not None:
            return float(timeout)
        return load_timeout_from_env(self._TIMEOUT_ENV_VAR, self._DEFAULT_TIMEOUT)


def _format_number(value: float) -> str:
    number = float(value)
    return str(int(number)) if number.is_integer() else repr(number)


def _query_params(**values: Any) -> dict[str, str]:
    """Drop unset values and render the rest the way the backend parses them."""

    params: dict[str, str] = {}
    for key, value in values.items():
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            params[key] = "true" if value else "false"
        elif isinstance(value, (int, float)):
            params[key] = _format_number(value)
        else:
            params[key] = str(value)
    return params


def _nearby_request(
    path: str, near: Coordinate | None, radius: float | None
) -> tuple[str, dict[str, str]]:
    if near is None:
        return path, {}
    return f"{path}/nearby", _query_params(lat=near.lat, lng=near.lng, radius=radius or None)


__all__ = [
    "AIQueryResult",
    "ApiError",
    "ChatExchange",
    "ChatReply",
    "ChatStart",
    "ConnectionReport",
    "EquiTeeApiClient",
]
