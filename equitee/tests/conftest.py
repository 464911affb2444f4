"""Shared fixtures and helpers for the test suite."""

from __future__ import annotations

import json
from typing import Any, Callable, Mapping

import httpx
import pytest

from equitee.models.course import Course
from equitee.services.api_client import EquiTeeApiClient
from equitee.services.storage import InMemoryStorage

Route = Callable[[httpx.Request], httpx.Response]


def build_course(identifier: str, **overrides: Any) -> Course:
    """Return a Miami-area course with sensible defaults for ``identifier``."""

    values: dict[str, Any] = {
        "id": identifier,
        "name": f"Course {identifier}",
        "address": f"{identifier} Fairway Dr, Miami, FL",
        "lat": 25.7617,
        "lng": -80.1918,
        "green_fee_min": 40,
        "green_fee_max": 60,
        "youth_programs": False,
        "difficulty_rating": 3,
        "equipment_rental": False,
    }
    values.update(overrides)
    return Course(**values)


def course_record(identifier: str, **overrides: Any) -> dict[str, Any]:
    """Return a backend ``snake_case`` course payload."""

    record: dict[str, Any] = {
        "id": identifier,
        "name": f"Course {identifier}",
        "address": f"{identifier} Fairway Dr, Miami, FL",
        "lat": 25.7617,
        "lng": -80.1918,
        "green_fee_min": 40,
        "green_fee_max": 60,
        "youth_programs": False,
        "difficulty_rating": 3,
        "equipment_rental": False,
    }
    record.update(overrides)
    return record


def json_response(payload: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=payload)


class RecordingRouter:
    """``httpx.MockTransport`` handler dispatching on ``(method, path)``."""

    def __init__(self, routes: Mapping[tuple[str, str], Route | Any] | None = None) -> None:
        self.routes: dict[tuple[str, str], Route | Any] = dict(routes or {})
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"error": "not found"})
        if callable(handler):
            return handler(request)
        return json_response(handler)

    def bodies(self, path: str) -> list[Any]:
        return [json.loads(request.content) for request in self.requests if request.url.path == path]

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


@pytest.fixture()
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture()
def router() -> RecordingRouter:
    return RecordingRouter()


@pytest.fixture()
def api_client(router: RecordingRouter):
    client = EquiTeeApiClient(
        "http://backend.test",
        timeout=1.0,
        transport=httpx.MockTransport(router),
    )
    yield client
    client.close()
