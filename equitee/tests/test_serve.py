"""Tests for the web server launcher."""

from __future__ import annotations

from typing import Any

import pytest

from equitee.scripts import serve


@pytest.fixture()
def runs(monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, dict[str, Any]]]:
    calls: list[tuple[str, dict[str, Any]]] = []
    monkeypatch.setattr(serve.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.delenv("EQUITEE_HOST", raising=False)
    return calls


def test_serves_the_fastapi_app_with_defaults(runs: list[tuple[str, dict[str, Any]]]) -> None:
    assert serve.main([]) == 0

    app_path, options = runs[0]
    assert app_path == "equitee.main:app"
    assert options["host"] == "127.0.0.1"
    assert options["port"] == 8000
    assert options["reload"] is False


def test_port_comes_from_environment(
    runs: list[tuple[str, dict[str, Any]]], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("PORT", "9090")

    serve.main(["--host", "0.0.0.0"])

    assert runs[0][1]["port"] == 9090
    assert runs[0][1]["host"] == "0.0.0.0"


def test_invalid_port_falls_back_and_flag_wins(
    runs: list[tuple[str, dict[str, Any]]], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("PORT", "eighty")

    serve.main([])
    serve.main(["--port", "7000", "--reload"])

    assert runs[0][1]["port"] == 8000
    assert runs[1][1]["port"] == 7000
    assert runs[1][1]["reload"] is True
