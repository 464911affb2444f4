"""FastAPI web application exposing EquiTee course discovery locally."""

from __future__ import annotations

from functools import lru_cache
import logging
import os
from typing import Any

from fastapi import Body, Depends, FastAPI, HTTPException, Query
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from equitee.models.filters import FilterState
from equitee.models.location import Coordinate
from equitee.models.session import AuthSession
from equitee.services.api_client import ApiError, EquiTeeApiClient
from equitee.services.chat import ChatSession
from equitee.services.discovery import CourseDiscovery
from equitee.services.distance import format_distance, with_equipment_distances
from equitee.services.geolocation import GeolocationProvider, StaticPositionSource, ZippopotamLookup
from equitee.services.income import income_legend, load_zip_boundaries
from equitee.services.profile import ProfileStore
from equitee.services.recommendations import build_journey
from equitee.services.storage import KeyValueStorage, chat_key, create_storage
from equitee.services.wizard import OnboardingWizard, QuickStartWizard, Wizard, WizardValidationError

app = FastAPI(title="EquiTee Course Discovery")

logger = logging.getLogger(__name__)


def _build_debug_detail(exc: Exception) -> dict[str, Any]:
    """Return a serialisable mapping describing ``exc`` for debugging."""

    message = str(exc).strip()
    detail: dict[str, Any] = {
        "type": type(exc).__name__,
        "message": message or "No exception message provided.",
    }
    status_code = getattr(exc, "status_code", None)
    if status_code is not None:
        detail["status_code"] = status_code
    return detail


def _upstream_failure(exc: ApiError, message: str, event: str) -> HTTPException:
    logger.exception(message, extra={"event": event})
    return HTTPException(
        status_code=502,
        detail={"message": message, "debug": _build_debug_detail(exc)},
    )


@app.get("/healthz")
def healthz():
    return {"ok": True}


# --- dependencies ----------------------------------------------------------------


@lru_cache(maxsize=1)
def _cached_storage() -> KeyValueStorage:
    return create_storage()


def get_storage() -> KeyValueStorage:
    """FastAPI dependency returning the shared key/value storage."""

    return _cached_storage()


@lru_cache(maxsize=1)
def _cached_api_client() -> EquiTeeApiClient:
    token = (os.getenv("EQUITEE_ACCESS_TOKEN") or "").strip()
    session = AuthSession(access_token=token) if token else None
    return EquiTeeApiClient(session=session)


def get_api_client() -> EquiTeeApiClient:
    """FastAPI dependency returning the shared backend client."""

    return _cached_api_client()


@lru_cache(maxsize=1)
def _cached_zip_lookup() -> ZippopotamLookup:
    return ZippopotamLookup()


def get_zip_lookup() -> ZippopotamLookup:
    return _cached_zip_lookup()


def get_boundaries() -> dict[str, Any]:
    """Load the zip-code boundary file, or fail with 503 when it is unreadable."""

    try:
        return load_zip_boundaries()
    except (OSError, ValueError) as exc:
        logger.exception("Zip boundary file unavailable", extra={"event": "map.boundaries_unavailable"})
        raise HTTPException(
            status_code=503,
            detail={"message": "Zip boundary data unavailable", "debug": _build_debug_detail(exc)},
        ) from exc


def get_geolocation(
    storage: KeyValueStorage = Depends(get_storage),
    zip_lookup: ZippopotamLookup = Depends(get_zip_lookup),
) -> GeolocationProvider:
    """Provider hydrated from storage; the server has no device position source."""

    provider = GeolocationProvider(storage, zip_lookup=zip_lookup)
    saved = provider.load_saved_location()
    if saved is not None:
        provider.position = saved.position
        provider.zip_code = saved.zip_code
    return provider


def get_filter_state(
    min_price: float = Query(0.0, ge=0),
    max_price: float = Query(200.0, ge=0),
    min_difficulty: float = Query(1.0, ge=0, le=5),
    max_difficulty: float = Query(5.0, ge=0, le=5),
    youth_programs: bool = False,
    equipment_rental: bool = False,
) -> FilterState:
    try:
        return FilterState(
            price_range=(min_price, max_price),
            difficulty_range=(min_difficulty, max_difficulty),
            youth_programs=youth_programs,
            equipment_rental=equipment_rental,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def _resolve_origin(lat: float | None, lng: float | None, provider: GeolocationProvider) -> Coordinate | None:
    if lat is not None and lng is not None:
        return Coordinate(lat=lat, lng=lng)
    return provider.position


# --- request models ----------------------------------------------------------------


class LocationRequest(BaseModel):
    """Explicit coordinate supplied by a client with its own position source."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class ZipCodeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    zip_code: str = Field(..., alias="zipCode", description="Five-digit US zip code.")

    @field_validator("zip_code")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()


class ChatTextRequest(BaseModel):
    text: str = Field(..., description="Free-form message typed by the user.")

    @field_validator("text")
    @classmethod
    def _ensure_text_not_empty(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Message must not be empty.")
        return cleaned


class ChatOptionRequest(BaseModel):
    option: str = Field(..., min_length=1)


# --- courses and equipment -----------------------------------------------------------


@app.get("/api/courses", response_class=JSONResponse)
def list_courses(
    lat: float | None = Query(None, ge=-90, le=90),
    lng: float | None = Query(None, ge=-180, le=180),
    filters: FilterState = Depends(get_filter_state),
    client: EquiTeeApiClient = Depends(get_api_client),
    provider: GeolocationProvider = Depends(get_geolocation),
) -> JSONResponse:
    """Return courses passing the filters, nearest first when a location is known."""

    origin = _resolve_origin(lat, lng, provider)
    discovery = CourseDiscovery(client=client)
    try:
        ranked = discovery.ranked_courses(filters, origin)
    except ApiError as exc:
        raise _upstream_failure(exc, "Course listing unavailable", "courses.error") from exc

    return JSONResponse(
        {
            "courses": [item.as_dict() for item in ranked],
            "filters": filters.as_dict(),
            "origin": origin.as_dict() if origin else None,
        }
    )


@app.get("/api/courses/{course_id}", response_class=JSONResponse)
def course_detail(course_id: str, client: EquiTeeApiClient = Depends(get_api_client)) -> JSONResponse:
    try:
        course = client.fetch_course(course_id)
    except ApiError as exc:
        if exc.status_code == 404:
            raise HTTPException(status_code=404, detail="Course not found") from exc
        raise _upstream_failure(exc, "Course details unavailable", "courses.detail_error") from exc
    return JSONResponse(course.as_dict())


@app.get("/api/equipment", response_class=JSONResponse)
def list_equipment(
    equipment_type: str | None = None,
    condition: str | None = None,
    status: str | None = None,
    min_price: float | None = Query(None, ge=0),
    max_price: float | None = Query(None, ge=0),
    lat: float | None = Query(None, ge=-90, le=90),
    lng: float | None = Query(None, ge=-180, le=180),
    client: EquiTeeApiClient = Depends(get_api_client),
    provider: GeolocationProvider = Depends(get_geolocation),
) -> JSONResponse:
    """Return marketplace listings with client-side distances when a location is known."""

    try:
        items = client.fetch_equipment(
            equipment_type=equipment_type,
            condition=condition,
            status=status,
            min_price=min_price,
            max_price=max_price,
        )
    except ApiError as exc:
        raise _upstream_failure(exc, "Equipment listings unavailable", "equipment.error") from exc

    origin = _resolve_origin(lat, lng, provider)
    listings = []
    for item in with_equipment_distances(items, origin):
        payload = item.as_dict()
        payload["distance"] = format_distance(item.distance_miles)
        listings.append(payload)
    return JSONResponse({"equipment": listings})


# --- map ---------------------------------------------------------------------------------


@app.get("/api/map/scene", response_class=JSONResponse)
def map_scene(
    lat: float | None = Query(None, ge=-90, le=90),
    lng: float | None = Query(None, ge=-180, le=180),
    filters: FilterState = Depends(get_filter_state),
    client: EquiTeeApiClient = Depends(get_api_client),
    provider: GeolocationProvider = Depends(get_geolocation),
    boundaries: dict[str, Any] = Depends(get_boundaries),
) -> JSONResponse:
    """Return the course markers and zip fills as GeoJSON.

    Upstream failures are reported in ``errors`` while the rest of the scene is
    still returned.
    """

    origin = _resolve_origin(lat, lng, provider)
    result = CourseDiscovery(client=client, boundaries=boundaries).run(filters, origin)
    payload = result.scene.to_geojson()
    payload["errors"] = result.errors
    return JSONResponse(payload)


@app.get("/api/map/legend", response_class=JSONResponse)
def map_legend() -> JSONResponse:
    return JSONResponse({"income": income_legend()})


@app.get("/map", response_class=HTMLResponse)
def map_page(
    lat: float | None = Query(None, ge=-90, le=90),
    lng: float | None = Query(None, ge=-180, le=180),
    filters: FilterState = Depends(get_filter_state),
    client: EquiTeeApiClient = Depends(get_api_client),
    provider: GeolocationProvider = Depends(get_geolocation),
    boundaries: dict[str, Any] = Depends(get_boundaries),
) -> HTMLResponse:
    """Render the interactive course map as a standalone Leaflet page."""

    origin = _resolve_origin(lat, lng, provider)
    result = CourseDiscovery(client=client, boundaries=boundaries).run(filters, origin, include_config=True)
    return HTMLResponse(result.scene.render_html(result.config))


# --- location -----------------------------------------------------------------------------


def _location_payload(provider: GeolocationProvider) -> dict[str, Any]:
    location = provider.user_location
    return {
        "position": location.position.as_dict() if location else None,
        "zipCode": location.zip_code if location else None,
        "error": provider.error,
        "loading": provider.loading,
    }


@app.get("/api/location", response_class=JSONResponse)
def get_location(provider: GeolocationProvider = Depends(get_geolocation)) -> JSONResponse:
    return JSONResponse(_location_payload(provider))


@app.post("/api/location", response_class=JSONResponse)
def set_location(
    payload: LocationRequest,
    storage: KeyValueStorage = Depends(get_storage),
) -> JSONResponse:
    """Store a coordinate reported by the client's own position source."""

    provider = GeolocationProvider(
        storage,
        position_source=StaticPositionSource(position=Coordinate(lat=payload.lat, lng=payload.lng)),
    )
    provider.request_location()
    return JSONResponse(_location_payload(provider))


@app.post("/api/location/zip", response_class=JSONResponse)
def set_location_from_zip(
    payload: ZipCodeRequest,
    provider: GeolocationProvider = Depends(get_geolocation),
) -> JSONResponse:
    position = provider.set_location_from_zip_code(payload.zip_code)
    status_code = 200 if position is not None else 422
    return JSONResponse(_location_payload(provider), status_code=status_code)


@app.delete("/api/location", response_class=JSONResponse)
def clear_location(provider: GeolocationProvider = Depends(get_geolocation)) -> JSONResponse:
    provider.clear_location()
    return JSONResponse(_location_payload(provider))


# --- chat -----------------------------------------------------------------------------------


def _chat_session(
    conversation_id: str | None,
    storage: KeyValueStorage,
    client: EquiTeeApiClient,
    provider: GeolocationProvider,
) -> ChatSession:
    return ChatSession(
        storage,
        client,
        conversation_id=conversation_id,
        user_location=provider.position,
    )


def _existing_chat(
    conversation_id: str,
    storage: KeyValueStorage,
    client: EquiTeeApiClient,
    provider: GeolocationProvider,
) -> ChatSession:
    if storage.get_item(chat_key(conversation_id)) is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return _chat_session(conversation_id, storage, client, provider)


def _chat_payload(session: ChatSession) -> dict[str, Any]:
    payload = session.to_document()
    payload["status"] = session.status.value
    return payload


@app.post("/api/chat", response_class=JSONResponse)
def start_chat(
    storage: KeyValueStorage = Depends(get_storage),
    client: EquiTeeApiClient = Depends(get_api_client),
    provider: GeolocationProvider = Depends(get_geolocation),
) -> JSONResponse:
    session = _chat_session(None, storage, client, provider)
    session.open()
    logger.info(
        "Chat conversation opened",
        extra={"event": "chat.opened", "conversation_id": session.conversation_id},
    )
    return JSONResponse(_chat_payload(session), status_code=201)


@app.get("/api/chat/{conversation_id}", response_class=JSONResponse)
def get_chat(
    conversation_id: str,
    storage: KeyValueStorage = Depends(get_storage),
    client: EquiTeeApiClient = Depends(get_api_client),
    provider: GeolocationProvider = Depends(get_geolocation),
) -> JSONResponse:
    session = _existing_chat(conversation_id, storage, client, provider)
    return JSONResponse(_chat_payload(session))


@app.post("/api/chat/{conversation_id}/message", response_class=JSONResponse)
def post_chat_message(
    conversation_id: str,
    payload: ChatTextRequest,
    storage: KeyValueStorage = Depends(get_storage),
    client: EquiTeeApiClient = Depends(get_api_client),
    provider: GeolocationProvider = Depends(get_geolocation),
) -> JSONResponse:
    session = _existing_chat(conversation_id, storage, client, provider)
    session.send_message(payload.text)
    return JSONResponse(_chat_payload(session))


@app.post("/api/chat/{conversation_id}/option", response_class=JSONResponse)
def post_chat_option(
    conversation_id: str,
    payload: ChatOptionRequest,
    storage: KeyValueStorage = Depends(get_storage),
    client: EquiTeeApiClient = Depends(get_api_client),
    provider: GeolocationProvider = Depends(get_geolocation),
) -> JSONResponse:
    session = _existing_chat(conversation_id, storage, client, provider)
    session.choose_option(payload.option)
    return JSONResponse(_chat_payload(session))


@app.post("/api/chat/{conversation_id}/mode", response_class=JSONResponse)
def toggle_chat_mode(
    conversation_id: str,
    storage: KeyValueStorage = Depends(get_storage),
    client: EquiTeeApiClient = Depends(get_api_client),
    provider: GeolocationProvider = Depends(get_geolocation),
) -> JSONResponse:
    session = _existing_chat(conversation_id, storage, client, provider)
    session.toggle_mode()
    return JSONResponse(_chat_payload(session))


@app.delete("/api/chat/{conversation_id}", response_class=JSONResponse)
def clear_chat(
    conversation_id: str,
    storage: KeyValueStorage = Depends(get_storage),
    client: EquiTeeApiClient = Depends(get_api_client),
    provider: GeolocationProvider = Depends(get_geolocation),
) -> JSONResponse:
    session = _existing_chat(conversation_id, storage, client, provider)
    session.clear()
    session.open()
    payload = _chat_payload(session)
    payload["previousConversationId"] = conversation_id
    return JSONResponse(payload)


# --- community ----------------------------------------------------------------------------


@app.get("/api/mentors", response_class=JSONResponse)
def list_mentors(
    lat: float | None = Query(None, ge=-90, le=90),
    lng: float | None = Query(None, ge=-180, le=180),
    radius: float | None = Query(None, gt=0),
    client: EquiTeeApiClient = Depends(get_api_client),
) -> JSONResponse:
    near = Coordinate(lat=lat, lng=lng) if lat is not None and lng is not None else None
    try:
        mentors = client.fetch_mentors(near, radius=radius)
    except ApiError as exc:
        raise _upstream_failure(exc, "Mentor listings unavailable", "mentors.error") from exc
    return JSONResponse({"mentors": [mentor.as_dict() for mentor in mentors]})


@app.get("/api/youth-programs", response_class=JSONResponse)
def list_youth_programs(
    lat: float | None = Query(None, ge=-90, le=90),
    lng: float | None = Query(None, ge=-180, le=180),
    radius: float | None = Query(None, gt=0),
    client: EquiTeeApiClient = Depends(get_api_client),
) -> JSONResponse:
    near = Coordinate(lat=lat, lng=lng) if lat is not None and lng is not None else None
    try:
        programs = client.fetch_youth_programs(near, radius=radius)
    except ApiError as exc:
        raise _upstream_failure(exc, "Youth program listings unavailable", "youth_programs.error") from exc
    return JSONResponse({"programs": [program.as_dict() for program in programs]})


# --- demographics and backend conversations ----------------------------------------------


@app.get("/api/demographics/accessibility", response_class=JSONResponse)
def accessibility_score(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    client: EquiTeeApiClient = Depends(get_api_client),
) -> JSONResponse:
    try:
        score = client.fetch_accessibility_score(lat, lng)
    except ApiError as exc:
        raise _upstream_failure(exc, "Accessibility score unavailable", "accessibility.error") from exc
    return JSONResponse({"lat": lat, "lng": lng, "score": score})


@app.get("/api/conversations", response_class=JSONResponse)
def list_conversations(client: EquiTeeApiClient = Depends(get_api_client)) -> JSONResponse:
    try:
        conversations = client.fetch_conversations()
    except ApiError as exc:
        raise _upstream_failure(exc, "Conversation list unavailable", "conversations.error") from exc
    return JSONResponse({"conversations": [conversation.as_dict() for conversation in conversations]})


@app.get("/api/conversations/{conversation_id}/history", response_class=JSONResponse)
def conversation_history(
    conversation_id: str,
    client: EquiTeeApiClient = Depends(get_api_client),
) -> JSONResponse:
    try:
        records = client.fetch_chat_history(conversation_id)
    except ApiError as exc:
        if exc.status_code == 404:
            raise HTTPException(status_code=404, detail="Conversation not found") from exc
        raise _upstream_failure(exc, "Conversation history unavailable", "conversations.history_error") from exc
    return JSONResponse(
        {"conversationId": conversation_id, "messages": [record.as_dict() for record in records]}
    )


# --- profile and sign-up wizards ---------------------------------------------------------


def _complete_wizard(wizard: Wizard, answers: dict[str, Any], storage: KeyValueStorage) -> JSONResponse:
    try:
        result = wizard.complete(answers)
    except WizardValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail={"message": str(exc), "step": exc.step, "missing": list(exc.missing), "invalid": exc.invalid},
        ) from exc
    profile = ProfileStore(storage).save(result)
    return JSONResponse({"profile": profile}, status_code=201)


@app.get("/api/profile", response_class=JSONResponse)
def get_profile(storage: KeyValueStorage = Depends(get_storage)) -> JSONResponse:
    return JSONResponse({"profile": ProfileStore(storage).load()})


@app.delete("/api/profile", response_class=JSONResponse)
def clear_profile(storage: KeyValueStorage = Depends(get_storage)) -> JSONResponse:
    ProfileStore(storage).clear()
    return JSONResponse({"profile": {}})


@app.get("/api/recommendations", response_class=JSONResponse)
def next_steps(storage: KeyValueStorage = Depends(get_storage)) -> JSONResponse:
    return JSONResponse(build_journey(ProfileStore(storage).load()).as_dict())


@app.post("/api/onboarding", response_class=JSONResponse)
def submit_onboarding(
    answers: dict[str, Any] = Body(...),
    storage: KeyValueStorage = Depends(get_storage),
) -> JSONResponse:
    return _complete_wizard(OnboardingWizard(), answers, storage)


@app.post("/api/quick-start", response_class=JSONResponse)
def submit_quick_start(
    answers: dict[str, Any] = Body(...),
    storage: KeyValueStorage = Depends(get_storage),
) -> JSONResponse:
    return _complete_wizard(QuickStartWizard(), answers, storage)


# --- diagnostics ---------------------------------------------------------------------------


@app.get("/api/diagnostics/connection", response_class=JSONResponse)
def connection_report(client: EquiTeeApiClient = Depends(get_api_client)) -> JSONResponse:
    report = client.check_connection()
    return JSONResponse(
        {
            "baseUrl": report.base_url,
            "workingEndpoints": report.working_endpoints,
            "failedEndpoints": report.failed_endpoints,
        }
    )
