"""Resolve and persist the user's position from a device source or a zip code."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Any, Mapping, Protocol

import httpx

from equitee.models.location import Coordinate, PositionErrorCode, PositionOptions, UserLocation
from equitee.services.storage import (
    USER_LOCATION_KEY,
    USER_ZIP_CODE_KEY,
    KeyValueStorage,
    read_json,
    write_json,
)
from equitee.utils.env import load_timeout_from_env, load_url_from_env

LOGGER = logging.getLogger(__name__)

DEFAULT_ZIP_LOOKUP_URL = "https://api.zippopotam.us"

UNSUPPORTED_MESSAGE = "Geolocation is not supported by this browser"
ZIP_NOT_FOUND_MESSAGE = "Unable to find location for this zip code. Please try again."
INVALID_ZIP_MESSAGE = "Please enter a valid 5-digit zip code."
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred while retrieving location."

POSITION_ERROR_MESSAGES: Mapping[int, str] = {
    PositionErrorCode.PERMISSION_DENIED: "Location access denied. Please enter your zip code instead.",
    PositionErrorCode.POSITION_UNAVAILABLE: "Location information is unavailable. Please enter your zip code.",
    PositionErrorCode.TIMEOUT: "Location request timed out. Please try again or enter your zip code.",
}

_ZIP_CODE_RE = re.compile(r"^\d{5}$")


class PositionError(Exception):
    """Failure reported by a device position source."""

    def __init__(self, code: int, message: str = "") -> None:
        super().__init__(message or f"position error {code}")
        self.code = code
        self.message = message


class ZipLookupError(RuntimeError):
    """Raised when a zip code cannot be resolved to a coordinate."""


class PositionSource(Protocol):
    """Device capability that yields the current coordinate."""

    def get_current_position(self, options: PositionOptions) -> Coordinate:
        """Return the current position or raise :class:`PositionError`."""


class ZipCodeLookup(Protocol):
    def lookup(self, zip_code: str) -> Coordinate:
        """Return the centre of ``zip_code`` or raise :class:`ZipLookupError`."""


@dataclass(slots=True)
class StaticPositionSource:
    """Position source returning a fixed coordinate or raising a fixed error.

    Used by the web application, where the caller supplies its coordinate
    explicitly, and by tests.
    """

    position: Coordinate | None = None
    error_code: int | None = None

    def get_current_position(self, options: PositionOptions) -> Coordinate:
        if self.error_code is not None:
            raise PositionError(self.error_code)
        if self.position is None:
            raise PositionError(PositionErrorCode.POSITION_UNAVAILABLE)
        return self.position


def is_valid_zip_code(zip_code: Any) -> bool:
    return isinstance(zip_code, str) and bool(_ZIP_CODE_RE.match(zip_code.strip()))


class ZippopotamLookup:
    """Resolve US zip codes through the public zippopotam.us service."""

    _BASE_URL_ENV_VAR = "EQUITEE_ZIP_LOOKUP_URL"
    _TIMEOUT_ENV_VAR = "EQUITEE_API_TIMEOUT"
    _DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        client: httpx.Client | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or load_url_from_env(self._BASE_URL_ENV_VAR, DEFAULT_ZIP_LOOKUP_URL)).rstrip("/")
        resolved_timeout = (
            float(timeout) if timeout is not None else load_timeout_from_env(self._TIMEOUT_ENV_VAR, self._DEFAULT_TIMEOUT)
        )
        self._client = client or httpx.Client(timeout=resolved_timeout, transport=transport)

    def lookup(self, zip_code: str) -> Coordinate:
        url = f"{self._base_url}/us/{zip_code}"
        try:
            response = self._client.get(url)
        except httpx.HTTPError as exc:
            raise ZipLookupError(f"Zip lookup failed for {zip_code}: {exc}") from exc

        if response.status_code != 200:
            raise ZipLookupError(f"Zip lookup for {zip_code} returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise ZipLookupError(f"Zip lookup for {zip_code} returned malformed JSON") from exc

        places = payload.get("places") if isinstance(payload, Mapping) else None
        if not isinstance(places, list) or not places or not isinstance(places[0], Mapping):
            raise ZipLookupError(f"Zip lookup for {zip_code} returned no places")

        position = Coordinate.from_mapping(
            {"lat": places[0].get("latitude"), "lng": places[0].get("longitude")}
        )
        if position is None:
            raise ZipLookupError(f"Zip lookup for {zip_code} returned an unreadable coordinate")
        return position


class GeolocationProvider:
    """Holds the current user position with its error slot and loading flag.

    The position is persisted under ``userLocation`` (and ``userZipCode`` when it
    was derived from a zip code) so later sessions can hydrate without a new
    lookup. Failures never raise; they populate :attr:`error` instead.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        position_source: PositionSource | None = None,
        zip_lookup: ZipCodeLookup | None = None,
        options: PositionOptions | None = None,
    ) -> None:
        self._storage = storage
        self._position_source = position_source
        self._zip_lookup = zip_lookup
        self._options = options or PositionOptions()
        self.position: Coordinate | None = None
        self.zip_code: str | None = None
        self.error: str | None = None
        self.loading = False

    @property
    def user_location(self) -> UserLocation | None:
        if self.position is None:
            return None
        return UserLocation(position=self.position, zip_code=self.zip_code)

    def mount(self) -> Coordinate | None:
        """Hydrate from storage, falling back to a single device request."""

        stored = self.load_saved_location()
        if stored is not None:
            self.position = stored.position
            self.zip_code = stored.zip_code
            self.error = None
            self.loading = False
            return self.position
        return self.request_location()

    def load_saved_location(self) -> UserLocation | None:
        position = Coordinate.from_mapping(read_json(self._storage, USER_LOCATION_KEY))
        if position is None:
            return None
        raw_zip = read_json(self._storage, USER_ZIP_CODE_KEY)
        zip_code = str(raw_zip) if isinstance(raw_zip, (str, int)) and not isinstance(raw_zip, bool) else None
        return UserLocation(position=position, zip_code=zip_code)

    def request_location(self) -> Coordinate | None:
        self.loading = True
        self.error = None

        if self._position_source is None:
            self._fail(UNSUPPORTED_MESSAGE)
            return None

        try:
            position = self._position_source.get_current_position(self._options)
        except PositionError as exc:
            message = POSITION_ERROR_MESSAGES.get(exc.code, UNKNOWN_ERROR_MESSAGE)
            LOGGER.info(
                "Device position unavailable",
                extra={"event": "geolocation.position_error", "code": exc.code},
            )
            self._fail(message)
            return None

        write_json(self._storage, USER_LOCATION_KEY, position.as_dict())
        self._storage.remove_item(USER_ZIP_CODE_KEY)
        self.position = position
        self.zip_code = None
        self.loading = False
        return position

    def set_location_from_zip_code(self, zip_code: str) -> Coordinate | None:
        self.error = None
        if not is_valid_zip_code(zip_code):
            # Rejected before any lookup; the current position is kept.
            self.error = INVALID_ZIP_MESSAGE
            return None
        cleaned = zip_code.strip()
        if self._zip_lookup is None:
            self._fail(ZIP_NOT_FOUND_MESSAGE)
            return None

        self.loading = True
        try:
            position = self._zip_lookup.lookup(cleaned)
        except ZipLookupError as exc:
            LOGGER.warning(
                "Zip code lookup failed: %s",
                exc,
                extra={"event": "geolocation.zip_lookup_failed", "zip_code": cleaned},
            )
            self._fail(ZIP_NOT_FOUND_MESSAGE)
            return None

        write_json(self._storage, USER_LOCATION_KEY, position.as_dict())
        write_json(self._storage, USER_ZIP_CODE_KEY, cleaned)
        self.position = position
        self.zip_code = cleaned
        self.loading = False
        return position

    def clear_location(self) -> None:
        self._storage.remove_item(USER_LOCATION_KEY)
        self._storage.remove_item(USER_ZIP_CODE_KEY)
        self.position = None
        self.zip_code = None
        self.error = None
        self.loading = False

    def _fail(self, message: str) -> None:
        self.position = None
        self.zip_code = None
        self.error = message
        self.loading = False


__all__ = [
    "GeolocationProvider",
    "PositionError",
    "PositionSource",
    "StaticPositionSource",
    "ZipCodeLookup",
    "ZipLookupError",
    "ZippopotamLookup",
    "is_valid_zip_code",
]
