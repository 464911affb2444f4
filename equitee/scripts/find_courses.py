"""Find golf courses near a location and optionally write the course map to HTML."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Sequence

from equitee.models.filters import DEFAULT_DIFFICULTY_RANGE, DEFAULT_PRICE_RANGE, FilterState
from equitee.models.location import Coordinate
from equitee.services.api_client import EquiTeeApiClient
from equitee.services.discovery import CourseDiscovery, SupportsDiscovery
from equitee.services.geolocation import (
    GeolocationProvider,
    ZipCodeLookup,
    ZippopotamLookup,
)
from equitee.services.income import load_zip_boundaries
from equitee.services.storage import InMemoryStorage

LOGGER = logging.getLogger("equitee.find_courses")


def _configure_logging() -> None:
    """Configure root logging based on ``EQUITEE_LOG_LEVEL``."""
    level_name = os.getenv("EQUITEE_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="List EquiTee golf courses nearest first")
    location = parser.add_mutually_exclusive_group()
    location.add_argument("--zip", dest="zip_code", help="Five-digit US zip code to search from")
    location.add_argument("--lat", type=float, help="Latitude to search from (requires --lng)")
    parser.add_argument("--lng", type=float, help="Longitude to search from (requires --lat)")
    parser.add_argument("--min-price", type=float, default=DEFAULT_PRICE_RANGE[0])
    parser.add_argument("--max-price", type=float, default=DEFAULT_PRICE_RANGE[1])
    parser.add_argument("--min-difficulty", type=float, default=DEFAULT_DIFFICULTY_RANGE[0])
    parser.add_argument("--max-difficulty", type=float, default=DEFAULT_DIFFICULTY_RANGE[1])
    parser.add_argument("--youth-programs", action="store_true", help="Only courses with youth programs")
    parser.add_argument("--equipment-rental", action="store_true", help="Only courses renting equipment")
    parser.add_argument("--map-out", type=Path, help="Write the interactive course map to this HTML file")
    parser.add_argument(
        "--api-url",
        default=None,
        help="Backend base URL (default: EQUITEE_API_URL or http://localhost:3001)",
    )
    args = parser.parse_args(argv)
    if (args.lat is None) != (args.lng is None):
        parser.error("--lat and --lng must be given together")
    return args


def _build_client(api_url: str | None) -> SupportsDiscovery:
    return EquiTeeApiClient(api_url)


def _build_zip_lookup() -> ZipCodeLookup:
    return ZippopotamLookup()


def _resolve_origin(args: argparse.Namespace) -> tuple[Coordinate | None, str | None]:
    """Return the search origin, or an error message when a zip code cannot be resolved."""

    if args.lat is not None and args.lng is not None:
        return Coordinate(lat=args.lat, lng=args.lng), None
    if not args.zip_code:
        return None, None

    provider = GeolocationProvider(InMemoryStorage(), zip_lookup=_build_zip_lookup())
    position = provider.set_location_from_zip_code(args.zip_code)
    return position, provider.error


def main(argv: Sequence[str] | None = None) -> int:
    _configure_logging()
    args = _parse_args(argv)

    try:
        filters = FilterState(
            price_range=(args.min_price, args.max_price),
            difficulty_range=(args.min_difficulty, args.max_difficulty),
            youth_programs=args.youth_programs,
            equipment_rental=args.equipment_rental,
        )
    except ValueError as exc:
        LOGGER.error("Invalid filters: %s", exc)
        return 2

    origin, location_error = _resolve_origin(args)
    if location_error:
        LOGGER.error("Location unavailable: %s", location_error)
        return 1

    LOGGER.info("FIND_COURSES_START origin=%s filters=%s", origin, filters.as_dict())
    discovery = CourseDiscovery(client=_build_client(args.api_url), boundaries=load_zip_boundaries())
    result = discovery.run(filters, origin, include_config=args.map_out is not None)

    for error in result.errors:
        LOGGER.error("FIND_COURSES_ERROR %s", error)

    if args.map_out is not None:
        args.map_out.parent.mkdir(parents=True, exist_ok=True)
        args.map_out.write_text(result.scene.render_html(result.config), encoding="utf-8")
        LOGGER.info("Course map written to %s", args.map_out)

    payload: dict[str, Any] = {
        "origin": origin.as_dict() if origin else None,
        "filters": filters.as_dict(),
        "courses": [item.as_dict() for item in result.courses],
        "errors": result.errors,
        "succeeded": result.succeeded,
    }
    print(json.dumps(payload, ensure_ascii=False))
    return 0 if result.succeeded else 1


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
