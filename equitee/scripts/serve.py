"""Run the EquiTee web application under uvicorn."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Sequence

import uvicorn

LOGGER = logging.getLogger("equitee.serve")

APP_PATH = "equitee.main:app"


def _configure_logging() -> str:
    """Configure root logging from ``EQUITEE_LOG_LEVEL`` and return the level name."""
    level_name = os.getenv("EQUITEE_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    return logging.getLevelName(level).lower()


def _default_port() -> int:
    raw = os.getenv("PORT", "").strip()
    if not raw:
        return 8000
    try:
        return int(raw)
    except ValueError:
        LOGGER.warning("Ignoring invalid PORT value %r", raw, extra={"event": "serve.invalid_port"})
        return 8000


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve the EquiTee course discovery site")
    parser.add_argument("--host", default=os.getenv("EQUITEE_HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=None, help="Port to bind (default: PORT or 8000)")
    parser.add_argument("--reload", action="store_true", help="Restart when source files change")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    log_level = _configure_logging()
    args = _parse_args(argv)
    port = args.port if args.port is not None else _default_port()
    LOGGER.info(
        "Starting EquiTee web application",
        extra={"event": "serve.start", "host": args.host, "port": port},
    )
    uvicorn.run(APP_PATH, host=args.host, port=port, reload=args.reload, log_level=log_level)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
