"""Command-line entry point serving the workflow authority with uvicorn."""

from __future__ import annotations

import argparse
import logging
import os
from dataclasses import replace
from typing import List, Optional

import uvicorn

from rest_api.app import create_app
from rest_api.authority import AuthoritySettings

DEFAULT_PORT = 8787


def _default_port() -> int:
    raw = (os.getenv("MOCK_API_PORT") or "").strip()
    if not raw:
        return DEFAULT_PORT
    try:
        return int(raw)
    except ValueError as exc:
        raise SystemExit(f"MOCK_API_PORT must be an integer, got {raw!r}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Serve the task workflow authority.")
    parser.add_argument("--host", default=os.getenv("MOCK_API_HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=None, help="defaults to $MOCK_API_PORT or 8787")
    parser.add_argument("--log-level", default=os.getenv("AUTHORITY_LOG_LEVEL", "info"))
    parser.add_argument(
        "--strict-next",
        action="store_true",
        help="reject next calls that do not echo a successful check",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    port = args.port if args.port is not None else _default_port()
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    settings = AuthoritySettings.from_env()
    if args.strict_next:
        settings = replace(settings, strict_next=True)
    app = create_app(settings=settings)
    logging.getLogger("rest_api.server").info(
        "Task API server running on http://%s:%s", args.host, port
    )
    uvicorn.run(app, host=args.host, port=port, log_level=args.log_level.lower())


if __name__ == "__main__":
    main()
