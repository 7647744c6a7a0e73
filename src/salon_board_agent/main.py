"""Entry point for the SALON BOARD agent."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import structlog

from .config import Settings, load_run_input
from .errors import ConfigError, SalonBoardError
from .runner import run
from .sink import ResultSink, format_output


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structlog + stdlib logging."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stderr,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


LOGGER = structlog.get_logger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """CLI argument parsing."""
    parser = argparse.ArgumentParser(description="Read a SALON BOARD reservation into a structured record.")
    parser.add_argument(
        "--input",
        type=Path,
        help="JSON file with userId, password and reserveId (defaults to SALONBOARD_INPUT_PATH).",
    )
    parser.add_argument(
        "--reserve-id",
        help="Reservation id to read, overriding reserveId from the input file.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


async def execute(settings: Settings, input_path: Path, reserve_id: Optional[str] = None) -> str:
    """Load input, run the extraction and deliver the result."""
    run_input = load_run_input(input_path, reserve_id=reserve_id)
    output = await run(settings, run_input)
    await ResultSink.from_settings(settings).push(output)
    return format_output(output)


def cli(argv: Optional[list[str]] = None) -> int:
    """Console script entrypoint."""
    args = parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        settings = Settings()
    except Exception as exc:  # pragma: no cover - startup validation
        LOGGER.exception("settings.error", error=str(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    input_path = args.input or settings.input_path

    try:
        result = asyncio.run(execute(settings, input_path, args.reserve_id))
    except ConfigError as exc:
        LOGGER.error("run.failed", error_kind=exc.kind, error=str(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except SalonBoardError as exc:
        LOGGER.error("run.failed", error_kind=exc.kind, error=str(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except Exception as exc:  # pragma: no cover - top level
        LOGGER.exception("run.failed", error_kind="unexpected", error=str(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(result)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(cli())
