"""Entry point for the skyterm CLI."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import termios
from pathlib import Path

from skyterm.config import UNITS, ConfigError, Settings, resolve_settings
from skyterm.runtime import Runtime
from skyterm.state import AppState
from skyterm.tui.terminal import ProcessTerminal
from skyterm.weather import WeatherClient

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="skyterm",
        description="skyterm: current weather for your cities, in the terminal",
    )
    parser.add_argument(
        "--city",
        action="append",
        dest="cities",
        help="City to show (repeatable; replaces the default list)",
    )
    parser.add_argument("--api-key", help="OpenWeatherMap API key (or set OPENWEATHER_API_KEY)")
    parser.add_argument("--units", choices=UNITS, help="Measurement units (default: metric)")
    parser.add_argument("--tick-rate", type=float, help="Timer interval in seconds (default: 0.1)")
    parser.add_argument(
        "--fence-stale-results",
        action="store_true",
        help="Discard weather that arrives for a city that is no longer selected",
    )
    parser.add_argument("--log-file", help="Log file path (default: ~/.skyterm/skyterm.log)")
    parser.add_argument("--log-level", default=None, choices=["debug", "info", "warning", "error"])
    return parser.parse_args(argv)


def setup_logging(settings: Settings) -> None:
    """Send logs to a file; the dashboard owns stdout."""
    log_path = Path(settings.log_file).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.FileHandler(log_path, encoding="utf-8")],
    )


async def run_dashboard(settings: Settings) -> AppState:
    async with WeatherClient(
        settings.api_key,
        base_url=settings.base_url,
        units=settings.units,
        timeout=settings.timeout,
    ) as client:
        runtime = Runtime(
            AppState(cities=settings.cities),
            ProcessTerminal(),
            client,
            tick_rate=settings.tick_rate,
            fence_stale_results=settings.fence_stale_results,
            units=settings.units,
        )
        return await runtime.run()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        settings = resolve_settings(args)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    try:
        setup_logging(settings)
    except OSError as exc:
        print(f"Error: cannot open log file {settings.log_file}: {exc}", file=sys.stderr)
        return 1

    if not (sys.stdin.isatty() and sys.stdout.isatty()):
        print("Error: skyterm needs an interactive terminal", file=sys.stderr)
        return 1
    if not settings.api_key:
        logger.warning("No API key configured; fetches will fail")

    logger.info("Starting skyterm with %d cities", len(settings.cities))
    try:
        asyncio.run(run_dashboard(settings))
    except (termios.error, OSError) as exc:
        logger.exception("Terminal setup failed")
        print(f"Error: terminal setup failed: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
