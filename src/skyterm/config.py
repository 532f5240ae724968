"""Settings for the dashboard, resolved from defaults, environment and CLI flags."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from skyterm.events import DEFAULT_TICK_RATE
from skyterm.state import DEFAULT_CITIES
from skyterm.weather import DEFAULT_BASE_URL, DEFAULT_TIMEOUT

UNITS = ("metric", "imperial", "standard")

ENV_API_KEY = "OPENWEATHER_API_KEY"
ENV_UNITS = "SKYTERM_UNITS"
ENV_TICK_RATE = "SKYTERM_TICK_RATE"
ENV_CITIES = "SKYTERM_CITIES"


class ConfigError(ValueError):
    """A setting has a value the dashboard cannot use."""


@dataclass
class Settings:
    """Dashboard configuration."""

    api_key: str = ""
    cities: tuple[str, ...] = DEFAULT_CITIES
    units: str = "metric"
    tick_rate: float = DEFAULT_TICK_RATE
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    fence_stale_results: bool = False
    log_file: str = field(default_factory=lambda: str(Path.home() / ".skyterm" / "skyterm.log"))
    log_level: str = "info"


def parse_cities(value: str) -> tuple[str, ...]:
    """Split a comma-separated city list, dropping blank entries."""
    return tuple(name.strip() for name in value.split(",") if name.strip())


def _tick_rate(value: str, source: str) -> float:
    try:
        rate = float(value)
    except ValueError:
        raise ConfigError(f"{source}: not a number: {value!r}") from None
    if rate <= 0:
        raise ConfigError(f"{source}: must be positive, got {rate}")
    return rate


def _units(value: str, source: str) -> str:
    units = value.strip().lower()
    if units not in UNITS:
        raise ConfigError(f"{source}: expected one of {', '.join(UNITS)}, got {value!r}")
    return units


def settings_from_env(env: Mapping[str, str] | None = None) -> Settings:
    """Build settings from defaults overlaid with environment variables."""
    if env is None:
        env = os.environ
    settings = Settings()

    if env.get(ENV_API_KEY):
        settings.api_key = env[ENV_API_KEY].strip()
    if env.get(ENV_UNITS):
        settings.units = _units(env[ENV_UNITS], ENV_UNITS)
    if env.get(ENV_TICK_RATE):
        settings.tick_rate = _tick_rate(env[ENV_TICK_RATE], ENV_TICK_RATE)
    if env.get(ENV_CITIES):
        cities = parse_cities(env[ENV_CITIES])
        if cities:
            settings.cities = cities

    return settings


def resolve_settings(args: object, env: Mapping[str, str] | None = None) -> Settings:
    """Overlay parsed CLI *args* on top of :func:`settings_from_env`.

    Flags left at ``None`` keep the environment or default value.
    """
    settings = settings_from_env(env)

    api_key = getattr(args, "api_key", None)
    if api_key:
        settings.api_key = api_key
    cities = getattr(args, "cities", None)
    if cities:
        names = tuple(name.strip() for name in cities if name.strip())
        if names:
            settings.cities = names
    units = getattr(args, "units", None)
    if units:
        settings.units = _units(units, "--units")
    tick_rate = getattr(args, "tick_rate", None)
    if tick_rate is not None:
        settings.tick_rate = _tick_rate(str(tick_rate), "--tick-rate")
    if getattr(args, "fence_stale_results", False):
        settings.fence_stale_results = True
    log_file = getattr(args, "log_file", None)
    if log_file:
        settings.log_file = log_file
    log_level = getattr(args, "log_level", None)
    if log_level:
        settings.log_level = log_level

    return settings
