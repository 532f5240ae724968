"""skyterm: terminal weather dashboard driven by a single asyncio event loop."""

from skyterm.events import (
    Event,
    EventSource,
    FetchCompletedEvent,
    KeyEvent,
    ResizeEvent,
    TickEvent,
)
from skyterm.fetch import FetchCoordinator
from skyterm.runtime import Runtime
from skyterm.state import DEFAULT_CITIES, AppState, InputMode, apply
from skyterm.ui import render_dashboard
from skyterm.weather import FetchError, WeatherClient, WeatherRecord, parse_weather

__version__ = "0.1.0"

__all__ = [
    "Event",
    "EventSource",
    "FetchCompletedEvent",
    "KeyEvent",
    "ResizeEvent",
    "TickEvent",
    "FetchCoordinator",
    "Runtime",
    "DEFAULT_CITIES",
    "AppState",
    "InputMode",
    "apply",
    "render_dashboard",
    "FetchError",
    "WeatherClient",
    "WeatherRecord",
    "parse_weather",
]
