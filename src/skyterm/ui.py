"""Dashboard layout: turns an :class:`AppState` into a :class:`Frame`.

Nothing here mutates state or touches the terminal; the runtime hands the
returned frame to a :class:`~skyterm.tui.screen.Screen`.
"""

from __future__ import annotations

import math
from datetime import datetime

from skyterm.keybindings import DEFAULT_KEYBINDINGS, KeybindingsManager
from skyterm.state import AppState
from skyterm.tui.screen import Frame
from skyterm.tui.utils import (
    RESET,
    center_in_width,
    pad_to_width,
    slice_by_column,
    strip_ansi,
    truncate_to_width,
    visible_width,
)
from skyterm.weather import WeatherRecord

# ── ANSI helpers ─────────────────────────────────────────────────────

_RED = "\x1b[31m"
_GREEN = "\x1b[32m"
_YELLOW = "\x1b[33m"
_MAGENTA = "\x1b[35m"
_CYAN = "\x1b[36m"
_WHITE = "\x1b[37m"
_BOLD = "\x1b[1m"
_DIM = "\x1b[2m"

TITLE = " Weather CLI Dashboard "
CITIES_BOX_HEIGHT = 8
MIN_WIDTH = 30
MIN_HEIGHT = 12

_SPARK_CHARS = "▁▂▃▄▅▆▇█"

_TEMP_UNITS = {"metric": "°C", "imperial": "°F", "standard": "K"}
_SPEED_UNITS = {"metric": "m/s", "imperial": "mph", "standard": "m/s"}
_COMPASS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")

_KEY_LABELS = {
    "up": "↑",
    "down": "↓",
    "left": "←",
    "right": "→",
    "enter": "Enter",
    "escape": "Esc",
    "space": "Space",
    "tab": "Tab",
    "backspace": "Backspace",
}


# ── Widgets ──────────────────────────────────────────────────────────


def _title_bar(title: str, width: int) -> str:
    title = truncate_to_width(title, width)
    fill = width - visible_width(title)
    left = fill // 2
    return "─" * left + title + "─" * (fill - left)


def draw_box(
    title: str, body: list[str], width: int, height: int, color: str = ""
) -> list[str]:
    """Draw *body* inside a bordered box of exactly *width* x *height* cells."""
    if height <= 0:
        return []
    if width < 2 or height < 2:
        return [" " * max(width, 0)] * height

    inner = width - 2
    lines = [f"{color}┌{_title_bar(title, inner)}┐{RESET}"]
    for i in range(height - 2):
        text = body[i] if i < len(body) else ""
        lines.append(f"{color}│{RESET}{pad_to_width(text, inner)}{color}│{RESET}")
    lines.append(f"{color}└{'─' * inner}┘{RESET}")
    return lines


def sparkline(values: list[float] | tuple[float, ...], width: int) -> str:
    """Render *values* as a row of block characters at most *width* wide."""
    if not values or width <= 0:
        return ""
    step = max(1, math.ceil(len(values) / width))
    sampled = list(values)[::step][:width]
    vmin = min(sampled)
    span = max(sampled) - vmin
    if span <= 0:
        return _SPARK_CHARS[len(_SPARK_CHARS) // 2] * len(sampled)
    top = len(_SPARK_CHARS) - 1
    return "".join(_SPARK_CHARS[int((v - vmin) * top / span)] for v in sampled)


def overlay(base: list[str], popup: list[str], row: int, col: int) -> list[str]:
    """Composite *popup* lines over *base*, top-left corner at (*row*, *col*)."""
    out = list(base)
    for i, line in enumerate(popup):
        r = row + i
        if not 0 <= r < len(out):
            continue
        width = visible_width(line)
        under = out[r]
        left = pad_to_width(slice_by_column(under, 0, col), col)
        right = slice_by_column(under, col + width)
        out[r] = left + RESET + line + RESET + right
    return out


# ── Sections ─────────────────────────────────────────────────────────


def _city_lines(state: AppState, visible: int) -> list[str]:
    if not state.cities:
        return [f"{_DIM}No cities. Press 'a' to add one.{RESET}"]

    offset = max(0, state.selected - visible + 1)
    lines: list[str] = []
    for i, city in enumerate(state.cities[offset : offset + visible], start=offset):
        if i == state.selected:
            lines.append(f"{_YELLOW}{_BOLD}➤ {city}{RESET}")
        else:
            lines.append(f"{_WHITE}  {city}{RESET}")
    return lines


def _label(name: str, value: str) -> str:
    return f"{_YELLOW}{_BOLD}{name}: {RESET}{value}"


def _clock(ts: datetime | None) -> str:
    return ts.strftime("%H:%M") if ts is not None else "N/A"


def _compass(degrees: int) -> str:
    return _COMPASS[int((degrees % 360) / 45 + 0.5) % 8]


def weather_lines(record: WeatherRecord | None, units: str = "metric") -> list[str]:
    """Text block describing *record*."""
    if record is None:
        return [
            "No weather data available",
            "Press 'r' to fetch weather",
        ]

    deg = _TEMP_UNITS.get(units, "°C")
    speed = _SPEED_UNITS.get(units, "m/s")
    return [
        _label("City", f"{record.name}, {record.country}"),
        "",
        _label("Temp", f"{record.temperature:.1f}{deg} (feels like {record.feels_like:.1f}{deg})"),
        _label("Range", f"{record.temp_min:.1f}{deg} - {record.temp_max:.1f}{deg}"),
        _label("Conditions", f"{record.weather_main} ({record.description})"),
        "",
        _label("Humidity", f"{record.humidity}%"),
        _label("Wind", f"{record.wind_speed:.1f} {speed} {_compass(record.wind_direction)}"),
        _label("Pressure", f"{record.pressure} hPa"),
        _label("Visibility", f"{record.visibility / 1000:.1f} km"),
        _label("Clouds", f"{record.clouds}%"),
        "",
        _label("Sunrise", _clock(record.sunrise)),
        _label("Sunset", _clock(record.sunset)),
        _label("Updated", record.timestamp.strftime("%Y-%m-%d %H:%M UTC")),
    ]


def _weather_section(
    state: AppState, width: int, height: int, units: str
) -> list[str]:
    title = " Weather Details "
    if state.fetch_in_flight:
        title = " Weather Details (updating…) "

    record = state.current_weather
    inner_height = max(0, height - 2)
    if record is None or inner_height < 6:
        return draw_box(title, weather_lines(record, units), width, height, _GREEN)

    # 70% text, 30% hourly graph
    graph_height = max(3, (inner_height * 3) // 10)
    text_height = inner_height - graph_height
    text = weather_lines(record, units)[:text_height]
    text += [""] * (text_height - len(text))

    temps = record.hourly_temps
    if temps:
        graph_body = [f"{_GREEN}{sparkline(temps, width - 4)}{RESET}"]
    else:
        graph_body = [f"{_DIM}No hourly data{RESET}"]
    graph = draw_box(" Next Hours ", graph_body, width - 2, graph_height)

    return draw_box(title, text + graph, width, height, _GREEN)


def _key_label(keybindings: KeybindingsManager, action: str) -> str:
    keys = keybindings.get_keys(action)  # type: ignore[arg-type]
    if not keys:
        return "?"
    return _KEY_LABELS.get(keys[0], keys[0])


def help_text(keybindings: KeybindingsManager, editing: bool = False) -> str:
    """One-line key help built from the active bindings."""
    def label(action: str) -> str:
        return _key_label(keybindings, action)

    if editing:
        return f"{label('commit')} add · {label('cancel')} cancel"
    return (
        f"{label('previousCity')}/{label('nextCity')} select · "
        f"{label('addCity')} add · {label('deleteCity')} delete · "
        f"{label('refresh')} refresh · {label('quit')} quit"
    )


def single_line(text: str) -> str:
    """Collapse control characters and runs of whitespace into single spaces."""
    text = strip_ansi(text)
    return " ".join("".join(ch if ch.isprintable() else " " for ch in text).split())


def _status_line(state: AppState, width: int, keybindings: KeybindingsManager) -> str:
    hint = help_text(keybindings, state.editing)
    if state.last_error and not state.editing:
        error = single_line(state.last_error)
        return f"{_RED}{truncate_to_width('⚠ ' + error, width, '…')}{RESET}"
    return f"{_DIM}{truncate_to_width(hint, width)}{RESET}"


def _input_popup(state: AppState, width: int, height: int) -> tuple[list[str], int, int, tuple[int, int]]:
    """Return (popup lines, row, col, cursor) for the add-city popup."""
    popup_w = max(20, (width * 60) // 100)
    popup_w = min(popup_w, width)
    popup_h = max(3, (height * 20) // 100)
    popup_h = min(popup_h, height)
    row = (height - popup_h) // 2
    col = (width - popup_w) // 2

    inner = max(1, popup_w - 2)
    text = state.pending_input
    overflow = visible_width(text) - (inner - 1)
    if overflow > 0:
        text = slice_by_column(text, overflow)

    lines = draw_box(" Add City ", [text], popup_w, popup_h, _YELLOW)
    cursor = (row + 1, col + 1 + visible_width(text))
    return lines, row, col, cursor


# ── Frame ────────────────────────────────────────────────────────────


def render_dashboard(
    state: AppState,
    width: int,
    height: int,
    units: str = "metric",
    keybindings: KeybindingsManager = DEFAULT_KEYBINDINGS,
) -> Frame:
    """Lay out the whole dashboard for a *width* x *height* terminal.

    The frame carries a cursor position exactly when the state is in
    editing mode.
    """
    if width < MIN_WIDTH or height < MIN_HEIGHT:
        lines = [""] * height
        if height > 0:
            lines[height // 2] = center_in_width("Terminal too small", width)
        cursor = (height // 2, 0) if state.editing and height > 0 else None
        return Frame(lines=lines, cursor=cursor)

    inner_w = width - 2
    inner_h = height - 2
    cities_h = min(CITIES_BOX_HEIGHT, max(3, inner_h // 3))
    status_h = 1
    weather_h = inner_h - cities_h - status_h

    body: list[str] = []
    body += draw_box(
        " Cities ", _city_lines(state, cities_h - 2), inner_w, cities_h, _MAGENTA
    )
    body += _weather_section(state, inner_w, weather_h, units)
    body.append(_status_line(state, inner_w, keybindings))

    lines = draw_box(TITLE, body, width, height, _CYAN)

    cursor: tuple[int, int] | None = None
    if state.editing:
        popup, row, col, cursor = _input_popup(state, width, height)
        lines = overlay(lines, popup, row, col)

    return Frame(lines=lines, cursor=cursor)
