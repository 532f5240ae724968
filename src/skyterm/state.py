"""Application state and its transition function.

:class:`AppState` is an immutable value. :func:`apply` takes a state and one
event and returns the next state; it performs no I/O. Fetching is
requested by setting ``fetch_requested``, a flag (not a counter) that the
runtime hands to the fetch coordinator and then clears.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum

from skyterm.events import (
    Event,
    FetchCompletedEvent,
    KeyEvent,
    ResizeEvent,
    TickEvent,
)
from skyterm.keybindings import DEFAULT_KEYBINDINGS, KeybindingsManager
from skyterm.tui.keys import printable_char
from skyterm.weather import WeatherRecord

logger = logging.getLogger(__name__)

DEFAULT_CITIES: tuple[str, ...] = (
    "Bucharest",
    "London",
    "New York",
    "Budapest",
    "Tokyo",
    "Paris",
    "Berlin",
    "Moscow",
    "Sydney",
    "Toronto",
)


class InputMode(Enum):
    NORMAL = "normal"
    EDITING = "editing"


@dataclass(frozen=True)
class AppState:
    """Everything the dashboard knows.

    Invariant: ``0 <= selected < len(cities)`` whenever ``cities`` is
    non-empty.
    """

    running: bool = True
    mode: InputMode = InputMode.NORMAL
    cities: tuple[str, ...] = DEFAULT_CITIES
    selected: int = 0
    pending_input: str = ""
    fetch_requested: bool = False
    fetch_in_flight: bool = False
    current_weather: WeatherRecord | None = None
    last_error: str | None = None
    terminal_size: tuple[int, int] | None = None

    @property
    def selected_city(self) -> str | None:
        if not self.cities:
            return None
        return self.cities[self.selected]

    @property
    def editing(self) -> bool:
        return self.mode is InputMode.EDITING


# ---------------------------------------------------------------------------
# Normal-mode operations
# ---------------------------------------------------------------------------


def next_city(state: AppState) -> AppState:
    if not state.cities:
        return state
    return replace(
        state,
        selected=(state.selected + 1) % len(state.cities),
        fetch_requested=True,
    )


def previous_city(state: AppState) -> AppState:
    if not state.cities:
        return state
    return replace(
        state,
        selected=(state.selected - 1) % len(state.cities),
        fetch_requested=True,
    )


def enter_edit_mode(state: AppState) -> AppState:
    return replace(state, mode=InputMode.EDITING, pending_input="")


def remove_selected_city(state: AppState) -> AppState:
    if not state.cities:
        return state
    cities = state.cities[: state.selected] + state.cities[state.selected + 1 :]
    if not cities:
        return replace(state, cities=(), selected=0, current_weather=None)
    return replace(
        state,
        cities=cities,
        selected=min(state.selected, len(cities) - 1),
        fetch_requested=True,
    )


def request_refresh(state: AppState) -> AppState:
    if not state.cities:
        return state
    return replace(state, fetch_requested=True)


def quit_app(state: AppState) -> AppState:
    return replace(state, running=False)


# ---------------------------------------------------------------------------
# Editing-mode operations
# ---------------------------------------------------------------------------


def exit_edit_mode(state: AppState) -> AppState:
    return replace(state, mode=InputMode.NORMAL, pending_input="")


def commit_city(state: AppState) -> AppState:
    """Append the trimmed input as a new city and select it.

    Empty or whitespace-only input is ignored; either way the buffer is
    cleared and the mode returns to normal.
    """
    name = state.pending_input.strip()
    state = exit_edit_mode(state)
    if not name:
        return state
    cities = state.cities + (name,)
    return replace(
        state,
        cities=cities,
        selected=len(cities) - 1,
        fetch_requested=True,
    )


def delete_char(state: AppState) -> AppState:
    if not state.pending_input:
        return state
    return replace(state, pending_input=state.pending_input[:-1])


def insert_char(state: AppState, char: str) -> AppState:
    return replace(state, pending_input=state.pending_input + char)


_NORMAL_ACTIONS = {
    "quit": quit_app,
    "nextCity": next_city,
    "previousCity": previous_city,
    "addCity": enter_edit_mode,
    "deleteCity": remove_selected_city,
    "refresh": request_refresh,
}

_EDITING_ACTIONS = {
    "cancel": exit_edit_mode,
    "commit": commit_city,
    "deleteCharBackward": delete_char,
}


# ---------------------------------------------------------------------------
# Transition function
# ---------------------------------------------------------------------------


def apply(
    state: AppState,
    event: Event,
    keybindings: KeybindingsManager = DEFAULT_KEYBINDINGS,
    fence_stale_results: bool = False,
) -> AppState:
    """Return the state that follows *state* after *event*."""
    if isinstance(event, KeyEvent):
        return _apply_key(state, event, keybindings)
    if isinstance(event, ResizeEvent):
        return replace(state, terminal_size=(event.columns, event.rows))
    if isinstance(event, FetchCompletedEvent):
        return _apply_fetch_completed(state, event, fence_stale_results)
    if isinstance(event, TickEvent):
        # Reserved for periodic behaviour; must not touch fetch_requested.
        return state
    raise TypeError(f"Unknown event: {event!r}")


def _apply_key(
    state: AppState, event: KeyEvent, keybindings: KeybindingsManager
) -> AppState:
    if state.mode is InputMode.NORMAL:
        action = keybindings.normal_action(event.key)
        if action is None:
            return state
        return _NORMAL_ACTIONS[action](state)

    action = keybindings.editing_action(event.key)
    if action is not None:
        return _EDITING_ACTIONS[action](state)
    char = printable_char(event.key)
    if char is None:
        return state
    return insert_char(state, char)


def _apply_fetch_completed(
    state: AppState, event: FetchCompletedEvent, fence_stale_results: bool
) -> AppState:
    state = replace(state, fetch_in_flight=False)

    if not state.cities:
        logger.debug("Discarding weather for %s: city list is empty", event.city)
        return state
    if fence_stale_results and event.city != state.selected_city:
        logger.debug(
            "Discarding weather for %s: %s is selected now",
            event.city,
            state.selected_city,
        )
        return state

    if event.error is not None:
        # Keep the previous record on screen
        return replace(state, last_error=str(event.error))
    return replace(state, current_weather=event.record, last_error=None)
