"""The dashboard runtime loop.

One consumer drives everything::

    render -> await next event -> apply -> hand fetch requests to coordinator

``await events.next()`` is the only suspension point, so every state
transition runs to completion before the next event is looked at.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from skyterm.events import DEFAULT_TICK_RATE, Event, EventSource, FetchCompletedEvent
from skyterm.fetch import FetchCoordinator, WeatherFetcher
from skyterm.keybindings import DEFAULT_KEYBINDINGS, KeybindingsManager
from skyterm.state import AppState, apply
from skyterm.tui.screen import Screen
from skyterm.tui.terminal import Terminal, interactive
from skyterm.ui import render_dashboard

logger = logging.getLogger(__name__)

WINDOW_TITLE = "skyterm"


class Runtime:
    """Owns the state, the event source and the fetch coordinator for one run."""

    def __init__(
        self,
        state: AppState,
        terminal: Terminal,
        client: WeatherFetcher,
        tick_rate: float = DEFAULT_TICK_RATE,
        keybindings: KeybindingsManager | None = None,
        fence_stale_results: bool = False,
        units: str = "metric",
    ) -> None:
        self.state = state
        self.terminal = terminal
        self.events = EventSource(tick_rate)
        self.coordinator = FetchCoordinator(client, self.events)
        self.screen = Screen(terminal)
        self.keybindings = keybindings or DEFAULT_KEYBINDINGS
        self.fence_stale_results = fence_stale_results
        self.units = units
        self.events_processed = 0

    # -- public -------------------------------------------------------------

    async def run(self) -> AppState:
        """Run until the state stops running and return the final state.

        Terminal setup errors propagate after teardown.
        """
        with interactive(self.terminal, self.events.push_input, self._on_resize):
            try:
                self.terminal.set_title(WINDOW_TITLE)
                self.state = replace(
                    self.state,
                    terminal_size=(self.terminal.columns, self.terminal.rows),
                )
                await self._initial_fetch()
                self.events.start()

                while self.state.running:
                    self.render()
                    event = await self.events.next()
                    self.handle(event)
            finally:
                await self.events.close()
                await self.coordinator.aclose()

        logger.info("Runtime stopped after %d events", self.events_processed)
        return self.state

    def render(self) -> None:
        self.screen.draw(
            render_dashboard(
                self.state,
                self.terminal.columns,
                self.terminal.rows,
                self.units,
                self.keybindings,
            )
        )

    def handle(self, event: Event) -> None:
        """Apply one event and start a fetch if the new state asks for one."""
        self.events_processed += 1
        state = apply(self.state, event, self.keybindings, self.fence_stale_results)

        if isinstance(event, FetchCompletedEvent):
            self.coordinator.complete(event)
            if event.error is not None:
                logger.warning("Fetch for %s failed: %s", event.city, event.error)

        if state.fetch_requested:
            self.coordinator.maybe_start_fetch(state)
            state = replace(state, fetch_requested=False)

        if state.fetch_in_flight != self.coordinator.busy:
            state = replace(state, fetch_in_flight=self.coordinator.busy)

        self.state = state

    # -- private ------------------------------------------------------------

    async def _initial_fetch(self) -> None:
        city = self.state.selected_city
        if city is None:
            return
        event = await self.coordinator.fetch_now(city)
        if event.error is not None:
            logger.warning("Initial fetch for %s failed: %s", city, event.error)
        self.state = apply(
            self.state, event, self.keybindings, self.fence_stale_results
        )

    def _on_resize(self) -> None:
        self.events.push_resize(self.terminal.columns, self.terminal.rows)
