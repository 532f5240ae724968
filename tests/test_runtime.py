"""End-to-end tests for skyterm.runtime against a VirtualTerminal."""

from __future__ import annotations

import asyncio
from typing import Callable

import pytest

from skyterm.events import FetchCompletedEvent
from skyterm.runtime import Runtime
from skyterm.state import AppState, InputMode
from skyterm.weather import FetchError, WeatherRecord

from .virtual_terminal import VirtualTerminal

TICK = 0.01


class FakeClient:
    """Fake weather client. While ``blocking`` is set, fetches wait for ``release()``."""

    def __init__(self, fail: dict[str, FetchError] | None = None) -> None:
        self.calls: list[str] = []
        self.fail = fail or {}
        self.blocking = False
        self.in_flight = 0
        self.max_in_flight = 0
        self._gate = asyncio.Event()

    def release(self) -> None:
        self._gate.set()

    async def fetch(self, city: str) -> WeatherRecord:
        self.calls.append(city)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.blocking:
                await self._gate.wait()
        finally:
            self.in_flight -= 1
        if city in self.fail:
            raise self.fail[city]
        return WeatherRecord(name=city, country="XX", temperature=len(city))


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


class Harness:
    def __init__(self, state: AppState | None = None, client: FakeClient | None = None, **kwargs) -> None:
        self.terminal = VirtualTerminal(rows=30, columns=80)
        self.client = client or FakeClient()
        self.runtime = Runtime(
            state or AppState(), self.terminal, self.client, tick_rate=TICK, **kwargs
        )
        self.task: asyncio.Task[AppState] | None = None

    @property
    def state(self) -> AppState:
        return self.runtime.state

    async def start(self) -> None:
        self.task = asyncio.get_running_loop().create_task(self.runtime.run())
        await wait_until(lambda: self.terminal.started and self.runtime.events.running)
        await wait_until(lambda: "Weather CLI Dashboard" in self.terminal.screen_text())

    def keys(self, *data: str) -> None:
        for d in data:
            self.terminal.simulate_input(d)

    async def quit(self) -> AppState:
        self.keys("q")
        assert self.task is not None
        return await asyncio.wait_for(self.task, timeout=2.0)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_initial_fetch_and_quit(self) -> None:
        h = Harness()
        await h.start()

        assert h.client.calls == ["Bucharest"]
        assert h.state.current_weather.name == "Bucharest"
        assert h.state.terminal_size == (80, 30)
        assert "Bucharest, XX" in h.terminal.screen_text()
        assert h.terminal.title == "skyterm"

        final = await h.quit()
        assert final.running is False
        assert h.terminal.stop_count == 1
        assert not h.terminal.started
        assert not h.runtime.events.running

    @pytest.mark.asyncio
    async def test_initial_fetch_failure_is_not_fatal(self) -> None:
        client = FakeClient(fail={"Bucharest": FetchError("API error (401): Invalid API key", kind="status", status_code=401)})
        h = Harness(client=client)
        await h.start()

        assert h.state.current_weather is None
        assert h.state.last_error == "API error (401): Invalid API key"
        await wait_until(lambda: "Invalid API key" in h.terminal.screen_text())
        await h.quit()

    @pytest.mark.asyncio
    async def test_empty_city_list_skips_initial_fetch(self) -> None:
        h = Harness(state=AppState(cities=()))
        await h.start()
        assert h.client.calls == []
        await h.quit()

    @pytest.mark.asyncio
    async def test_terminal_setup_failure_propagates(self) -> None:
        terminal = VirtualTerminal(fail_on_start=OSError("not a tty"))
        runtime = Runtime(AppState(), terminal, FakeClient(), tick_rate=TICK)
        with pytest.raises(OSError):
            await runtime.run()
        assert terminal.stop_count == 1

    @pytest.mark.asyncio
    async def test_error_in_loop_restores_terminal(self) -> None:
        h = Harness()
        await h.start()
        h.runtime.events.push(object())  # type: ignore[arg-type]
        with pytest.raises(TypeError):
            await asyncio.wait_for(h.task, timeout=2.0)
        assert h.terminal.stop_count == 1
        assert not h.runtime.events.running

    @pytest.mark.asyncio
    async def test_quit_while_fetch_in_flight(self) -> None:
        h = Harness()
        await h.start()
        h.client.blocking = True
        h.keys("j")
        await wait_until(lambda: h.client.in_flight == 1)

        final = await h.quit()
        assert final.running is False
        assert final.current_weather.name == "Bucharest"
        assert h.client.in_flight == 0
        assert h.runtime.coordinator.busy is False


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------


class TestFetching:
    @pytest.mark.asyncio
    async def test_navigation_fetches_selected_city(self) -> None:
        h = Harness()
        await h.start()

        h.keys("j")
        await wait_until(lambda: h.state.current_weather.name == "London")
        assert h.state.selected == 1
        assert h.state.fetch_requested is False
        assert h.state.fetch_in_flight is False
        await wait_until(lambda: "London, XX" in h.terminal.screen_text())
        await h.quit()

    @pytest.mark.asyncio
    async def test_at_most_one_fetch_in_flight(self) -> None:
        h = Harness()
        await h.start()
        h.client.blocking = True

        h.keys("\x1b[B", "\x1b[B", "\x1b[B")
        await wait_until(lambda: h.state.selected == 3)
        await wait_until(lambda: h.client.in_flight == 1)

        assert h.client.calls == ["Bucharest", "London"]
        assert h.runtime.coordinator.started_count == 1
        assert h.state.fetch_in_flight is True
        assert h.state.fetch_requested is False
        await wait_until(lambda: "updating" in h.terminal.screen_text())

        h.client.release()
        await wait_until(lambda: not h.state.fetch_in_flight)
        # The coalesced result is for the city captured at start
        assert h.state.current_weather.name == "London"
        assert h.client.max_in_flight == 1

        h.keys("r")
        await wait_until(lambda: h.state.current_weather.name == "Budapest")
        assert h.client.calls == ["Bucharest", "London", "Budapest"]
        await h.quit()

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_stale_weather(self) -> None:
        client = FakeClient(fail={"London": FetchError("Request for London failed", kind="network")})
        h = Harness(client=client)
        await h.start()

        h.keys("j")
        await wait_until(lambda: h.state.last_error is not None)
        assert h.state.current_weather.name == "Bucharest"
        assert h.state.last_error == "Request for London failed"
        assert h.state.running is True
        await h.quit()

    @pytest.mark.asyncio
    async def test_fenced_results_for_old_selection_are_dropped(self) -> None:
        h = Harness(fence_stale_results=True)
        await h.start()
        h.client.blocking = True

        h.keys("j", "j")
        await wait_until(lambda: h.state.selected == 2 and h.client.in_flight == 1)
        h.client.release()
        await wait_until(lambda: not h.state.fetch_in_flight)
        assert h.state.current_weather.name == "Bucharest"
        await h.quit()

    @pytest.mark.asyncio
    async def test_completion_clears_busy_through_handle(self) -> None:
        h = Harness()
        await h.start()
        h.runtime.handle(FetchCompletedEvent(city="Bucharest", record=WeatherRecord(name="Bucharest")))
        assert h.runtime.coordinator.busy is False
        assert h.state.fetch_in_flight is False
        await h.quit()


# ---------------------------------------------------------------------------
# Editing, resize
# ---------------------------------------------------------------------------


class TestInteraction:
    @pytest.mark.asyncio
    async def test_add_city(self) -> None:
        h = Harness()
        await h.start()

        h.keys("a")
        await wait_until(lambda: h.state.mode is InputMode.EDITING)
        await wait_until(lambda: h.terminal.cursor_visible)
        assert "Add City" in h.terminal.screen_text()

        h.keys("O", "s", "l", "o")
        await wait_until(lambda: h.state.pending_input == "Oslo")
        h.keys("\r")
        await wait_until(lambda: h.state.current_weather.name == "Oslo")

        assert h.state.cities[-1] == "Oslo"
        assert h.state.selected == len(h.state.cities) - 1
        assert h.state.mode is InputMode.NORMAL
        await wait_until(lambda: not h.terminal.cursor_visible)
        await h.quit()

    @pytest.mark.asyncio
    async def test_escape_while_editing_does_not_quit(self) -> None:
        h = Harness()
        await h.start()
        h.keys("a", "x")
        await wait_until(lambda: h.state.pending_input == "x")
        h.keys("\x1b")
        await wait_until(lambda: h.state.mode is InputMode.NORMAL)
        assert h.state.running is True
        assert h.state.cities[-1] == "Toronto"
        await h.quit()

    @pytest.mark.asyncio
    async def test_delete_all_cities(self) -> None:
        h = Harness(state=AppState(cities=("A", "B")))
        await h.start()
        h.keys("d", "d")
        await wait_until(lambda: h.state.cities == ())
        await wait_until(lambda: not h.state.fetch_in_flight)
        assert h.state.current_weather is None
        await wait_until(lambda: "No cities" in h.terminal.screen_text())
        await h.quit()

    @pytest.mark.asyncio
    async def test_resize(self) -> None:
        h = Harness()
        await h.start()
        h.terminal.simulate_resize(rows=40, columns=100)
        await wait_until(lambda: h.state.terminal_size == (100, 40))
        assert h.runtime.screen.full_redraws >= 2
        await h.quit()

    @pytest.mark.asyncio
    async def test_ticks_keep_flowing(self) -> None:
        h = Harness()
        await h.start()
        before = h.runtime.events_processed
        await wait_until(lambda: h.runtime.events_processed >= before + 3)
        await h.quit()
