"""Tests for skyterm.events -- event types and the merged source."""

from __future__ import annotations

import asyncio

import pytest

from skyterm.events import (
    EventSource,
    FetchCompletedEvent,
    KeyEvent,
    ResizeEvent,
    TickEvent,
)
from skyterm.weather import FetchError, WeatherRecord


class TestEventTypes:
    def test_type_tags(self) -> None:
        assert TickEvent().type == "tick"
        assert KeyEvent(key="q").type == "key"
        assert ResizeEvent(columns=80, rows=24).type == "resize"
        assert FetchCompletedEvent(city="A").type == "fetch_completed"

    def test_completion_ok(self) -> None:
        assert FetchCompletedEvent(city="A", record=WeatherRecord()).ok is True
        assert FetchCompletedEvent(city="A", error=FetchError("x")).ok is False


class TestEventSource:
    def test_rejects_non_positive_tick_rate(self) -> None:
        with pytest.raises(ValueError):
            EventSource(tick_rate=0)

    @pytest.mark.asyncio
    async def test_push_input_parses_keys(self) -> None:
        source = EventSource()
        source.push_input("\x1b[A")
        source.push_input("q")
        source.push_input("\x1b[99x")
        assert await source.next() == KeyEvent(key="up", data="\x1b[A")
        assert await source.next() == KeyEvent(key="q", data="q")
        assert await source.next() == KeyEvent(key=None, data="\x1b[99x")

    @pytest.mark.asyncio
    async def test_fifo_across_producers(self) -> None:
        source = EventSource()
        source.push_input("j")
        source.push_resize(100, 40)
        source.push(FetchCompletedEvent(city="A"))
        source.push_input("k")
        assert source.pending == 4

        kinds = [(await source.next()).type for _ in range(4)]
        assert kinds == ["key", "resize", "fetch_completed", "key"]
        assert source.pending == 0

    @pytest.mark.asyncio
    async def test_timer_emits_ticks(self) -> None:
        source = EventSource(tick_rate=0.01)
        source.start()
        assert source.running
        try:
            event = await asyncio.wait_for(source.next(), timeout=1.0)
            assert isinstance(event, TickEvent)
        finally:
            await source.close()
        assert not source.running

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self) -> None:
        source = EventSource(tick_rate=0.01)
        source.start()
        task = source._timer_task
        source.start()
        assert source._timer_task is task
        await source.close()

    @pytest.mark.asyncio
    async def test_close_keeps_queued_events(self) -> None:
        source = EventSource(tick_rate=10)
        source.start()
        source.push_input("x")
        await source.close()
        await source.close()
        assert (await source.next()).key == "x"

    @pytest.mark.asyncio
    async def test_async_iteration(self) -> None:
        source = EventSource()
        for ch in "abc":
            source.push_input(ch)
        seen = []
        async for event in source:
            seen.append(event.key)
            if len(seen) == 3:
                break
        assert seen == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_next_waits_for_producer(self) -> None:
        source = EventSource()
        loop = asyncio.get_running_loop()
        loop.call_later(0.01, source.push_resize, 90, 30)
        event = await asyncio.wait_for(source.next(), timeout=1.0)
        assert event == ResizeEvent(columns=90, rows=30)
