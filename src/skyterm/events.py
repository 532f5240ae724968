"""Event types and the merged event source.

Three producers feed one ``asyncio.Queue``:

* the timer task, which pushes a :class:`TickEvent` every ``tick_rate``
  seconds;
* the terminal, whose input and resize callbacks become
  :class:`KeyEvent` and :class:`ResizeEvent`;
* the fetch coordinator, which pushes :class:`FetchCompletedEvent`.

The queue is FIFO, so each producer's events keep their order and events
from different producers are served in arrival order. It is unbounded
(``maxsize=0``): the consumer drains it far faster than a 10 Hz timer and
a human can fill it, and dropping a key press or a fetch result would be a
visible bug.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Literal, Union

from skyterm.tui.keys import parse_key
from skyterm.weather import FetchError, WeatherRecord

logger = logging.getLogger(__name__)

DEFAULT_TICK_RATE = 0.1  # seconds


# --- Events ---


@dataclass(frozen=True)
class TickEvent:
    type: Literal["tick"] = "tick"


@dataclass(frozen=True)
class KeyEvent:
    """A key press. ``key`` is ``None`` for sequences ``parse_key`` does not know."""

    key: str | None
    data: str = ""
    type: Literal["key"] = "key"


@dataclass(frozen=True)
class ResizeEvent:
    columns: int
    rows: int
    type: Literal["resize"] = "resize"


@dataclass(frozen=True)
class FetchCompletedEvent:
    """Outcome of one fetch. Exactly one of ``record`` and ``error`` is set."""

    city: str
    record: WeatherRecord | None = None
    error: FetchError | None = field(default=None, compare=False)
    type: Literal["fetch_completed"] = "fetch_completed"

    @property
    def ok(self) -> bool:
        return self.error is None


Event = Union[TickEvent, KeyEvent, ResizeEvent, FetchCompletedEvent]


# --- Source ---


class EventSource:
    """Merges timer, terminal and fetch events into one ordered stream."""

    def __init__(self, tick_rate: float = DEFAULT_TICK_RATE) -> None:
        if tick_rate <= 0:
            raise ValueError(f"tick_rate must be positive, got {tick_rate}")
        self.tick_rate = tick_rate
        self._queue: asyncio.Queue[Event] = asyncio.Queue()
        self._timer_task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> int:
        """Number of events waiting to be consumed."""
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    # -- producers ----------------------------------------------------------

    def push(self, event: Event) -> None:
        self._queue.put_nowait(event)

    def push_input(self, data: str) -> None:
        """Terminal input callback: one complete sequence becomes one key."""
        self.push(KeyEvent(key=parse_key(data), data=data))

    def push_resize(self, columns: int, rows: int) -> None:
        self.push(ResizeEvent(columns=columns, rows=rows))

    # -- timer --------------------------------------------------------------

    def start(self) -> None:
        """Start the timer producer. Must be called from a running loop."""
        if self.running:
            return
        self._timer_task = asyncio.get_running_loop().create_task(self._tick_loop())

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.tick_rate)
            self.push(TickEvent())

    async def close(self) -> None:
        """Stop the timer producer. Already-queued events stay queued."""
        task, self._timer_task = self._timer_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    # -- consumer -----------------------------------------------------------

    async def next(self) -> Event:
        """Wait for and return the next event."""
        return await self._queue.get()

    async def __aiter__(self) -> AsyncIterator[Event]:
        while True:
            yield await self._queue.get()
