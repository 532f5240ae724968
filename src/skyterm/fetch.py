"""Fetch coordinator: at most one outstanding weather request.

The coordinator turns the state's ``fetch_requested`` flag into a single
asyncio task. While that task is outstanding further requests are dropped
(coalesced); the runtime clears the flag either way. The task never touches
application state: it receives the city name by value and reports back by
pushing a :class:`~skyterm.events.FetchCompletedEvent` into the event
source.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from skyterm.events import EventSource, FetchCompletedEvent
from skyterm.state import AppState
from skyterm.weather import FetchError, WeatherRecord

logger = logging.getLogger(__name__)


class WeatherFetcher(Protocol):
    """Anything that can fetch one weather record (``WeatherClient``, fakes)."""

    async def fetch(self, city: str) -> WeatherRecord: ...


class FetchCoordinator:
    def __init__(self, client: WeatherFetcher, events: EventSource) -> None:
        self._client = client
        self._events = events
        self._task: asyncio.Task[None] | None = None
        self._busy: bool = False
        self._started: int = 0

    @property
    def busy(self) -> bool:
        """``True`` from the start of a fetch until its completion is processed."""
        return self._busy

    @property
    def started_count(self) -> int:
        """Number of fetches started by :meth:`maybe_start_fetch`."""
        return self._started

    def maybe_start_fetch(self, state: AppState) -> asyncio.Task[None] | None:
        """Start a fetch for the selected city if one is requested and none is running.

        The city is captured now; if the selection changes before the
        result arrives, the result is still delivered for this city.
        """
        if not state.fetch_requested:
            return None
        city = state.selected_city
        if city is None:
            return None
        if self._busy:
            logger.debug("Fetch for %s coalesced: a fetch is already in flight", city)
            return None

        self._busy = True
        self._started += 1
        logger.info("Fetching weather for %s", city)
        self._task = asyncio.get_running_loop().create_task(self._run(city))
        return self._task

    async def _run(self, city: str) -> None:
        self._events.push(await self._fetch_event(city))

    async def _fetch_event(self, city: str) -> FetchCompletedEvent:
        try:
            record = await self._client.fetch(city)
        except FetchError as exc:
            return FetchCompletedEvent(city=city, error=exc)
        except Exception as exc:
            logger.exception("Unexpected error while fetching %s", city)
            return FetchCompletedEvent(
                city=city, error=FetchError(str(exc) or type(exc).__name__, kind="unexpected")
            )
        return FetchCompletedEvent(city=city, record=record)

    def complete(self, event: FetchCompletedEvent) -> None:
        """Mark the outstanding fetch as resolved.

        Called by the runtime when it processes *event*, so the next request
        may start a fresh fetch.
        """
        self._busy = False
        self._task = None

    async def fetch_now(self, city: str) -> FetchCompletedEvent:
        """Fetch *city* inline and return the outcome as an event.

        Used once at startup, before the loop runs; it does not go through
        the queue and does not mark the coordinator busy.
        """
        return await self._fetch_event(city)

    async def aclose(self) -> None:
        """Cancel an outstanding fetch; its result is discarded."""
        task, self._task = self._task, None
        self._busy = False
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
