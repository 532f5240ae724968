"""OpenWeatherMap current-weather client.

Uses raw HTTP via httpx (no SDK). One call to :meth:`WeatherClient.fetch`
performs exactly one request; there is no retry logic. Every failure is
raised as :class:`FetchError` so callers only need one ``except`` clause.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Literal

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openweathermap.org/data/2.5/weather"
ICON_URL_FMT = "https://openweathermap.org/img/wn/{}@2x.png"
DEFAULT_TIMEOUT = 10.0
MAX_ERROR_BODY = 200  # characters of a failed response kept in the message

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

Units = Literal["metric", "imperial", "standard"]

FetchErrorKind = Literal["config", "network", "status", "payload", "unexpected"]


class FetchError(Exception):
    """A weather request that produced no usable record.

    ``kind`` tells the cases apart: ``config`` (no API key), ``network``
    (transport failure or timeout), ``status`` (non-2xx response),
    ``payload`` (body is not the expected JSON shape) and ``unexpected``.
    """

    def __init__(
        self,
        message: str,
        kind: FetchErrorKind = "network",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status_code = status_code

    def __str__(self) -> str:
        return self.message


# --- Wire format ---
#
# Every field is optional: OpenWeatherMap omits keys it has no data for
# (visibility, sunrise in polar regions, ...). Numbers are floats on the
# wire because the API is not consistent about integers.


class _MainBlock(BaseModel):
    temp: float | None = None
    feels_like: float | None = None
    temp_min: float | None = None
    temp_max: float | None = None
    pressure: float | None = None
    humidity: float | None = None


class _Condition(BaseModel):
    main: str | None = None
    description: str | None = None
    icon: str | None = None


class _Wind(BaseModel):
    speed: float | None = None
    deg: float | None = None


class _Clouds(BaseModel):
    all: float | None = None


class _Sys(BaseModel):
    country: str | None = None
    sunrise: int | None = None
    sunset: int | None = None


class CurrentWeatherPayload(BaseModel):
    """Subset of the ``/data/2.5/weather`` response that the dashboard shows."""

    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    main: _MainBlock | None = None
    weather: list[_Condition] | None = None
    wind: _Wind | None = None
    clouds: _Clouds | None = None
    sys: _Sys | None = None
    visibility: float | None = None
    dt: int | None = None


# --- Record ---


class WeatherRecord(BaseModel):
    """Immutable snapshot of one successful weather query."""

    model_config = ConfigDict(frozen=True)

    name: str = "Unknown"
    country: str = "--"

    temperature: float = 0.0
    feels_like: float = 0.0
    temp_min: float = 0.0
    temp_max: float = 0.0

    weather_main: str = "Unknown"
    description: str = "Unknown"
    icon: str = ""

    humidity: int = 0  # percent
    pressure: int = 0  # hPa
    wind_speed: float = 0.0  # m/s (mph for imperial units)
    wind_direction: int = 0  # degrees
    visibility: int = 0  # metres
    clouds: int = 0  # percent

    sunrise: datetime | None = None
    sunset: datetime | None = None

    # The current-weather endpoint carries no hourly series; a forecast
    # endpoint would fill this in.
    hourly_temps: tuple[float, ...] | None = None

    timestamp: datetime = Field(default=EPOCH)

    @property
    def icon_url(self) -> str | None:
        return icon_url(self.icon) if self.icon else None


def icon_url(icon_id: str) -> str:
    """Return the URL of the condition icon *icon_id*."""
    return ICON_URL_FMT.format(icon_id)


def request_params(city: str, api_key: str, units: str = "metric") -> dict[str, str]:
    """Query parameters for a current-weather request."""
    return {"q": city, "appid": api_key, "units": units}


def _utc(ts: int | None) -> datetime | None:
    if ts is None:
        return None
    try:
        return datetime.fromtimestamp(ts, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _int(value: float | None) -> int:
    return int(round(value)) if value is not None else 0


def _error_body(text: str) -> str:
    """Flatten a response body to one line of at most MAX_ERROR_BODY characters."""
    flat = " ".join(text.split())
    if len(flat) > MAX_ERROR_BODY:
        return flat[: MAX_ERROR_BODY - 1] + "…"
    return flat


def parse_weather(payload: Any) -> WeatherRecord:
    """Build a :class:`WeatherRecord` from a decoded JSON *payload*.

    Missing keys fall back to placeholders and never fail. A payload that
    is not an object, or whose values have the wrong shape, raises
    :class:`FetchError` with kind ``payload``.
    """
    if not isinstance(payload, dict):
        raise FetchError(
            f"Unexpected payload type: {type(payload).__name__}", kind="payload"
        )
    try:
        wire = CurrentWeatherPayload.model_validate(payload)
    except ValidationError as exc:
        raise FetchError(
            f"Malformed weather payload: {exc.error_count()} invalid field(s)",
            kind="payload",
        ) from exc

    main = wire.main or _MainBlock()
    condition = wire.weather[0] if wire.weather else _Condition()
    wind = wire.wind or _Wind()
    clouds = wire.clouds or _Clouds()
    sys_block = wire.sys or _Sys()

    return WeatherRecord(
        name=wire.name or "Unknown",
        country=sys_block.country or "--",
        temperature=main.temp or 0.0,
        feels_like=main.feels_like or 0.0,
        temp_min=main.temp_min or 0.0,
        temp_max=main.temp_max or 0.0,
        weather_main=condition.main or "Unknown",
        description=condition.description or "Unknown",
        icon=condition.icon or "",
        humidity=_int(main.humidity),
        pressure=_int(main.pressure),
        wind_speed=wind.speed or 0.0,
        wind_direction=_int(wind.deg),
        visibility=_int(wire.visibility),
        clouds=_int(clouds.all),
        sunrise=_utc(sys_block.sunrise),
        sunset=_utc(sys_block.sunset),
        hourly_temps=None,
        timestamp=_utc(wire.dt) or EPOCH,
    )


# --- Client ---


class WeatherClient:
    """Async client for the OpenWeatherMap current-weather endpoint.

    An ``http_client`` may be injected (tests pass one built on
    ``httpx.MockTransport``); otherwise the client owns its own
    ``httpx.AsyncClient`` and closes it in :meth:`aclose`.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        units: str = "metric",
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url
        self.units = units
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def fetch(self, city: str) -> WeatherRecord:
        """Fetch current weather for *city*. Raises :class:`FetchError`."""
        if not self.api_key:
            raise FetchError(
                "No API key configured (set OPENWEATHER_API_KEY)", kind="config"
            )

        logger.debug("Fetching weather for %s", city)
        try:
            response = await self._client.get(
                self.base_url, params=request_params(city, self.api_key, self.units)
            )
        except httpx.HTTPError as exc:
            raise FetchError(f"Request for {city} failed: {exc}", kind="network") from exc

        if not response.is_success:
            raise FetchError(
                f"API error ({response.status_code}): {_error_body(response.text)}",
                kind="status",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError(f"Response for {city} is not JSON", kind="payload") from exc

        return parse_weather(payload)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> WeatherClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
