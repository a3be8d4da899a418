"""Trafikverket open data API client.

Builds XML queries, POSTs them to the data endpoint and unpacks the JSON
envelope ``{"RESPONSE": {"RESULT": [{"<ObjectType>": [...]}]}}``.

Each call opens its own httpx client; nothing is kept between requests.
Failures are raised to the caller and also published to every listener
registered for the ``api_error`` event.

API docs: https://api.trafikinfo.trafikverket.se/
"""

import inspect
import logging
from typing import Any, Callable, Optional

import httpx

from ..config import settings
from ..protocol.constants import (
    ACCEPT,
    API_ERROR_EVENT,
    CAMERA_FIELDS,
    CONTENT_TYPE,
    OBSERVATION_EXCLUDES,
    STATION_FIELDS,
    ObjectType,
)
from ..protocol.query import Query, build_request, eq, like_prefix, within_radius
from ..schemas.station import CameraRecord, StationRecord, WeatherMeasurepoint
from .calculations import get_path
from .errors import (
    ApiError,
    MalformedResponseError,
    StationNotFoundError,
    TrafikverketError,
    TransportError,
)

logger = logging.getLogger(__name__)

Listener = Callable[[TrafikverketError], Any]


class TrafikverketClient:
    """Async client for weather measure points and road cameras."""

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token if token is not None else settings.api_key
        self.base_url = base_url or settings.api_url
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self._transport = transport
        self._listeners: dict[str, list[Listener]] = {}

    # --- Event channel ---

    def on(self, event: str, listener: Listener) -> None:
        self._listeners.setdefault(event, []).append(listener)

    def off(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    async def _emit(self, event: str, error: TrafikverketError) -> None:
        """Deliver to every listener; a failing listener never masks the error."""
        for listener in list(self._listeners.get(event, [])):
            try:
                result = listener(error)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                logger.error("%s listener failed: %s", event, exc, exc_info=True)

    # --- Operations ---

    async def search_stations_by_name(self, name: str) -> list[StationRecord]:
        """Stations whose name starts with ``name``."""
        query = Query(
            ObjectType.WEATHER_MEASUREPOINT,
            like_prefix("Name", name),
            include=STATION_FIELDS,
        )
        rows = await self._request(query)
        return [StationRecord.model_validate(r) for r in rows]

    async def search_stations_by_location(
        self, lat: float, lon: float, radius: str,
    ) -> list[StationRecord]:
        """Stations within ``radius`` (e.g. "20000m") of a point."""
        query = Query(
            ObjectType.WEATHER_MEASUREPOINT,
            within_radius("Geometry.WGS84", lat, lon, radius),
            include=STATION_FIELDS,
        )
        rows = await self._request(query)
        return [StationRecord.model_validate(r) for r in rows]

    async def fetch_station_observation(self, station_id: str) -> WeatherMeasurepoint:
        query = Query(
            ObjectType.WEATHER_MEASUREPOINT,
            eq("Id", station_id),
            exclude=OBSERVATION_EXCLUDES,
        )
        rows = await self._request(query)
        if not rows:
            error = StationNotFoundError(200, f"No measure point with id '{station_id}'")
            await self._emit(API_ERROR_EVENT, error)
            raise error
        return WeatherMeasurepoint.from_raw(rows[0])

    async def fetch_station_cameras(self, station_name: str) -> list[CameraRecord]:
        query = Query(
            ObjectType.CAMERA,
            like_prefix("Name", station_name),
            include=CAMERA_FIELDS,
        )
        rows = await self._request(query)
        return [CameraRecord.model_validate(r) for r in rows]

    # --- Internal ---

    async def _request(self, query: Query) -> list[dict[str, Any]]:
        """Run a query and return the rows for its object type."""
        try:
            data = await self._post(build_request(self.token, query))
            return self._unpack(data, query.objecttype.value)
        except TrafikverketError as exc:
            await self._emit(API_ERROR_EVENT, exc)
            raise

    async def _post(self, body: str) -> dict[str, Any]:
        headers = {"content-type": CONTENT_TYPE, "Accept": ACCEPT}
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                resp = await client.post(self.base_url, content=body.encode("utf-8"), headers=headers)
        except httpx.TimeoutException as exc:
            logger.warning("Trafikverket request timed out after %.1fs", self.timeout)
            raise TransportError(TransportError.TIMEOUT, str(exc)) from exc
        except httpx.TransportError as exc:
            logger.warning("Trafikverket request failed: %s", exc)
            raise TransportError(TransportError.CONNECTION, str(exc)) from exc

        if not resp.is_success:
            raise ApiError(resp.status_code, resp.text)

        try:
            data = resp.json()
        except ValueError:
            raise MalformedResponseError(resp.status_code, resp.text) from None
        if not isinstance(data, dict):
            raise MalformedResponseError(resp.status_code, resp.text)
        return data

    @staticmethod
    def _unpack(data: dict[str, Any], objecttype: str) -> list[dict[str, Any]]:
        result = get_path(data, ("RESPONSE", "RESULT", 0), {})
        if isinstance(result, dict) and "ERROR" in result:
            message = get_path(result, ("ERROR", "MESSAGE"), str(result["ERROR"]))
            raise ApiError(200, message)
        rows = get_path(result, (objecttype,), [])
        return rows if isinstance(rows, list) else []
