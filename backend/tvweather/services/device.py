"""Per-station device: polls Trafikverket and keeps capabilities current.

One WeatherDevice per paired station. It owns its refresh timer, its
capability values and its camera images; nothing is shared between
devices. A poll failure is logged and written to the device's
``last_error`` setting, and the timer keeps running.
"""

import asyncio
import json
import logging
import traceback
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from ..config import settings as app_settings
from ..protocol.constants import API_ERROR_EVENT
from ..protocol.enums import decode_precipitation_name
from ..schemas.station import WeatherMeasurepoint
from .calculations import camera_image_url, compass_point
from .errors import TrafikverketError
from .host import CapabilityStore, ImageFactory, ImageHandle, SettingsStore, Translator
from .trafikverket import TrafikverketClient

logger = logging.getLogger(__name__)

# Capability id -> Observation attribute
CAPABILITY_FIELDS: dict[str, str] = {
    "measure_temperature": "air_temperature",
    "measure_temperature.surface": "surface_temperature",
    "measure_humidity": "relative_humidity",
    "measure_wind_strength": "wind_speed",
    "measure_wind_angle": "wind_direction",
    "measure_gust_strength": "wind_gust_speed",
    "measure_rain": "rain_sum",
    "measure_rain.snow": "snow_sum_solid",
    "measure_rain.total": "total_water_equivalent",
}

WIND_TEXT_CAPABILITY = "wind_angle_text"
PRECIPITATION_CAPABILITY = "precipitation_type"
SNOW_CAPABILITY = "measure_rain.snow"

DEFAULT_CAPABILITIES = list(CAPABILITY_FIELDS) + [WIND_TEXT_CAPABILITY, PRECIPITATION_CAPABILITY]
# Added to devices paired before these existed
REQUIRED_CAPABILITIES = ["measure_rain.snow", "measure_rain.total"]

SETTING_REFRESH = "refresh_status_cloud"
SETTING_LAST_RESPONSE = "last_response"
SETTING_LAST_ERROR = "last_error"

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class CameraImage:
    """A roadside camera photo tracked by a device."""
    id: str
    name: str
    image: ImageHandle
    last_refreshed: Optional[datetime] = None

    @property
    def url(self) -> Optional[str]:
        return self.image.url

    async def refresh(self) -> None:
        await self.image.update()
        self.last_refreshed = datetime.now(timezone.utc)


class WeatherDevice:
    """Manages the polling lifecycle of one weather station."""

    def __init__(
        self,
        station_id: str,
        name: str,
        client: TrafikverketClient,
        settings: SettingsStore,
        capabilities: CapabilityStore,
        images: ImageFactory,
        translator: Translator,
        snow_trigger: Any = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.station_id = station_id
        self.name = name
        self.client = client
        self.settings = settings
        self.capabilities = capabilities
        self.images = images
        self.translator = translator
        self.snow_trigger = snow_trigger
        self.camera_images: dict[str, CameraImage] = {}
        self._sleep = sleep
        self._timer_task: Optional[asyncio.Task] = None
        self._tick_task: Optional[asyncio.Task] = None
        self._polling = False
        self._deleted = False
        self._last_poll: Optional[datetime] = None
        self._poll_count = 0
        self._failures = 0
        self.client.on(API_ERROR_EVENT, self._on_api_error)

    @property
    def refresh_interval_min(self) -> float:
        value = self.settings.get(SETTING_REFRESH, app_settings.refresh_interval_min)
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.warning("Invalid %s '%s', using default", SETTING_REFRESH, value)
            return float(app_settings.refresh_interval_min)

    @property
    def timer_active(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    @property
    def stats(self) -> dict:
        return {
            "station_id": self.station_id,
            "name": self.name,
            "refresh_interval_min": self.refresh_interval_min,
            "timer_active": self.timer_active,
            "polling": self._polling,
            "last_poll": self._last_poll.isoformat() if self._last_poll else None,
            "polls": self._poll_count,
            "failures": self._failures,
            "cameras": [
                {
                    "id": c.id,
                    "name": c.name,
                    "url": c.url,
                    "last_refreshed": c.last_refreshed.isoformat() if c.last_refreshed else None,
                }
                for c in self.camera_images.values()
            ],
        }

    # --- Lifecycle ---

    async def start(self) -> None:
        """Poll once right away, load camera images, then arm the timer."""
        logger.info("Trafikverket weather station initiated, '%s'", self.name)
        if self._deleted:
            self._deleted = False
            self.client.on(API_ERROR_EVENT, self._on_api_error)
        self.setup_capabilities()
        await self.poll_once()
        await self.initialize_camera_images()
        self._arm_timer(self.refresh_interval_min)

    def stop(self) -> None:
        """Cancel the timer. Safe to call more than once."""
        if not self._deleted:
            logger.info("Stopping weather station '%s'", self.name)
        self._deleted = True
        self._cancel_timer()
        self.client.off(API_ERROR_EVENT, self._on_api_error)

    async def on_settings(
        self,
        old_settings: dict[str, Any],
        new_settings: dict[str, Any],
        changed_keys: list[str],
    ) -> None:
        if SETTING_REFRESH in changed_keys:
            interval = new_settings.get(SETTING_REFRESH)
            logger.info("Refresh cloud value was changed to: %s", interval)
            self._arm_timer(float(interval))

    def setup_capabilities(self) -> None:
        for capability in REQUIRED_CAPABILITIES:
            if not self.capabilities.has(capability):
                logger.info("Adding missing capability '%s'", capability)
                self.capabilities.add(capability)

    # --- Timer ---

    def _arm_timer(self, interval_min: float) -> None:
        """Replace any running timer with one firing every ``interval_min``."""
        self._cancel_timer()
        if self._deleted:
            return
        interval = interval_min * 60
        logger.info("Polling '%s' every %.0fs", self.name, interval)
        self._timer_task = asyncio.create_task(self._run_timer(interval))

    def _cancel_timer(self) -> None:
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None

    async def _run_timer(self, interval: float) -> None:
        # Each tick polls in its own task so re-arming the timer never aborts a fetch
        while True:
            await self._sleep(interval)
            self._tick_task = asyncio.create_task(self.poll_once())

    # --- Polling ---

    async def poll_once(self) -> bool:
        """Fetch the latest observation and update capabilities.

        Returns True when capabilities were updated. Never raises.
        """
        if self._polling:
            logger.warning("Poll for '%s' still in progress, skipping", self.name)
            return False

        self._polling = True
        updated = False
        try:
            point = await self.client.fetch_station_observation(self.station_id)
            if self._deleted:
                logger.debug("Discarding observation for removed device '%s'", self.name)
                return False
            await self._apply(point)
            self._persist_settings({
                SETTING_LAST_RESPONSE: json.dumps(point.raw, indent=2, ensure_ascii=False),
            })
            self._last_poll = datetime.now(timezone.utc)
            self._poll_count += 1
            updated = True
        except TrafikverketError as exc:
            # Already written to last_error by the api_error listener
            self._failures += 1
            logger.error("Poll failed for '%s': %s", self.name, exc)
        except Exception as exc:
            self._failures += 1
            logger.error("Poll failed for '%s': %s", self.name, exc, exc_info=True)
            self._record_error(exc)
        finally:
            self._polling = False

        if not self._deleted:
            await self._refresh_images()
        return updated

    async def _apply(self, point: WeatherMeasurepoint) -> None:
        obs = point.observation
        for capability, field in CAPABILITY_FIELDS.items():
            await self._update_property(capability, getattr(obs, field))

        text = self.translator.translate(f"wind.{compass_point(obs.wind_direction)}")
        await self._update_property(WIND_TEXT_CAPABILITY, text)

        if obs.precipitation_type is not None:
            key = decode_precipitation_name(obs.precipitation_type)
            await self._update_property(PRECIPITATION_CAPABILITY, self.translator.translate(key))

    async def _update_property(self, key: str, value: Any) -> None:
        """Write a capability every poll; only snow changes fire a trigger."""
        if not self.capabilities.has(key):
            return
        old_value = self.capabilities.get(key)
        self.capabilities.set(key, value)
        if (key == SNOW_CAPABILITY
                and old_value is not None and value is not None
                and old_value != value):
            await self._trigger_snow_changed(value)

    async def _trigger_snow_changed(self, snow: Any) -> None:
        if self.snow_trigger is None:
            return
        try:
            await self.snow_trigger.trigger(self, {"snow": snow})
        except Exception as exc:
            logger.error("Snow changed trigger failed for '%s': %s", self.name, exc)

    # --- Cameras ---

    async def initialize_camera_images(self) -> None:
        logger.info("Initializing camera images for '%s'", self.name)
        try:
            cameras = await self.client.fetch_station_cameras(self.name)
        except TrafikverketError as exc:
            logger.error("Camera lookup failed for '%s': %s", self.name, exc)
            return
        except Exception as exc:
            logger.error("Camera lookup failed for '%s': %s", self.name, exc, exc_info=True)
            return

        for camera in cameras:
            if camera.id in self.camera_images:
                continue
            logger.info("Camera '%s' for station '%s'", camera.name, self.name)
            try:
                image = self.images.create_image()
                image.set_url(camera_image_url(camera))
            except Exception as exc:
                logger.error("Failed to set up camera '%s': %s", camera.name, exc, exc_info=True)
                continue
            self.camera_images[camera.id] = CameraImage(camera.id, camera.name, image)

    async def _refresh_images(self) -> None:
        """Re-download every camera photo; the URLs never change."""
        for camera in list(self.camera_images.values()):
            try:
                await camera.refresh()
            except Exception as exc:
                logger.error("Failed to refresh camera '%s': %s", camera.name, exc)

    # --- Errors ---

    async def _on_api_error(self, error: TrafikverketError) -> None:
        if self._deleted:
            return
        logger.error("API error for '%s': %s", self.name, error)
        self._record_error(error)

    def _record_error(self, error: Any) -> None:
        """Store "<ISO timestamp>\\n<trace or JSON>" in the last_error setting."""
        if isinstance(error, BaseException):
            message = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        else:
            try:
                message = json.dumps(error, indent=2, ensure_ascii=False)
            except (TypeError, ValueError) as exc:
                logger.debug("Failed to stringify object: %s", exc)
                message = str(error)
        stamp = datetime.now(timezone.utc).isoformat()
        self._persist_settings({SETTING_LAST_ERROR: f"{stamp}\n{message}"})

    def _persist_settings(self, values: dict[str, Any]) -> None:
        try:
            self.settings.set_many(values)
        except Exception as exc:
            logger.error("Failed to update settings for '%s': %s", self.name, exc)
