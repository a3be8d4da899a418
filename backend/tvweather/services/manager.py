"""Registry of paired devices.

Loads paired stations from the database at startup, pairs new ones, and
removes them. Every device gets its own API client so api_error events only
reach the device that made the request.
"""

import logging
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from ..config import settings
from ..models.database import SessionLocal
from ..models.device import DeviceModel
from ..schemas.station import PairingCandidate
from .device import DEFAULT_CAPABILITIES, SETTING_REFRESH, WeatherDevice
from .flow import SNOW_CHANGED, FlowTriggerCard
from .host import (
    DbSettingsStore,
    HttpImageFactory,
    ImageFactory,
    LocaleTranslator,
    MemoryCapabilityStore,
    Translator,
)
from .trafikverket import TrafikverketClient

logger = logging.getLogger(__name__)


class DeviceManager:
    """Owns every WeatherDevice and its persisted rows."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        client_factory: Callable[[], TrafikverketClient] = TrafikverketClient,
        image_factory: Optional[ImageFactory] = None,
        translator: Optional[Translator] = None,
    ):
        self._session_factory = session_factory
        self._client_factory = client_factory
        self._image_factory = image_factory or HttpImageFactory()
        self._translator = translator or LocaleTranslator()
        self.snow_changed = FlowTriggerCard(SNOW_CHANGED)
        self.devices: dict[str, WeatherDevice] = {}

    def get(self, station_id: str) -> Optional[WeatherDevice]:
        return self.devices.get(station_id)

    def _build(self, station_id: str, name: str) -> WeatherDevice:
        return WeatherDevice(
            station_id=station_id,
            name=name,
            client=self._client_factory(),
            settings=DbSettingsStore(station_id, self._session_factory),
            capabilities=MemoryCapabilityStore(DEFAULT_CAPABILITIES),
            images=self._image_factory,
            translator=self._translator,
            snow_trigger=self.snow_changed,
        )

    async def load(self) -> int:
        """Start a device for every paired station. Returns the count."""
        db = self._session_factory()
        try:
            rows = [(r.station_id, r.name) for r in db.query(DeviceModel).all()]
        finally:
            db.close()

        for station_id, name in rows:
            device = self._build(station_id, name)
            self.devices[station_id] = device
            try:
                await device.start()
            except Exception as exc:
                logger.error("Failed to start weather station '%s': %s", name, exc, exc_info=True)
        logger.info("Loaded %d paired weather stations", len(rows))
        return len(rows)

    async def add(self, candidate: PairingCandidate) -> WeatherDevice:
        """Pair a station picked from the pairing list and start polling it."""
        station_id = candidate.data.id
        if station_id in self.devices:
            raise ValueError(f"Station '{station_id}' is already paired")

        db = self._session_factory()
        try:
            db.add(DeviceModel(station_id=station_id, name=candidate.name))
            db.commit()
        finally:
            db.close()

        device = self._build(station_id, candidate.name)
        if device.settings.get(SETTING_REFRESH) is None:
            device.settings.set(SETTING_REFRESH, settings.refresh_interval_min)
        self.devices[station_id] = device
        logger.info("Paired weather station '%s' (%s)", candidate.name, station_id)
        await device.start()
        return device

    async def remove(self, station_id: str) -> bool:
        device = self.devices.pop(station_id, None)
        if device is None:
            return False
        logger.info("Deleting Trafikverket weather station '%s'", device.name)
        device.stop()

        DbSettingsStore(station_id, self._session_factory).delete_all()
        db = self._session_factory()
        try:
            db.query(DeviceModel).filter_by(station_id=station_id).delete()
            db.commit()
        finally:
            db.close()
        return True

    async def update_settings(self, station_id: str, values: dict[str, Any]) -> dict[str, Any]:
        """Persist settings and let the device react to the changed keys."""
        device = self.devices.get(station_id)
        if device is None:
            raise KeyError(station_id)

        old_settings = device.settings.all()
        changed = [k for k, v in values.items() if old_settings.get(k) != v]
        device.settings.set_many(values)
        new_settings = {**old_settings, **values}
        if changed:
            await device.on_settings(old_settings, new_settings, changed)
        return new_settings

    async def shutdown(self) -> None:
        for device in self.devices.values():
            device.stop()
        logger.info("Stopped %d weather stations", len(self.devices))
