"""Paired device management.

GET    /api/devices                         - List paired devices
POST   /api/devices                         - Pair a station from the pairing list
GET    /api/devices/{id}                    - Capability values and poller status
DELETE /api/devices/{id}                    - Unpair
GET    /api/devices/{id}/settings           - Device settings
PUT    /api/devices/{id}/settings           - Update settings (re-arms the timer)
GET    /api/devices/{id}/conditions/{card}  - Evaluate a rain/snow condition card
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ..schemas.station import PairingCandidate
from ..services import flow
from ..services.device import WeatherDevice
from ..services.manager import DeviceManager

logger = logging.getLogger(__name__)
router = APIRouter()

# Set by main.py during startup
_manager: Optional[DeviceManager] = None

_CONDITIONS = {
    "rain": flow.rain_amount,
    "snow": flow.snow_amount,
}


def set_manager(manager: Optional[DeviceManager]) -> None:
    global _manager
    _manager = manager


def _get_manager() -> DeviceManager:
    if _manager is None:
        raise HTTPException(status_code=503, detail="Device manager not running")
    return _manager


def _get_device(station_id: str) -> WeatherDevice:
    device = _get_manager().get(station_id)
    if device is None:
        raise HTTPException(status_code=404, detail=f"Unknown device '{station_id}'")
    return device


def _summary(device: WeatherDevice) -> dict:
    return {
        "id": device.station_id,
        "name": device.name,
        "capabilities": {k: device.capabilities.get(k) for k in device.capabilities.keys()},
        "status": device.stats,
    }


class SettingsUpdate(BaseModel):
    """User-editable settings; last_response and last_error are written by the poller."""
    refresh_status_cloud: Optional[float] = Field(default=None, gt=0)


@router.get("/devices")
def list_devices():
    return [_summary(d) for d in _get_manager().devices.values()]


@router.post("/devices", status_code=201)
async def add_device(candidate: PairingCandidate):
    try:
        device = await _get_manager().add(candidate)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _summary(device)


@router.get("/devices/{station_id}")
def get_device(station_id: str):
    return _summary(_get_device(station_id))


@router.delete("/devices/{station_id}")
async def delete_device(station_id: str):
    if not await _get_manager().remove(station_id):
        raise HTTPException(status_code=404, detail=f"Unknown device '{station_id}'")
    return {"status": "ok"}


@router.get("/devices/{station_id}/settings")
def get_settings(station_id: str):
    return _get_device(station_id).settings.all()


@router.put("/devices/{station_id}/settings")
async def update_settings(station_id: str, update: SettingsUpdate):
    _get_device(station_id)
    values = {k: v for k, v in update.model_dump().items() if v is not None}
    if not values:
        raise HTTPException(status_code=400, detail="No settings to update")
    return await _get_manager().update_settings(station_id, values)


@router.get("/devices/{station_id}/conditions/{card}")
def check_condition(station_id: str, card: str, amount: float):
    check = _CONDITIONS.get(card)
    if check is None:
        raise HTTPException(status_code=404, detail=f"Unknown condition '{card}'")
    return {"card": card, "amount": amount, "result": check(_get_device(station_id), amount)}
