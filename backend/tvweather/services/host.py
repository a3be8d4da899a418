"""Collaborators a device needs from its host.

Each is a Protocol so devices can be built with fakes in tests. The default
implementations cover a standalone install: settings persist in the
database, capabilities live in memory, camera images are fetched over HTTP,
and labels come from the bundled locale files.
"""

import json
import logging
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Protocol

import httpx
from sqlalchemy.orm import Session

from ..config import settings
from ..models.database import SessionLocal
from ..models.device_setting import DeviceSettingModel
from .calculations import get_path

logger = logging.getLogger(__name__)

LOCALES_DIR = Path(__file__).resolve().parent.parent / "locales"
DEFAULT_LANGUAGE = "en"
IMAGE_TIMEOUT = 10.0


# --- Interfaces ---

class SettingsStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...
    def set(self, key: str, value: Any) -> None: ...
    def set_many(self, values: dict[str, Any]) -> None: ...
    def all(self) -> dict[str, Any]: ...


class CapabilityStore(Protocol):
    def has(self, key: str) -> bool: ...
    def get(self, key: str) -> Any: ...
    def set(self, key: str, value: Any) -> None: ...
    def add(self, key: str) -> None: ...
    def remove(self, key: str) -> None: ...
    def keys(self) -> list[str]: ...


class ImageHandle(Protocol):
    url: Optional[str]
    def set_url(self, url: str) -> None: ...
    async def update(self) -> None: ...


class ImageFactory(Protocol):
    def create_image(self) -> ImageHandle: ...


class Translator(Protocol):
    def translate(self, key: str) -> str: ...


class Geolocation(Protocol):
    def get_latitude(self) -> float: ...
    def get_longitude(self) -> float: ...


# --- Settings ---

def coerce_value(raw: str) -> object:
    """Try to coerce a stored string back to bool/int/float."""
    if raw.lower() in ("true", "false"):
        return raw.lower() == "true"
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return float(raw)
    except ValueError:
        pass
    return raw


def _to_text(value: Any) -> str:
    # str(True) is "True"; store lowercase so coerce_value round-trips it
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


class MemorySettingsStore:
    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._values: dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def set_many(self, values: dict[str, Any]) -> None:
        self._values.update(values)

    def all(self) -> dict[str, Any]:
        return dict(self._values)


class DbSettingsStore:
    """Per-device settings in the device_settings table."""

    def __init__(
        self,
        device_id: str,
        session_factory: Callable[[], Session] = SessionLocal,
    ):
        self.device_id = device_id
        self._session_factory = session_factory

    def get(self, key: str, default: Any = None) -> Any:
        db = self._session_factory()
        try:
            row = db.get(DeviceSettingModel, (self.device_id, key))
            return coerce_value(row.value) if row is not None else default
        finally:
            db.close()

    def set(self, key: str, value: Any) -> None:
        self.set_many({key: value})

    def set_many(self, values: dict[str, Any]) -> None:
        db = self._session_factory()
        try:
            now = datetime.now(timezone.utc)
            for key, value in values.items():
                row = db.get(DeviceSettingModel, (self.device_id, key))
                if row is not None:
                    row.value = _to_text(value)
                    row.updated_at = now
                else:
                    db.add(DeviceSettingModel(
                        device_id=self.device_id, key=key,
                        value=_to_text(value), updated_at=now,
                    ))
            db.commit()
        finally:
            db.close()

    def all(self) -> dict[str, Any]:
        db = self._session_factory()
        try:
            rows = db.query(DeviceSettingModel).filter_by(device_id=self.device_id).all()
            return {r.key: coerce_value(r.value) for r in rows}
        finally:
            db.close()

    def delete_all(self) -> None:
        db = self._session_factory()
        try:
            db.query(DeviceSettingModel).filter_by(device_id=self.device_id).delete()
            db.commit()
        finally:
            db.close()


# --- Capabilities ---

class MemoryCapabilityStore:
    """Capability values keyed by capability id; unset values are None."""

    def __init__(self, keys: Iterable[str] = ()):
        self._values: dict[str, Any] = {k: None for k in keys}

    def has(self, key: str) -> bool:
        return key in self._values

    def get(self, key: str) -> Any:
        return self._values.get(key)

    def set(self, key: str, value: Any) -> None:
        if key not in self._values:
            raise KeyError(f"Unknown capability '{key}'")
        self._values[key] = value

    def add(self, key: str) -> None:
        self._values.setdefault(key, None)

    def remove(self, key: str) -> None:
        self._values.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._values)

    def values(self) -> dict[str, Any]:
        return dict(self._values)


# --- Images ---

class HttpImage:
    """Camera photo whose URL is fixed once set; update() re-downloads it."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url: Optional[str] = None
        self.data: Optional[bytes] = None
        self.content_type: Optional[str] = None
        self.last_refreshed: Optional[datetime] = None
        self._transport = transport

    def set_url(self, url: str) -> None:
        self.url = url

    async def update(self) -> None:
        if not self.url:
            raise ValueError("Image has no URL")
        async with httpx.AsyncClient(
            timeout=IMAGE_TIMEOUT,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            resp = await client.get(self.url)
            resp.raise_for_status()
        self.data = resp.content
        self.content_type = resp.headers.get("content-type")
        self.last_refreshed = datetime.now(timezone.utc)


class HttpImageFactory:
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport

    def create_image(self) -> HttpImage:
        return HttpImage(transport=self._transport)


# --- Translation ---

@lru_cache(maxsize=None)
def _load_locale(language: str) -> dict[str, Any]:
    path = LOCALES_DIR / f"{language}.json"
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.warning("No locale file for language '%s'", language)
        return {}


class LocaleTranslator:
    """Dotted-key lookup in locales/<language>.json, falling back to English."""

    def __init__(self, language: Optional[str] = None):
        self.language = language or settings.language

    def translate(self, key: str) -> str:
        parts = key.split(".")
        for language in (self.language, DEFAULT_LANGUAGE):
            value = get_path(_load_locale(language), parts, None)
            if isinstance(value, str):
                return value
        return key


# --- Geolocation ---

class SettingsGeolocation:
    """Host location from configuration."""

    def __init__(self, latitude: Optional[float] = None, longitude: Optional[float] = None):
        self._latitude = latitude if latitude is not None else settings.latitude
        self._longitude = longitude if longitude is not None else settings.longitude

    def get_latitude(self) -> float:
        return self._latitude

    def get_longitude(self) -> float:
        return self._longitude
