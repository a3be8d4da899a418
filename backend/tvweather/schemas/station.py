"""Pydantic schemas for stations, observations and cameras."""

import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..services.calculations import get_path

_WKT_POINT = re.compile(r"POINT\s*\(\s*(-?[\d.]+)\s+(-?[\d.]+)\s*\)")


class Geometry(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    wgs84: Optional[str] = Field(default=None, alias="WGS84")

    def _coords(self) -> Optional[tuple[float, float]]:
        if not self.wgs84:
            return None
        m = _WKT_POINT.search(self.wgs84)
        if m is None:
            return None
        return float(m.group(1)), float(m.group(2))

    @property
    def longitude(self) -> Optional[float]:
        c = self._coords()
        return c[0] if c else None

    @property
    def latitude(self) -> Optional[float]:
        c = self._coords()
        return c[1] if c else None


class StationQuery(BaseModel):
    """Pairing search: a name prefix, or a radius around a point."""
    name: Optional[str] = None
    latitude: float = 0.0
    longitude: float = 0.0
    radius: str = "20000m"


class StationRecord(BaseModel):
    """A weather measure point returned by a station search."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(alias="Id")
    name: str = Field(alias="Name")
    geometry: Geometry = Field(default_factory=Geometry, alias="Geometry")


class Observation(BaseModel):
    """Snapshot of one station observation, values default to 0 when absent."""
    model_config = ConfigDict(frozen=True)

    air_temperature: float = 0
    surface_temperature: float = 0
    relative_humidity: float = 0
    wind_speed: float = 0
    wind_direction: float = 0
    wind_gust_speed: float = 0
    rain_sum: float = 0
    snow_sum_solid: float = 0
    total_water_equivalent: float = 0
    precipitation_type: Optional[str] = None
    modified_time: Optional[str] = None

    @classmethod
    def from_measurepoint(cls, raw: dict[str, Any]) -> "Observation":
        obs = raw.get("Observation") or {}
        return cls(
            air_temperature=get_path(obs, ("Air", "Temperature", "Value")),
            surface_temperature=get_path(obs, ("Surface", "Temperature", "Value")),
            relative_humidity=get_path(obs, ("Air", "RelativeHumidity", "Value")),
            wind_speed=get_path(obs, ("Wind", 0, "Speed", "Value")),
            wind_direction=get_path(obs, ("Wind", 0, "Direction", "Value")),
            wind_gust_speed=get_path(obs, ("Aggregated30minutes", "Wind", "SpeedMax", "Value")),
            rain_sum=get_path(obs, ("Aggregated30minutes", "Precipitation", "RainSum", "Value")),
            snow_sum_solid=get_path(
                obs, ("Aggregated30minutes", "Precipitation", "SnowSum", "Solid", "Value"),
            ),
            total_water_equivalent=get_path(
                obs, ("Aggregated30minutes", "Precipitation", "TotalWaterEquivalent", "Value"),
            ),
            precipitation_type=get_path(obs, ("Weather", "Precipitation"), None),
            modified_time=get_path(raw, ("ModifiedTime",), None),
        )


class WeatherMeasurepoint(BaseModel):
    """Station details with its observation. ``raw`` keeps the provider JSON."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    geometry: Geometry
    observation: Observation
    raw: dict[str, Any]

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> "WeatherMeasurepoint":
        return cls(
            id=str(raw.get("Id", "")),
            name=raw.get("Name", ""),
            geometry=Geometry.model_validate(raw.get("Geometry") or {}),
            observation=Observation.from_measurepoint(raw),
            raw=raw,
        )


class CameraRecord(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(alias="Id")
    name: str = Field(alias="Name")
    photo_url: str = Field(alias="PhotoUrl")
    has_full_size_photo: bool = Field(default=False, alias="HasFullSizePhoto")
    photo_time: Optional[str] = Field(default=None, alias="PhotoTime")


class PairingData(BaseModel):
    id: str


class PairingCandidate(BaseModel):
    """Display name plus the identity payload stored with a paired device."""
    name: str
    data: PairingData
