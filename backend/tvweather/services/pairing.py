"""Station search used when pairing a new device.

Pairing is two steps: the user either enters a station name or leaves it
blank, then the candidate list is requested. A blank name searches around
the host location. Failures are logged and produce an empty list.
"""

import logging
from typing import Optional

from ..config import settings
from ..schemas.station import PairingCandidate, PairingData, StationQuery, StationRecord
from .errors import TrafikverketError
from .host import Geolocation
from .trafikverket import TrafikverketClient

logger = logging.getLogger(__name__)


def to_candidate(station: StationRecord) -> PairingCandidate:
    return PairingCandidate(name=station.name, data=PairingData(id=station.id))


class PairingSession:
    """One pairing attempt; holds the pending station name between steps."""

    def __init__(
        self,
        client: TrafikverketClient,
        geolocation: Geolocation,
        radius: Optional[str] = None,
    ):
        self.client = client
        self.geolocation = geolocation
        self.radius = radius or settings.pairing_radius
        self.station_name: Optional[str] = None

    def set_station_name(self, name: Optional[str]) -> None:
        if name:
            logger.info("User wants to search for '%s'", name)
            self.station_name = name
        else:
            logger.info("User decided to search for stations nearby")
            self.station_name = None

    def build_query(self, name: Optional[str]) -> StationQuery:
        """Search parameters: a name prefix, else a radius around the host."""
        return StationQuery(
            name=name or None,
            latitude=self.geolocation.get_latitude(),
            longitude=self.geolocation.get_longitude(),
            radius=self.radius,
        )

    async def list_devices(self) -> list[PairingCandidate]:
        """Candidates for the pending search. The pending name is reset."""
        name, self.station_name = self.station_name, None
        try:
            query = self.build_query(name)
            if query.name:
                logger.info("Searching for a specific station by name '%s'", query.name)
                stations = await self.client.search_stations_by_name(query.name)
            else:
                logger.info(
                    "Searching for stations within %s of (%s, %s)",
                    query.radius, query.latitude, query.longitude,
                )
                stations = await self.client.search_stations_by_location(
                    query.latitude, query.longitude, query.radius,
                )
        except TrafikverketError as exc:
            logger.error("Failed to get weather stations: %s", exc)
            return []
        except Exception as exc:
            logger.error("Failed to get weather stations: %s", exc, exc_info=True)
            return []

        if not stations:
            logger.info("No weather stations received in API response")
        return [to_candidate(s) for s in stations]

    async def search(self, station_name: Optional[str] = None) -> list[PairingCandidate]:
        """Both pairing steps in one call."""
        self.set_station_name(station_name)
        return await self.list_devices()
