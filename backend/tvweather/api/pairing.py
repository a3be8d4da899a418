"""GET /api/pairing/stations - Candidate stations for pairing a new device."""

import logging
from typing import Optional

from fastapi import APIRouter

from ..schemas.station import PairingCandidate
from ..services.host import SettingsGeolocation
from ..services.pairing import PairingSession
from ..services.trafikverket import TrafikverketClient

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/pairing/stations", response_model=list[PairingCandidate])
async def list_stations(name: Optional[str] = None):
    """Search by name prefix, or around the configured location when blank."""
    session = PairingSession(TrafikverketClient(), SettingsGeolocation())
    return await session.search(name)
