"""Top-level API router aggregation."""

from fastapi import APIRouter

from . import devices, pairing

api_router = APIRouter(prefix="/api")

api_router.include_router(pairing.router)
api_router.include_router(devices.router)
