"""Region routes — province/regency lists and coordinate lookup."""

import logging

from fastapi import APIRouter, Depends, Query

from errors import ExtractionError
from services.container import Services, get_services
from services.geolocation import Coordinates, resolve_region

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.get("/provinsi")
async def provinsi(services: Services = Depends(get_services)) -> dict:
    regions = await services.sikumbang.list_provinces()
    return {"success": True, "data": [r.to_dict() for r in regions]}


@router.get("/kabupaten/{kode}")
async def kabupaten(kode: str, services: Services = Depends(get_services)) -> dict:
    regions = await services.sikumbang.list_regencies(kode)
    return {"success": True, "data": [r.to_dict() for r in regions]}


@router.get("/wilayah/deteksi")
async def deteksi_wilayah(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    services: Services = Depends(get_services),
) -> dict:
    """Province for a coordinate pair; 404 when no province matches."""
    coords = Coordinates(latitude=lat, longitude=lon)
    region = await resolve_region(services.geocoder, services.sikumbang.list_provinces, coords)
    if region is None:
        raise ExtractionError("Region not determined", details=f"No province matches ({lat}, {lon})")
    return {"success": True, "data": region.to_dict()}
