"""Health, info and readiness routes."""

import logging

from fastapi import APIRouter, Depends

from services.container import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def info() -> dict:
    """Service banner listing the proxied endpoints."""
    return {
        "status": "running",
        "message": "Proxy server for PKP API and Sikumbang is running",
        "endpoints": {
            "cekSubsidi": "POST /api/cek-subsidi",
            "detailPerumahan": "GET /api/detail-perumahan/:id",
            "provinsi": "GET /api/provinsi",
            "kabupaten": "GET /api/kabupaten/:kode",
            "perumahan": "GET /api/perumahan",
            "deteksiWilayah": "GET /api/wilayah/deteksi?lat=&lon=",
        },
    }


@router.get("/ready")
async def ready(services: Services = Depends(get_services)) -> dict:
    """Lightweight readiness check — no external calls."""
    return {
        "status": "ok",
        "service": "rumahsubsidi-proxy",
        "environment": services.settings.environment,
        "commit": services.settings.git_sha,
    }


@router.get("/api/cache/stats")
async def cache_stats(services: Services = Depends(get_services)) -> dict:
    return {"success": True, "cache": services.cache.stats()}
