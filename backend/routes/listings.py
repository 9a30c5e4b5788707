"""Listing routes — detail page extraction and filtered search."""

import logging

from fastapi import APIRouter, Depends, Query

from errors import ValidationError
from services.container import Services, get_services
from services.sikumbang import ListingFilter, apply_filters

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.get("/detail-perumahan/")
async def detail_perumahan_missing_id() -> dict:
    raise ValidationError("ID perumahan is required")


@router.get("/detail-perumahan/{listing_id}")
async def detail_perumahan(listing_id: str, services: Services = Depends(get_services)) -> dict:
    """Embedded SIKUMBANG_DATA object of one listing page."""
    if not listing_id.strip():
        raise ValidationError("ID perumahan is required")
    data = await services.sikumbang.fetch_listing_detail(listing_id)
    return {"success": True, "data": data}


@router.get("/perumahan")
async def perumahan(
    kode_wilayah: str | None = Query(None),
    provinsi: str | None = Query(None),
    kabupaten: str | None = Query(None),
    kecamatan: str | None = Query(None),
    harga_min: int = Query(0, ge=0),
    harga_max: int | None = Query(None, ge=0),
    unit: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    services: Services = Depends(get_services),
) -> dict:
    """Subsidized, activated listings with the search-page filters applied."""
    result = await services.sikumbang.search_listings(kode_wilayah, limit=limit)
    listing_filter = ListingFilter(
        province=provinsi,
        regency=kabupaten,
        district=kecamatan,
        min_price=harga_min,
        max_price=harga_max,
        min_units=unit,
    )
    filtered = apply_filters(result.listings, listing_filter)

    return {
        "success": True,
        "_summary": f"Menampilkan {len(filtered)} dari {len(result.listings)} properti",
        "total": len(result.listings),
        "count": len(filtered),
        "stats": result.counts,
        "data": [listing.to_dict() for listing in filtered],
    }
