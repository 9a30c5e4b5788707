"""Sikumbang (sikumbang.tapera.go.id) listing and region data.

JSON endpoints go through CachedFetcher. The listing-detail page is HTML and
carries its data as a `window.SIKUMBANG_DATA = {...};` assignment.

Listings use the `tipeRumah` schema: each listing has a list of house types,
and the one with status "subsidi" supplies price, rooms and floor area.
"""

import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote, urlencode

import httpx

from errors import ParseError, UpstreamError, UpstreamUnavailable
from services.extraction import DEFAULT_VARIABLE, extract_embedded_json
from services.fetcher import CachedFetcher
from services.pkp import BROWSER_HEADERS

logger = logging.getLogger(__name__)

SUBSIDY_STATUS = "subsidi"

# Map-marker price bands from the search page (IDR)
AFFORDABLE_MAX_PRICE = 170_000_000
STANDARD_MAX_PRICE = 185_000_000

SEARCH_PARAMS = {
    "selectedSearch": "wilayah",
    "skalaPerumahan": "semua",
    "sort": "terbaru",
    "searchBy": "nama-perumahan",
    "page": 1,
}


def price_band(price: int) -> str:
    if price < AFFORDABLE_MAX_PRICE:
        return "affordable"
    if price < STANDARD_MAX_PRICE:
        return "standard"
    return "premium"


@dataclass(frozen=True)
class Region:
    code: str
    name: str

    @classmethod
    def from_api(cls, raw: dict) -> "Region":
        try:
            return cls(code=str(raw["kodeWilayah"]), name=str(raw["namaWilayah"]).strip())
        except (KeyError, TypeError) as e:
            raise ParseError(f"Malformed region record: {e!r}") from e

    def to_dict(self) -> dict:
        return {"code": self.code, "name": self.name}


@dataclass(frozen=True)
class HouseType:
    status: str
    price: int
    bedrooms: int | None = None
    bathrooms: int | None = None
    building_area: float | None = None

    @classmethod
    def from_api(cls, raw: dict) -> "HouseType":
        return cls(
            status=str(raw["status"]),
            price=int(raw["harga"]),
            bedrooms=raw.get("kamarTidur"),
            bathrooms=raw.get("kamarMandi"),
            building_area=raw.get("luasBangunan"),
        )


@dataclass(frozen=True)
class ListingSummary:
    id: str
    name: str
    active: bool
    units: int
    province: str
    regency: str
    district: str
    village: str
    developer: str
    photos: tuple[str, ...]
    house_types: tuple[HouseType, ...]

    @classmethod
    def from_api(cls, raw: dict) -> "ListingSummary":
        """Validate one search record. Raises ParseError on a malformed shape."""
        try:
            wilayah = raw.get("wilayah") or {}
            return cls(
                id=str(raw["idLokasi"]),
                name=str(raw["namaPerumahan"]),
                active=bool(raw.get("aktivasi")),
                units=int(raw.get("jumlahUnit") or 0),
                province=wilayah.get("provinsi", ""),
                regency=wilayah.get("kabupaten", ""),
                district=wilayah.get("kecamatan", ""),
                village=wilayah.get("kelurahan", ""),
                developer=(raw.get("pengembang") or {}).get("nama", ""),
                photos=tuple(raw.get("foto") or ()),
                house_types=tuple(HouseType.from_api(t) for t in raw.get("tipeRumah") or ()),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ParseError(f"Malformed listing record: {e!r}") from e

    @property
    def subsidized_type(self) -> HouseType | None:
        return next((t for t in self.house_types if t.status == SUBSIDY_STATUS), None)

    def to_dict(self) -> dict:
        subsidized = self.subsidized_type
        return {
            "id": self.id,
            "name": self.name,
            "units": self.units,
            "location": {
                "province": self.province,
                "regency": self.regency,
                "district": self.district,
                "village": self.village,
            },
            "developer": self.developer,
            "photo": self.photos[0] if self.photos else None,
            "price": subsidized.price if subsidized else None,
            "price_band": price_band(subsidized.price) if subsidized else None,
            "bedrooms": subsidized.bedrooms if subsidized else None,
            "bathrooms": subsidized.bathrooms if subsidized else None,
            "building_area": subsidized.building_area if subsidized else None,
        }


@dataclass
class ListingFilter:
    province: str | None = None
    regency: str | None = None
    district: str | None = None
    min_price: int = 0
    max_price: int | None = None
    min_units: int = 0

    def matches(self, listing: ListingSummary) -> bool:
        subsidized = listing.subsidized_type
        if subsidized is None:
            return False
        if self.province and listing.province != self.province:
            return False
        if self.regency and listing.regency != self.regency:
            return False
        if self.district and listing.district != self.district:
            return False
        if subsidized.price < self.min_price:
            return False
        if self.max_price is not None and subsidized.price > self.max_price:
            return False
        return listing.units >= self.min_units


def apply_filters(listings: list[ListingSummary], listing_filter: ListingFilter) -> list[ListingSummary]:
    return [listing for listing in listings if listing_filter.matches(listing)]


@dataclass
class SearchResult:
    listings: list[ListingSummary]
    counts: dict[str, Any] = field(default_factory=dict)


class SikumbangService:
    """Read access to Sikumbang, sharing one response cache."""

    def __init__(
        self,
        fetcher: CachedFetcher,
        endpoints: dict[str, str],
        timeout: float = 30,
    ):
        self.fetcher = fetcher
        self.endpoints = endpoints
        self.timeout = timeout

    async def list_provinces(self) -> list[Region]:
        data = await self.fetcher.fetch_with_cache(self.endpoints["provinsi"], "provinsi_list")
        return _regions(data)

    async def list_regencies(self, province_code: str) -> list[Region]:
        endpoint = f"{self.endpoints['kabupaten']}/{quote(province_code, safe='')}"
        data = await self.fetcher.fetch_with_cache(endpoint, f"kabupaten_{province_code}")
        return _regions(data)

    async def search_listings(self, region_code: str | None = None, limit: int = 100) -> SearchResult:
        """Subsidized, activated listings, optionally within one region."""
        params = dict(SEARCH_PARAMS, limit=limit)
        if region_code:
            params["kodeWilayah"] = region_code
        cache_key = f"search_{region_code}" if region_code else "search_properties"

        data = await self.fetcher.fetch_with_cache(
            f"{self.endpoints['search']}?{urlencode(params)}", f"{cache_key}:{limit}"
        )
        if not isinstance(data, dict) or not isinstance(data.get("data"), list):
            raise ParseError("No data received")

        listings = [ListingSummary.from_api(raw) for raw in data["data"]]
        subsidized = [x for x in listings if x.active and x.subsidized_type is not None]
        logger.info("Loaded %d listings (%d subsidized)", len(listings), len(subsidized))
        return SearchResult(listings=subsidized, counts=data.get("count") or {})

    async def fetch_listing_detail(self, listing_id: str) -> dict:
        """Fetch a listing page and return its embedded SIKUMBANG_DATA object."""
        url = f"{self.fetcher.base_url}{self.endpoints['detail']}/{quote(listing_id, safe='')}"
        logger.info("Fetching detail perumahan: %s", url)

        try:
            resp = await self.fetcher.client.get(
                url, headers=BROWSER_HEADERS, timeout=self.timeout, follow_redirects=True
            )
        except httpx.RequestError as e:
            logger.error("No response from Sikumbang for %s: %s", listing_id, type(e).__name__)
            raise UpstreamUnavailable("Sikumbang", details=str(e) or type(e).__name__) from e

        if not resp.is_success:
            logger.error("Sikumbang returned status %s for %s", resp.status_code, listing_id)
            raise UpstreamError(
                "API error",
                status=resp.status_code,
                details=f"Request failed with status code {resp.status_code}",
            )

        data = extract_embedded_json(resp.text, DEFAULT_VARIABLE)
        if not isinstance(data, dict):
            raise ParseError(f"{DEFAULT_VARIABLE} is not an object")
        logger.info("Extracted SIKUMBANG_DATA: %s", data.get("namaPerumahan", "Unknown"))
        return data


def _regions(data: Any) -> list[Region]:
    if not isinstance(data, list):
        raise ParseError("Expected a list of regions")
    return sorted((Region.from_api(raw) for raw in data), key=lambda r: r.name)
