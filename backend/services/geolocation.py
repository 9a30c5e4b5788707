"""Resolve device coordinates to a Sikumbang province code.

Sequence: reuse a recently detected code, locate the device, reverse-geocode
to a province name, match it against the province list. Any failing step ends
the sequence with no region; nothing is guessed.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol

import httpx

from errors import GeocodingError, ProxyError
from services.cache import TTLCache
from services.sikumbang import Region

logger = logging.getLogger(__name__)

REGION_CACHE_KEY = "kodeWilayah"
LOCATE_TIMEOUT_SECONDS = 5

KNOWN_PROVINCES = (
    "Aceh",
    "Sumatera Utara",
    "Sumatera Barat",
    "Riau",
    "Kepulauan Riau",
    "Jambi",
    "Sumatera Selatan",
    "Kepulauan Bangka Belitung",
    "Bengkulu",
    "Lampung",
    "DKI Jakarta",
    "Jawa Barat",
    "Banten",
    "Jawa Tengah",
    "DI Yogyakarta",
    "Jawa Timur",
    "Bali",
    "Nusa Tenggara Barat",
    "Nusa Tenggara Timur",
    "Kalimantan Barat",
    "Kalimantan Tengah",
    "Kalimantan Selatan",
    "Kalimantan Timur",
    "Kalimantan Utara",
    "Sulawesi Utara",
    "Gorontalo",
    "Sulawesi Tengah",
    "Sulawesi Barat",
    "Sulawesi Selatan",
    "Sulawesi Tenggara",
    "Maluku",
    "Maluku Utara",
    "Papua",
    "Papua Barat",
    "Papua Barat Daya",
    "Papua Tengah",
    "Papua Pegunungan",
    "Papua Selatan",
)

# Geocoder spellings that differ from the Sikumbang names
PROVINCE_ALIASES = {
    "daerah khusus ibukota jakarta": "DKI Jakarta",
    "daerah khusus jakarta": "DKI Jakarta",
    "jakarta": "DKI Jakarta",
    "daerah istimewa yogyakarta": "DI Yogyakarta",
    "special region of yogyakarta": "DI Yogyakarta",
    "yogyakarta": "DI Yogyakarta",
    "bangka belitung islands": "Kepulauan Bangka Belitung",
    "riau islands": "Kepulauan Riau",
    "west java": "Jawa Barat",
    "central java": "Jawa Tengah",
    "east java": "Jawa Timur",
}


def _norm(text: str) -> str:
    return " ".join(text.split()).lower()


def canonical_province(name: str) -> str:
    return PROVINCE_ALIASES.get(_norm(name), name.strip())


def province_from_display_name(display_name: str) -> str | None:
    """Find a known province among the comma-separated parts of a display name."""
    parts = [_norm(p) for p in display_name.split(",") if p.strip()]
    known = {_norm(p): p for p in KNOWN_PROVINCES}

    for part in parts:
        if part in PROVINCE_ALIASES:
            return PROVINCE_ALIASES[part]
        if part in known:
            return known[part]

    # Longest first so "Papua Barat Daya" wins over "Papua"
    text = _norm(display_name)
    for name in sorted(KNOWN_PROVINCES, key=len, reverse=True):
        if _norm(name) in text:
            return name
    return None


def match_region(name: str, regions: list[Region]) -> Region | None:
    """Exact case-insensitive match first, then bidirectional substring match.

    Among substring candidates a region whose name is contained in the query
    wins (longest first). If only the reverse direction matches, exactly one
    candidate is required.
    """
    if not name or not name.strip():
        return None
    query = _norm(canonical_province(name))

    for region in regions:
        if _norm(region.name) == query:
            return region

    contained = [r for r in regions if r.name and _norm(r.name) in query]
    if contained:
        return max(contained, key=lambda r: len(r.name))

    containing = [r for r in regions if query in _norm(r.name)]
    if len(containing) == 1:
        return containing[0]
    if containing:
        logger.info("Ambiguous region name %r matches %d regions", name, len(containing))
    return None


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


class LocationUnavailable(Exception):
    """Device location could not be obtained (denied, timed out, unsupported)."""


class LocationProvider(Protocol):
    async def locate(self, timeout: float, high_accuracy: bool = False) -> Coordinates: ...


class StaticLocationProvider:
    """Location provider that always reports the same coordinates."""

    def __init__(self, coordinates: Coordinates | None):
        self.coordinates = coordinates

    async def locate(self, timeout: float, high_accuracy: bool = False) -> Coordinates:
        if self.coordinates is None:
            raise LocationUnavailable("Location permission denied")
        return self.coordinates


class NominatimGeocoder:
    """Reverse geocoding through an OpenStreetMap Nominatim endpoint."""

    def __init__(self, client: httpx.AsyncClient, url: str, timeout: float = 10):
        self.client = client
        self.url = url
        self.timeout = timeout

    async def reverse(self, coords: Coordinates) -> str:
        """Return the province/state name for a coordinate pair."""
        try:
            resp = await self.client.get(
                self.url,
                params={
                    "format": "jsonv2",
                    "lat": coords.latitude,
                    "lon": coords.longitude,
                    "zoom": 5,
                    "accept-language": "id",
                },
                headers={"User-Agent": "rumahsubsidi-proxy/1.0"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise GeocodingError(str(e) or type(e).__name__) from e
        if not isinstance(data, dict):
            raise GeocodingError("Unexpected geocoding response")

        address = data.get("address") or {}
        state = address.get("state") or address.get("province") or address.get("region")
        if state:
            return state

        name = province_from_display_name(data.get("display_name") or "")
        if name is None:
            raise GeocodingError("No province in geocoding result")
        return name


async def resolve_region(
    geocoder: NominatimGeocoder,
    regions_loader: Callable[[], Awaitable[list[Region]]],
    coords: Coordinates,
) -> Region | None:
    """Reverse-geocode and match. Geocoding failures propagate."""
    name = await geocoder.reverse(coords)
    regions = await regions_loader()
    region = match_region(name, regions)
    if region is None:
        logger.info("No region matches geocoded name %r", name)
    return region


class RegionDetector:
    """Detects the user's province once and remembers it for a day."""

    def __init__(
        self,
        provider: LocationProvider,
        geocoder: NominatimGeocoder,
        regions_loader: Callable[[], Awaitable[list[Region]]],
        cache: TTLCache,
        locate_timeout: float = LOCATE_TIMEOUT_SECONDS,
    ):
        self.provider = provider
        self.geocoder = geocoder
        self.regions_loader = regions_loader
        self.cache = cache
        self.locate_timeout = locate_timeout

    async def resolve_coordinates(self, coords: Coordinates) -> Region | None:
        return await resolve_region(self.geocoder, self.regions_loader, coords)

    async def detect_region(self) -> str | None:
        """Return a region code, or None when any step fails."""
        cached = self.cache.get(REGION_CACHE_KEY)
        if cached is not None:
            logger.debug("Using cached region code %s", cached)
            return cached

        try:
            coords = await asyncio.wait_for(
                self.provider.locate(self.locate_timeout, high_accuracy=False),
                timeout=self.locate_timeout,
            )
            region = await self.resolve_coordinates(coords)
        except (LocationUnavailable, asyncio.TimeoutError) as e:
            logger.info("Location unavailable: %s", e or "timed out")
            return None
        except (ProxyError, httpx.HTTPError) as e:
            logger.warning("Region detection failed: %s", e)
            return None

        if region is None:
            return None

        self.cache.set(REGION_CACHE_KEY, region.code)
        logger.info("Detected region %s (%s)", region.name, region.code)
        return region.code
