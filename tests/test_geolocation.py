"""Tests for region matching and the region detector."""

import asyncio

import httpx
import pytest

from conftest import NOMINATIM_URL, SIKUMBANG
from errors import GeocodingError
from services.cache import TTLCache
from services.container import Services
from services.fetcher import CachedFetcher
from services.geolocation import (
    REGION_CACHE_KEY,
    Coordinates,
    LocationUnavailable,
    NominatimGeocoder,
    RegionDetector,
    StaticLocationProvider,
    match_region,
    province_from_display_name,
)
from services.sikumbang import Region, SikumbangService

JABAR = Region(code="32", name="Jawa Barat")
JATENG = Region(code="33", name="Jawa Tengah")
DKI = Region(code="31", name="DKI Jakarta")
BANDUNG = Coordinates(latitude=-6.9175, longitude=107.6191)


class TestMatchRegion:
    def test_exact_match_ignores_case_and_whitespace(self):
        assert match_region("  JAWA BARAT ", [JABAR, JATENG]) == JABAR

    def test_region_name_inside_geocoded_name(self):
        assert match_region("Provinsi Jawa Tengah", [JABAR, JATENG]) == JATENG

    def test_geocoded_name_inside_region_name(self):
        assert match_region("Barat", [JABAR, JATENG]) == JABAR

    def test_ambiguous_partial_name_matches_nothing(self):
        assert match_region("Jawa", [JABAR, JATENG]) is None

    def test_alias_is_canonicalised(self):
        assert match_region("Daerah Khusus Ibukota Jakarta", [JABAR, DKI]) == DKI

    def test_no_match_is_none(self):
        assert match_region("Bali", [JABAR, JATENG]) is None

    def test_empty_name_is_none(self):
        assert match_region("", [JABAR]) is None


class TestDisplayName:
    def test_finds_province_part(self):
        name = "Coblong, Kota Bandung, Jawa Barat, Jawa, 40132, Indonesia"
        assert province_from_display_name(name) == "Jawa Barat"

    def test_prefers_longest_province_name(self):
        assert province_from_display_name("Sorong, Papua Barat Daya Region, Indonesia") == "Papua Barat Daya"

    def test_alias_part(self):
        assert province_from_display_name("Menteng, Daerah Khusus Ibukota Jakarta, Indonesia") == "DKI Jakarta"

    def test_unknown(self):
        assert province_from_display_name("Somewhere, Nowhere") is None


@pytest.fixture
async def geocoder(transport):
    async with httpx.AsyncClient(transport=transport) as client:
        yield NominatimGeocoder(client, NOMINATIM_URL)


class TestNominatimGeocoder:
    async def test_uses_state_field(self, geocoder, upstream):
        upstream.add("GET", NOMINATIM_URL, httpx.Response(200, json={"address": {"state": "Jawa Barat"}}))

        assert await geocoder.reverse(BANDUNG) == "Jawa Barat"
        params = upstream.requests[0].url.params
        assert params["lat"] == "-6.9175"
        assert params["format"] == "jsonv2"

    async def test_falls_back_to_display_name(self, geocoder, upstream):
        upstream.add(
            "GET",
            NOMINATIM_URL,
            httpx.Response(200, json={"address": {}, "display_name": "Bandung, Jawa Barat, Indonesia"}),
        )
        assert await geocoder.reverse(BANDUNG) == "Jawa Barat"

    async def test_http_failure_raises(self, geocoder, upstream):
        upstream.add("GET", NOMINATIM_URL, httpx.Response(500))
        with pytest.raises(GeocodingError):
            await geocoder.reverse(BANDUNG)

    async def test_non_object_body_raises(self, geocoder, upstream):
        upstream.add("GET", NOMINATIM_URL, httpx.Response(200, json=["Jawa Barat"]))
        with pytest.raises(GeocodingError):
            await geocoder.reverse(BANDUNG)


class SlowProvider:
    async def locate(self, timeout, high_accuracy=False):
        await asyncio.sleep(10)


class CountingLoader:
    def __init__(self, regions):
        self.regions = regions
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return self.regions


def make_detector(geocoder, provider, loader=None, cache=None, locate_timeout=5):
    return RegionDetector(
        provider,
        geocoder,
        loader or CountingLoader([JABAR, JATENG]),
        cache if cache is not None else TTLCache(ttl_seconds=86400, max_size=1),
        locate_timeout=locate_timeout,
    )


class TestRegionDetector:
    async def test_detects_and_caches_code(self, geocoder, upstream):
        upstream.add("GET", NOMINATIM_URL, httpx.Response(200, json={"address": {"state": "JAWA BARAT"}}))
        cache = TTLCache(ttl_seconds=86400, max_size=1)
        detector = make_detector(geocoder, StaticLocationProvider(BANDUNG), cache=cache)

        assert await detector.detect_region() == "32"
        assert cache.get(REGION_CACHE_KEY) == "32"

    async def test_cached_code_skips_location_lookup(self, geocoder, upstream):
        cache = TTLCache(ttl_seconds=86400, max_size=1)
        cache.set(REGION_CACHE_KEY, "33")
        detector = make_detector(geocoder, StaticLocationProvider(None), cache=cache)

        assert await detector.detect_region() == "33"
        assert upstream.requests == []

    async def test_permission_denied_yields_none(self, geocoder, upstream):
        detector = make_detector(geocoder, StaticLocationProvider(None))

        assert await detector.detect_region() is None
        assert upstream.requests == []

    async def test_location_timeout_yields_none(self, geocoder):
        detector = make_detector(geocoder, SlowProvider(), locate_timeout=0.01)
        assert await detector.detect_region() is None

    async def test_geocoding_failure_yields_none(self, geocoder, upstream):
        upstream.add("GET", NOMINATIM_URL, httpx.Response(503))
        loader = CountingLoader([JABAR])
        detector = make_detector(geocoder, StaticLocationProvider(BANDUNG), loader=loader)

        assert await detector.detect_region() is None
        assert loader.calls == 0

    async def test_unmatched_name_yields_none_and_is_not_cached(self, geocoder, upstream):
        upstream.add("GET", NOMINATIM_URL, httpx.Response(200, json={"address": {"state": "Bali"}}))
        cache = TTLCache(ttl_seconds=86400, max_size=1)
        detector = make_detector(geocoder, StaticLocationProvider(BANDUNG), cache=cache)

        assert await detector.detect_region() is None
        assert len(cache) == 0

    async def test_custom_provider_errors(self, geocoder):
        class Denied:
            async def locate(self, timeout, high_accuracy=False):
                raise LocationUnavailable("denied")

        assert await make_detector(geocoder, Denied()).detect_region() is None

    async def test_non_json_province_list_yields_none(self, geocoder, upstream):
        upstream.add("GET", NOMINATIM_URL, httpx.Response(200, json={"address": {"state": "Jawa Barat"}}))
        upstream.add(
            "GET",
            f"{SIKUMBANG}/ajax/wilayah/get-provinsi",
            httpx.Response(200, text="<html>maintenance</html>"),
        )
        fetcher = CachedFetcher(SIKUMBANG, TTLCache(ttl_seconds=300, max_size=10), geocoder.client)
        sikumbang = SikumbangService(fetcher, {"provinsi": "/ajax/wilayah/get-provinsi"})
        cache = TTLCache(ttl_seconds=86400, max_size=1)
        detector = make_detector(geocoder, StaticLocationProvider(BANDUNG), loader=sikumbang.list_provinces, cache=cache)

        assert await detector.detect_region() is None
        assert len(cache) == 0


async def test_detectors_from_services_do_not_share_region(settings, transport, upstream, provinces_payload):
    upstream.add("GET", NOMINATIM_URL, httpx.Response(200, json={"address": {"state": "Jawa Barat"}}))
    upstream.add("GET", f"{SIKUMBANG}/ajax/wilayah/get-provinsi", httpx.Response(200, json=provinces_payload))
    services = Services.build(settings, transport=transport)
    try:
        assert await services.region_detector(StaticLocationProvider(BANDUNG)).detect_region() == "32"
        assert await services.region_detector(StaticLocationProvider(None)).detect_region() is None
    finally:
        await services.aclose()
