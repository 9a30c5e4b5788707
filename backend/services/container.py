"""Per-process service wiring, built once at startup and held on app.state."""

import asyncio
import logging
from dataclasses import dataclass, field

import httpx
from fastapi import Request

from config import Settings
from services.cache import TTLCache
from services.fetcher import CachedFetcher
from services.geolocation import LocationProvider, NominatimGeocoder, RegionDetector
from services.sikumbang import SikumbangService

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    cache: TTLCache
    http: httpx.AsyncClient
    pkp_http: httpx.AsyncClient
    sikumbang: SikumbangService
    geocoder: NominatimGeocoder
    _sweeper: asyncio.Task | None = field(default=None, repr=False)

    @classmethod
    def build(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "Services":
        cache = TTLCache(ttl_seconds=settings.cache_ttl, max_size=settings.cache_max_size)
        http = httpx.AsyncClient(timeout=settings.sikumbang_timeout, transport=transport)
        pkp_http = httpx.AsyncClient(
            timeout=settings.pkp_timeout,
            max_redirects=settings.pkp_max_redirects,
            transport=transport,
        )
        fetcher = CachedFetcher(settings.sikumbang_base_url, cache, http)
        return cls(
            settings=settings,
            cache=cache,
            http=http,
            pkp_http=pkp_http,
            sikumbang=SikumbangService(fetcher, settings.sikumbang_endpoints, settings.sikumbang_timeout),
            geocoder=NominatimGeocoder(http, settings.geocoder_url, settings.geocoder_timeout),
        )

    def region_detector(self, provider: LocationProvider) -> RegionDetector:
        """Detector for one request; the region cache is not shared between users."""
        region_cache = TTLCache(ttl_seconds=self.settings.region_cache_ttl, max_size=1)
        return RegionDetector(provider, self.geocoder, self.sikumbang.list_provinces, region_cache)

    def start(self) -> None:
        self._sweeper = asyncio.create_task(self.cache.run_sweeper(self.settings.cache_sweep_interval))
        logger.info("Cache sweeper running every %ss", self.settings.cache_sweep_interval)

    async def aclose(self) -> None:
        if self._sweeper is not None:
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
            self._sweeper = None
        await self.http.aclose()
        await self.pkp_http.aclose()


def get_services(request: Request) -> Services:
    return request.app.state.services
