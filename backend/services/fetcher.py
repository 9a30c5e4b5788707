"""Cached JSON GET against a fixed base URL."""

import logging
from typing import Any

import httpx

from errors import ParseError, UpstreamHttpError
from services.cache import TTLCache

logger = logging.getLogger(__name__)

# Force revalidation so stale 301/302 responses are never reused.
NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Accept": "application/json, text/plain, */*",
}


class CachedFetcher:
    def __init__(self, base_url: str, cache: TTLCache, client: httpx.AsyncClient):
        self.base_url = base_url.rstrip("/")
        self.cache = cache
        self.client = client

    async def fetch_with_cache(self, endpoint: str, cache_key: str | None = None) -> Any:
        """Return cached JSON for cache_key, or GET base_url + endpoint.

        Non-2xx responses raise UpstreamHttpError and a body that is not
        JSON raises ParseError. Transport errors from httpx propagate as-is;
        nothing is retried.
        """
        if cache_key:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug("Cache hit: %s", cache_key)
                return cached

        url = self.base_url + endpoint
        resp = await self.client.get(url, headers=NO_CACHE_HEADERS, follow_redirects=True)
        if not resp.is_success:
            logger.error("API error: %s %s", resp.status_code, url)
            raise UpstreamHttpError(resp.status_code, url)

        try:
            data = resp.json()
        except ValueError as e:
            logger.error("Invalid JSON from %s: %s", url, e)
            raise ParseError(f"Invalid JSON from {endpoint}") from e

        if cache_key:
            self.cache.set(cache_key, data)
            logger.debug("Cache stored: %s", cache_key)
        return data
