"""Client for this proxy, as used by the site's NIK checker and detail page."""

import logging
from urllib.parse import quote

import httpx

from services.eligibility import EligibilityResult, parse_eligibility_html
from services.pkp import mask_nik, validate_nik

logger = logging.getLogger(__name__)

PROXY_NOT_RUNNING_MESSAGE = (
    "Proxy server belum berjalan!\n\n"
    "Silakan jalankan:\n"
    "1. pip install -e .\n"
    "2. rumahsubsidi-proxy\n\n"
    "Lalu coba lagi."
)


class ProxyClientError(Exception):
    pass


class ProxyNotRunningError(ProxyClientError):
    def __init__(self, base_url: str):
        super().__init__(PROXY_NOT_RUNNING_MESSAGE)
        self.base_url = base_url


class ProxyResponseError(ProxyClientError):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class RumahSubsidiClient:
    def __init__(self, base_url: str, client: httpx.AsyncClient):
        self.base_url = base_url.rstrip("/")
        self.client = client

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            resp = await self.client.request(method, self.base_url + path, **kwargs)
        except httpx.TransportError as e:
            logger.error("Proxy unreachable at %s: %s", self.base_url, e)
            raise ProxyNotRunningError(self.base_url) from e

        if not resp.is_success:
            try:
                body = resp.json()
            except ValueError:
                body = None
            message = body.get("error") if isinstance(body, dict) else None
            raise ProxyResponseError(message or f"HTTP error! status: {resp.status_code}", resp.status_code)
        return resp

    async def check_eligibility(self, nik: str) -> EligibilityResult:
        """Validate locally, ask the proxy, parse the returned table."""
        nik = validate_nik(nik)
        logger.info("Checking eligibility for NIK %s", mask_nik(nik))
        resp = await self._request("POST", "/api/cek-subsidi", json={"nik": nik})
        return parse_eligibility_html(resp.text)

    async def fetch_listing_detail(self, listing_id: str) -> dict:
        resp = await self._request("GET", f"/api/detail-perumahan/{quote(listing_id, safe='')}")
        return resp.json()["data"]
