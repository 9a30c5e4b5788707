"""PKP eligibility checker client (my.pkp.go.id/cekbantuan).

The upstream answers with a full HTML page; it is relayed untouched and the
eligibility table inside it is parsed by the caller (see services.eligibility).
"""

import logging

import httpx

from errors import UpstreamError, UpstreamUnavailable, ValidationError

logger = logging.getLogger(__name__)

NIK_LENGTH = 16

BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "id-ID,id;q=0.9,en-US;q=0.8,en;q=0.7",
}


def validate_nik(nik: str | None) -> str:
    """Validate a national ID exactly as given. Raises ValidationError."""
    if nik is None or nik == "":
        raise ValidationError("NIK is required")
    nik = str(nik)
    if len(nik) != NIK_LENGTH:
        raise ValidationError("NIK must be 16 digits")
    if not (nik.isascii() and nik.isdigit()):
        raise ValidationError("NIK must contain digits only")
    return nik


def mask_nik(nik: str) -> str:
    """Keep the first 4 digits, mask the rest."""
    return nik[:4] + "*" * max(len(nik) - 4, 0)


async def check_subsidy(
    nik: str,
    client: httpx.AsyncClient,
    url: str,
    timeout: float = 30,
) -> str:
    """Forward a NIK to the PKP checker and return its raw HTML body.

    The redirect limit comes from the client (httpx.AsyncClient(max_redirects=...)).
    A redirect loop past that limit is treated as no response.
    """
    nik = validate_nik(nik)
    masked = mask_nik(nik)
    logger.info("Checking subsidi for NIK: %s", masked)

    try:
        resp = await client.post(
            url,
            data={"j": "1", "nik": nik},
            headers=BROWSER_HEADERS,
            timeout=timeout,
            follow_redirects=True,
        )
    except httpx.RequestError as e:
        logger.error("No response from PKP API for NIK %s: %s", masked, type(e).__name__)
        raise UpstreamUnavailable("PKP API", details=str(e) or type(e).__name__) from e

    if not resp.is_success:
        logger.error("PKP API returned status %s for NIK %s", resp.status_code, masked)
        raise UpstreamError(
            "API error",
            status=resp.status_code,
            details=f"Request failed with status code {resp.status_code}",
        )

    logger.info("Got response from PKP API for NIK %s", masked)
    return resp.text
