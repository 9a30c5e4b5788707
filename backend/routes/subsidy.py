"""Eligibility proxy: forwards a NIK to the PKP checker and relays its HTML."""

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from errors import ValidationError
from services.container import Services, get_services
from services.pkp import check_subsidy

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def _read_nik(request: Request) -> str | None:
    """Accept the NIK from a JSON or form-encoded body."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        nik = form.get("nik")
    else:
        raw = await request.body()
        if not raw:
            return None
        try:
            body = json.loads(raw)
        except ValueError:
            raise ValidationError("Request body must be JSON or form data")
        nik = body.get("nik") if isinstance(body, dict) else None

    if nik is not None and not isinstance(nik, str):
        raise ValidationError("NIK must be 16 digits")
    return nik


@router.post("/cek-subsidi", response_class=HTMLResponse)
async def cek_subsidi(request: Request, services: Services = Depends(get_services)) -> HTMLResponse:
    """Return the PKP result page for a NIK, unparsed."""
    nik = await _read_nik(request)
    settings = services.settings
    html = await check_subsidy(nik, services.pkp_http, settings.pkp_url, timeout=settings.pkp_timeout)
    return HTMLResponse(html)
