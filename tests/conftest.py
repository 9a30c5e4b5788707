"""
Pytest configuration and fixtures.

Every outbound HTTP call made by the app goes through an httpx.MockTransport
backed by StubUpstream, so tests never touch the real PKP, Sikumbang or
Nominatim services.
"""

import os
from typing import Callable, Generator

import httpx
import pytest

# Point config at a file that does not exist so built-in defaults are used
os.environ["ENVIRONMENT"] = "test"
os.environ["RUMAHSUBSIDI_CONFIG"] = os.path.join(os.path.dirname(__file__), "missing-env.yaml")

from fastapi.testclient import TestClient

from app import create_app
from config import load_settings

SIKUMBANG = "https://sikumbang.tapera.go.id"
PKP_URL = "https://my.pkp.go.id/cekbantuan"
NOMINATIM_URL = "https://nominatim.openstreetmap.org/reverse"

Handler = Callable[[httpx.Request], httpx.Response]


class StubUpstream:
    """Routes (method, url-without-query) to canned responses and records requests."""

    def __init__(self):
        self.routes: dict[tuple[str, str], Handler] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, url: str, handler: Handler | httpx.Response) -> None:
        if isinstance(handler, httpx.Response):
            response = handler
            handler = lambda _request: response  # noqa: E731
        self.routes[(method.upper(), url)] = handler

    def calls_to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url).split("?")[0] == url]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, str(request.url).split("?")[0])
        handler = self.routes.get(key)
        if handler is None:
            return httpx.Response(404, text=f"no stub for {key}")
        return handler(request)


@pytest.fixture
def upstream() -> StubUpstream:
    return StubUpstream()


@pytest.fixture
def transport(upstream: StubUpstream) -> httpx.MockTransport:
    return httpx.MockTransport(upstream)


@pytest.fixture
def settings():
    return load_settings()


@pytest.fixture
def app(settings, transport):
    return create_app(settings, transport=transport)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Synchronous test client with startup/shutdown events run."""
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


# =============================================================================
# SAMPLE PAYLOADS
# =============================================================================


def eligibility_page(*statuses: str) -> str:
    rows = "".join(
        f"<tr><td>{i}</td><td>1234567890123456</td><td>BUDI SANTOSO</td><td>{status}</td>"
        f"<td>-</td><td>Ya</td><td>Tidak</td><td>Tidak</td><td>Tidak</td></tr>"
        for i, status in enumerate(statuses, start=1)
    )
    return (
        "<html><body><table id='example1'><thead><tr><th>No</th><th>NIK</th></tr></thead>"
        f"<tbody>{rows}</tbody></table></body></html>"
    )


def listing(
    id_: str,
    *,
    price: int = 166_000_000,
    status: str = "subsidi",
    active: bool = True,
    units: int = 10,
    provinsi: str = "Jawa Barat",
    kabupaten: str = "Kab. Bogor",
) -> dict:
    return {
        "idLokasi": id_,
        "namaPerumahan": f"Perumahan {id_}",
        "aktivasi": active,
        "jumlahUnit": units,
        "foto": [f"https://img.example/{id_}.jpg"],
        "wilayah": {
            "provinsi": provinsi,
            "kabupaten": kabupaten,
            "kecamatan": "Cibinong",
            "kelurahan": "Pakansari",
        },
        "pengembang": {"nama": "PT Maju Jaya", "asosiasi": "REI"},
        "tipeRumah": [
            {"status": status, "harga": price, "kamarTidur": 2, "kamarMandi": 1, "luasBangunan": 30},
        ],
    }


@pytest.fixture
def provinces_payload() -> list[dict]:
    return [
        {"kodeWilayah": "33", "namaWilayah": "Jawa Tengah"},
        {"kodeWilayah": "32", "namaWilayah": "Jawa Barat"},
        {"kodeWilayah": "31", "namaWilayah": "DKI Jakarta"},
    ]
