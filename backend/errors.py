"""Custom exceptions and centralized FastAPI error handlers."""

import logging

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ProxyError(Exception):
    """Base exception with HTTP status code and a human-readable detail."""

    def __init__(self, message: str, status_code: int = 500, details: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details

    def to_body(self) -> dict:
        body = {"success": False, "error": str(self)}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(ProxyError):
    """Bad input shape, rejected before any outbound call."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class UpstreamError(ProxyError):
    """External service answered with a failure status."""

    def __init__(self, message: str, status: int, details: str | None = None):
        super().__init__(message, status_code=status, details=details)
        self.status = status

    def to_body(self) -> dict:
        body = super().to_body()
        body["status"] = self.status
        return body


class UpstreamHttpError(UpstreamError):
    """Non-2xx response seen by the cached JSON fetcher."""

    def __init__(self, status: int, url: str = ""):
        super().__init__(
            "API error",
            status=status,
            details=f"HTTP error! status: {status}" + (f" ({url})" if url else ""),
        )


class UpstreamUnavailable(ProxyError):
    """External service did not respond (timeout or connection failure)."""

    def __init__(self, service: str, details: str | None = None):
        super().__init__(f"No response from {service}", status_code=503, details=details)


class ExtractionError(ProxyError):
    """Expected embedded data is missing from an otherwise successful page."""

    def __init__(self, message: str = "Data not found in page", details: str | None = None):
        super().__init__(message, status_code=404, details=details)


class ParseError(ProxyError):
    """Malformed payload where valid JSON or a known shape was expected."""

    def __init__(self, details: str):
        super().__init__("Internal server error", status_code=500, details=details)


class GeocodingError(ProxyError):
    def __init__(self, details: str):
        super().__init__("Reverse geocoding failed", status_code=502, details=details)


def register_error_handlers(app: FastAPI) -> None:
    """Register centralized exception handlers on the FastAPI app."""

    @app.exception_handler(ProxyError)
    async def handle_proxy_error(_request: Request, exc: ProxyError):
        return JSONResponse(exc.to_body(), status_code=exc.status_code)

    @app.exception_handler(httpx.RequestError)
    async def handle_transport_error(_request: Request, exc: httpx.RequestError):
        logger.warning("Upstream unreachable: %s", exc)
        return JSONResponse(
            {"success": False, "error": "No response from upstream", "details": str(exc) or type(exc).__name__},
            status_code=503,
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(_request: Request, exc: Exception):
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse(
            {"success": False, "error": "Internal server error", "details": str(exc)},
            status_code=500,
        )
