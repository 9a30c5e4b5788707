"""FastAPI application entry point for the RumahSubsidi CORS proxy."""

import logging
import sys
from datetime import datetime
from zoneinfo import ZoneInfo

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from config import Settings, settings
from errors import register_error_handlers
from services.container import Services

JAKARTA = ZoneInfo("Asia/Jakarta")


class JakartaFormatter(logging.Formatter):
    """Render %(asctime)s in GMT+7 regardless of the host timezone."""

    def formatTime(self, record, datefmt=None):
        ts = datetime.fromtimestamp(record.created, tz=JAKARTA)
        return ts.strftime(datefmt or "%Y-%m-%d %H:%M:%S GMT+7")


def configure_logging(is_production: bool) -> None:
    # Structured logging: JSON for production, human-readable for local
    if is_production:
        fmt = '{"time":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}'
    else:
        fmt = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JakartaFormatter(fmt))
    logging.basicConfig(level=logging.INFO, handlers=[handler], force=True)


configure_logging(settings.is_production)

logger = logging.getLogger(__name__)


def create_app(app_settings: Settings = settings, transport=None) -> FastAPI:
    """Build the app. `transport` lets tests stub every outbound HTTP call."""
    app = FastAPI(title="RumahSubsidi Proxy", version="1.0.0")

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Security headers
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if app_settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    # Centralized error handlers
    register_error_handlers(app)

    from routes.health import router as health_router
    from routes.listings import router as listings_router
    from routes.regions import router as regions_router
    from routes.subsidy import router as subsidy_router

    app.include_router(health_router)
    app.include_router(subsidy_router)
    app.include_router(listings_router)
    app.include_router(regions_router)

    app.state.services = Services.build(app_settings, transport=transport)

    @app.on_event("startup")
    async def _start_services() -> None:
        app.state.services.start()
        logger.info("Sikumbang API: %s", app_settings.sikumbang_base_url)
        logger.info(
            "Response cache: ttl=%ss, max=%d entries",
            app_settings.cache_ttl,
            app_settings.cache_max_size,
        )

    @app.on_event("shutdown")
    async def _stop_services() -> None:
        logger.info("Shutting down server...")
        await app.state.services.aclose()

    return app


app = create_app()


def main() -> None:
    """Run the proxy with uvicorn on the configured host and port."""
    logger.info("Proxy server starting (environment: %s)", settings.environment)
    logger.info("URL: http://localhost:%d", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
