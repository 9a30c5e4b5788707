"""Centralized configuration — env.yaml plus a few env var overrides."""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "env.yaml"

# Used verbatim when env.yaml is missing or malformed.
DEFAULTS: dict[str, Any] = {
    "app": {"environment": "local"},
    "server": {"proxy": {"host": "0.0.0.0", "port": 3000}},
    "api": {
        "sikumbang": {
            "baseURL": "https://sikumbang.tapera.go.id",
            "timeout": 30,
            "endpoints": {
                "detail": "/lokasi-perumahan",
                "search": "/ajax/lokasi/search",
                "provinsi": "/ajax/wilayah/get-provinsi",
                "kabupaten": "/ajax/wilayah/get-kabupaten",
            },
        },
        "pkp": {
            "url": "https://my.pkp.go.id/cekbantuan",
            "timeout": 30,
            "maxRedirects": 5,
        },
        "geocoder": {
            "url": "https://nominatim.openstreetmap.org/reverse",
            "timeout": 10,
        },
    },
    "cache": {"ttl": 300, "maxSize": 500, "sweepInterval": 60, "regionTtl": 86400},
}


def _merge(base: dict, override: dict) -> dict:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_yaml(path: Path) -> dict:
    """Read env.yaml, falling back to DEFAULTS when absent or malformed."""
    try:
        with open(path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return DEFAULTS
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to load %s, using defaults: %s", path, e)
        return DEFAULTS

    if not isinstance(loaded, dict):
        logger.warning("Config file %s is not a mapping, using defaults", path)
        return DEFAULTS

    logger.info("Configuration loaded from %s", path)
    return _merge(DEFAULTS, loaded)


class Settings:
    """Application settings loaded from env.yaml and environment variables."""

    def __init__(self, raw: dict | None = None):
        raw = raw if raw is not None else DEFAULTS
        proxy = raw["server"]["proxy"]
        sikumbang = raw["api"]["sikumbang"]
        pkp = raw["api"]["pkp"]
        geocoder = raw["api"]["geocoder"]
        cache = raw["cache"]

        self.environment: str = os.getenv("ENVIRONMENT", raw["app"].get("environment", "local"))
        self.cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
        self.git_sha: str = os.getenv("GIT_SHA", "unknown")

        self.host: str = proxy["host"]
        self.port: int = int(proxy["port"])

        self.sikumbang_base_url: str = sikumbang["baseURL"].rstrip("/")
        self.sikumbang_timeout: float = float(sikumbang["timeout"])
        self.sikumbang_endpoints: dict[str, str] = dict(sikumbang["endpoints"])

        self.pkp_url: str = pkp["url"]
        self.pkp_timeout: float = float(pkp["timeout"])
        self.pkp_max_redirects: int = int(pkp["maxRedirects"])

        self.geocoder_url: str = geocoder["url"]
        self.geocoder_timeout: float = float(geocoder["timeout"])

        self.cache_ttl: float = float(cache["ttl"])
        self.cache_max_size: int = int(cache["maxSize"])
        self.cache_sweep_interval: float = float(cache["sweepInterval"])
        self.region_cache_ttl: float = float(cache["regionTtl"])

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def load_settings(path: str | Path | None = None) -> Settings:
    if path is None:
        path = os.getenv("RUMAHSUBSIDI_CONFIG", DEFAULT_CONFIG_PATH)
    return Settings(_read_yaml(Path(path)))


settings = load_settings()
