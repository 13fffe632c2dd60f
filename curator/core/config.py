"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_API_URL = "http://localhost:3000/api"
DEFAULT_DEEPSEEK_API_URL = "https://api.deepseek.com/v1/chat/completions"


class ConfigError(RuntimeError):
    """Raised when mandatory configuration is missing."""


@dataclass(frozen=True)
class Settings:
    catalog_api_url: str = DEFAULT_CATALOG_API_URL
    deepseek_api_key: str = ""
    deepseek_api_url: str = DEFAULT_DEEPSEEK_API_URL
    deepseek_model: str = "deepseek-chat"
    deepseek_temperature: float = 0.3
    deepseek_timeout: int = 60
    enrich_page_size: int = 20
    enrich_delay_seconds: float = 1.0
    scan_page_size: int = 100
    max_pages: Optional[int] = None
    worker_port: int = 9000
    failed_updates_dir: str = "data/failed"


def _optional_int(raw: Optional[str]) -> Optional[int]:
    if raw is None or not raw.strip():
        return None
    value = int(raw)
    return value if value > 0 else None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    catalog_api_url = os.getenv("CATALOG_API_URL", DEFAULT_CATALOG_API_URL).rstrip("/")
    deepseek_api_key = os.getenv("DEEPSEEK_API_KEY", "").strip()

    if not deepseek_api_key:
        logger.warning("DEEPSEEK_API_KEY is not configured; place enrichment will be unavailable.")

    return Settings(
        catalog_api_url=catalog_api_url,
        deepseek_api_key=deepseek_api_key,
        deepseek_api_url=os.getenv("DEEPSEEK_API_URL", DEFAULT_DEEPSEEK_API_URL),
        deepseek_model=os.getenv("DEEPSEEK_MODEL", "deepseek-chat"),
        deepseek_temperature=float(os.getenv("DEEPSEEK_TEMPERATURE", "0.3")),
        deepseek_timeout=int(os.getenv("DEEPSEEK_TIMEOUT", "60")),
        enrich_page_size=int(os.getenv("ENRICH_PAGE_SIZE", "20")),
        enrich_delay_seconds=float(os.getenv("ENRICH_DELAY_SECONDS", "1.0")),
        scan_page_size=int(os.getenv("SCAN_PAGE_SIZE", "100")),
        max_pages=_optional_int(os.getenv("WORKER_MAX_PAGES")),
        worker_port=int(os.getenv("WORKER_PORT", "9000")),
        failed_updates_dir=os.getenv("FAILED_UPDATES_DIR", "data/failed"),
    )


def require_deepseek_key(settings: Settings) -> str:
    """Return the generation credential or fail before any request is made."""
    if not settings.deepseek_api_key:
        raise ConfigError("DEEPSEEK_API_KEY must be set in the environment to enrich places.")
    return settings.deepseek_api_key
