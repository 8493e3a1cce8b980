# ABOUTME: Runtime settings for the dust dashboard, read from the environment and .env.
# ABOUTME: Also configures standard-library logging for the process.

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

MESONET_URL = "https://mesonet.agron.iastate.edu/cgi-bin/request/asos.py"


class Settings(BaseModel):
    """Tunables for fetching, caching and logging."""

    mesonet_url: str = MESONET_URL
    cache_ttl_seconds: float = Field(default=300, ge=0)
    network_chunk_size: int = Field(default=4, ge=1)
    window_days: int = Field(default=10, ge=1)
    max_concurrency: int = Field(default=3, ge=1)
    request_timeout: float = Field(default=45.0, gt=0)
    max_retries: int = Field(default=2, ge=0)
    retry_backoff_seconds: float = Field(default=1.0, ge=0)
    default_hours: int = Field(default=24, gt=0)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, keeping defaults for unset ones."""
        env = {
            "mesonet_url": os.environ.get("MESONET_URL"),
            "cache_ttl_seconds": os.environ.get("DUST_CACHE_TTL_SECONDS"),
            "network_chunk_size": os.environ.get("DUST_NETWORK_CHUNK_SIZE"),
            "window_days": os.environ.get("DUST_WINDOW_DAYS"),
            "max_concurrency": os.environ.get("DUST_MAX_CONCURRENCY"),
            "request_timeout": os.environ.get("DUST_REQUEST_TIMEOUT"),
            "max_retries": os.environ.get("DUST_MAX_RETRIES"),
            "retry_backoff_seconds": os.environ.get("DUST_RETRY_BACKOFF_SECONDS"),
            "default_hours": os.environ.get("DUST_DEFAULT_HOURS"),
            "log_level": os.environ.get("LOG_LEVEL"),
        }
        return cls(**{k: v for k, v in env.items() if v is not None})


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
