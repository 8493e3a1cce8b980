# ABOUTME: Dependency container for the dust service using Pydantic BaseModel.
# ABOUTME: Holds the httpx.AsyncClient and settings shared by every upstream fetch.

import httpx
from pydantic import BaseModel, ConfigDict

from src.config import Settings
from src.retry import RetryPolicy


class DustDeps(BaseModel):
    """Dependencies handed to the fetch orchestrator."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    http_client: httpx.AsyncClient
    settings: Settings

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.settings.max_retries + 1,
            backoff_seconds=self.settings.retry_backoff_seconds,
        )


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Create an httpx client with the per-request deadline from settings.

    Retries are not done at the transport level; each partition runs its own RetryPolicy.
    """
    return httpx.AsyncClient(timeout=httpx.Timeout(settings.request_timeout))
