# ABOUTME: Retry policy value for upstream calls, applied through tenacity.
# ABOUTME: Retries transient httpx failures with a linearly growing backoff between attempts.

import logging

import httpx
from pydantic import BaseModel, ConfigDict, Field
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt

logger = logging.getLogger(__name__)


class RetryPolicy(BaseModel):
    """How many times to try an upstream call and how long to wait in between.

    Attempt `i` (1-based) that fails waits `i * backoff_seconds` before the next one.
    """

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=3, ge=1)
    backoff_seconds: float = Field(default=1.0, ge=0)

    def delay_for(self, attempt: int) -> float:
        return attempt * self.backoff_seconds

    def retrying(self) -> AsyncRetrying:
        """Build a tenacity controller; the last error is re-raised once attempts run out."""
        return AsyncRetrying(
            retry=retry_if_exception_type(httpx.HTTPError),
            wait=self._wait,
            stop=stop_after_attempt(self.max_attempts),
            before_sleep=self._log_retry,
            reraise=True,
        )

    def _wait(self, retry_state: RetryCallState) -> float:
        return self.delay_for(retry_state.attempt_number)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Upstream attempt %d/%d failed: %s - retrying in %.1fs",
            retry_state.attempt_number,
            self.max_attempts,
            error,
            self.delay_for(retry_state.attempt_number),
        )
