"""Client configuration models."""

from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_RETRY_COUNT = 3
DEFAULT_REQUESTS_PER_SECOND = 10.0
DEFAULT_BURST_SIZE = 20
DEFAULT_USER_AGENT = "wati-client/1.0.0"


class RateLimitConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    requests_per_second: float = Field(default=DEFAULT_REQUESTS_PER_SECOND, gt=0)
    burst_size: int = Field(default=DEFAULT_BURST_SIZE, ge=1)


class ClientConfig(BaseModel):
    """Immutable snapshot of everything the request pipeline needs.

    Endpoint and token changes produce a new snapshot via ``model_copy`` so
    concurrent readers never observe a half-updated config.
    """

    model_config = ConfigDict(frozen=True)

    api_endpoint: str
    token: str
    timeout: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    retry_count: int = Field(default=DEFAULT_RETRY_COUNT, ge=0)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    user_agent: str = DEFAULT_USER_AGENT

    @field_validator("api_endpoint")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    def with_endpoint(self, api_endpoint: str) -> ClientConfig:
        return self.model_copy(update={"api_endpoint": api_endpoint.rstrip("/")})

    def with_token(self, token: str) -> ClientConfig:
        return self.model_copy(update={"token": token})

    @classmethod
    def from_env(cls) -> ClientConfig:
        """Create a config from ``WATI_*`` environment variables."""
        rate_limit = RateLimitConfig(
            requests_per_second=float(
                os.environ.get("WATI_RATE_LIMIT_RPS", str(DEFAULT_REQUESTS_PER_SECOND)),
            ),
            burst_size=int(os.environ.get("WATI_RATE_LIMIT_BURST", str(DEFAULT_BURST_SIZE))),
        )
        return cls(
            api_endpoint=os.environ["WATI_API_ENDPOINT"],
            token=os.environ["WATI_TOKEN"],
            timeout=float(os.environ.get("WATI_TIMEOUT", str(DEFAULT_TIMEOUT_SECONDS))),
            retry_count=int(os.environ.get("WATI_RETRY_COUNT", str(DEFAULT_RETRY_COUNT))),
            rate_limit=rate_limit,
            user_agent=os.environ.get("WATI_USER_AGENT", DEFAULT_USER_AGENT),
        )


def default_config(api_endpoint: str = "", token: str = "") -> ClientConfig:
    """Return a fresh config populated with the library defaults."""
    return ClientConfig(api_endpoint=api_endpoint, token=token)
