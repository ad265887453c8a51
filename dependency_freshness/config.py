"""
Settings for registry lookups.

Every field can be overridden with a ``DEPENDENCY_FRESHNESS_`` prefixed
environment variable, e.g. ``DEPENDENCY_FRESHNESS_MAX_IN_FLIGHT=4``.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .resolvers import LatestPolicy


DEFAULT_REGISTRY_URL = "https://registry.npmjs.org"
ENV_PREFIX = "DEPENDENCY_FRESHNESS_"


class LookupSettings(BaseSettings):
    """Tunables for the lookup pipeline.

    Args:
        registry_url: Base URL of the package registry
        max_in_flight: Maximum number of concurrent metadata fetches
        timeout: Per-request timeout in seconds
        debounce_delay: Seconds to wait for input to settle before a run starts
        latest_policy: How the latest version is chosen
        user_agent: User-Agent header sent to the registry
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_ignore_empty=True,
        str_strip_whitespace=True,
        frozen=True,
        extra="ignore",
    )

    registry_url: str = Field(default=DEFAULT_REGISTRY_URL)
    max_in_flight: int = Field(default=8, ge=1)
    timeout: float = Field(default=30.0, gt=0)
    debounce_delay: float = Field(default=0.2, ge=0)
    latest_policy: LatestPolicy = LatestPolicy.DIST_TAG
    user_agent: str = Field(default="dependency-freshness/0.1.0")

    @field_validator("registry_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.rstrip("/")
        if not value:
            raise ValueError("registry_url must not be empty")
        return value

    def with_registry_url(self, registry_url: str) -> "LookupSettings":
        return self.model_validate({**self.model_dump(), "registry_url": registry_url})
