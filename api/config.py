"""HTTP layer configuration."""

import os
from typing import Literal

from pydantic import BaseModel, Field


class APIConfig(BaseModel):
    """API configuration. Secrets live in Vault, not here."""

    environment: Literal["development", "production"] = Field(
        default="development",
        description="Production hides tracebacks from error responses",
    )
    api_prefix: str = Field(
        default="/api/v1",
        description="Versioned prefix for all API routes",
    )
    cache_ttl_seconds: int = Field(
        default=300,
        description="Default TTL for cached GET responses",
        ge=1,
        le=86400,
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> "APIConfig":
        """Build from PORTAL_ENV / PORTAL_API_PREFIX, falling back to defaults."""
        values = {}
        if os.getenv("PORTAL_ENV"):
            values["environment"] = os.environ["PORTAL_ENV"]
        if os.getenv("PORTAL_API_PREFIX"):
            values["api_prefix"] = os.environ["PORTAL_API_PREFIX"]
        return cls(**values)
