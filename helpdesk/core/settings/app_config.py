"""Application environment configuration."""

from typing import Literal

from pydantic import BaseModel


class AppConfig(BaseModel, frozen=True):
    """Application environment settings."""

    name: str
    version: str
    env: Literal["development", "staging", "production"]
    debug: bool
    allowed_origins: tuple[str, ...] = ()

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env == "development"

    @property
    def cors_origins(self) -> list[str]:
        """Origins allowed by CORS; any origin in development."""
        if self.is_development:
            return ["*"]
        return list(self.allowed_origins)
