"""Rate limiting configuration."""

from pydantic import BaseModel


class RateLimitConfig(BaseModel, frozen=True):
    """Request rate limiting settings."""

    enabled: bool
    default: str
