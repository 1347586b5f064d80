"""Domain-specific configuration models."""

from helpdesk.core.settings.app_config import AppConfig
from helpdesk.core.settings.auth_config import AuthConfig
from helpdesk.core.settings.database_config import DatabaseConfig
from helpdesk.core.settings.rate_limit_config import RateLimitConfig
from helpdesk.core.settings.redis_config import RedisConfig
from helpdesk.core.settings.support_config import SupportConfig

__all__ = [
    "AppConfig",
    "AuthConfig",
    "DatabaseConfig",
    "RateLimitConfig",
    "RedisConfig",
    "SupportConfig",
]
