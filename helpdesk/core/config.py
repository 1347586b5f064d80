"""Application configuration using Pydantic Settings V2."""

from functools import cached_property
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from helpdesk.core.settings import (
    AppConfig,
    AuthConfig,
    DatabaseConfig,
    RateLimitConfig,
    RedisConfig,
    SupportConfig,
)

APP_VERSION = "0.1.0"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Flat fields are loaded directly from environment variables.
    Domain properties provide grouped access (e.g. settings.support.poll_batch_limit).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = Field(
        default="helpdesk",
        description="Application name",
    )
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    debug: bool = Field(
        default=True,
        description="Debug mode",
    )
    cors_allowed_origins: list[str] = Field(
        default_factory=list,
        description="Origins allowed by CORS outside development",
    )

    # JWT Auth (tokens are issued by the identity service)
    jwt_secret_key: SecretStr = Field(
        description="JWT secret key for token validation",
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm",
    )
    jwt_access_token_expire_minutes: int = Field(
        default=30,
        ge=1,
        le=1440,
        description="Access token expiration in minutes",
    )

    # Database
    database_url: SecretStr = Field(
        description="Async database URL (mysql+aiomysql://...)",
    )

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    redis_socket_timeout_seconds: float = Field(
        default=2.0,
        gt=0,
        le=30,
        description="Redis socket and connect timeout",
    )

    # Rate limiting
    rate_limit_enabled: bool = Field(
        default=True,
        description="Enable per-client request rate limiting",
    )
    rate_limit_default: str = Field(
        default="300/minute",
        description="Default per-client rate limit",
    )

    # Support sessions
    poll_interval_seconds: float = Field(
        default=3.0,
        gt=0,
        le=60,
        description="Recommended client poll interval",
    )
    poll_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        le=60,
        description="Server-side bound on a single poll request",
    )
    poll_batch_limit: int = Field(
        default=200,
        ge=1,
        le=1000,
        description="Maximum messages returned by one poll",
    )
    heartbeat_ttl_seconds: int = Field(
        default=30,
        ge=1,
        description="How long a poll heartbeat keeps a party marked as seen",
    )
    lock_ttl_seconds: int = Field(
        default=10,
        ge=1,
        le=300,
        description="Expiry of a session/agent coordination lock",
    )
    lock_wait_seconds: float = Field(
        default=2.0,
        ge=0,
        le=30,
        description="How long a caller waits for a busy session before STALE_STATE",
    )
    waiting_timeout_seconds: int = Field(
        default=1800,
        ge=0,
        description="Close waiting sessions older than this (0 disables)",
    )
    sweep_interval_seconds: int = Field(
        default=60,
        ge=1,
        description="Interval of the waiting-session timeout sweeper",
    )
    auto_assign_on_start: bool = Field(
        default=True,
        description="Try to assign an agent as soon as a session starts",
    )
    max_message_length: int = Field(
        default=4000,
        ge=1,
        le=65535,
        description="Maximum message body length",
    )
    system_messages_enabled: bool = Field(
        default=True,
        description="Post system messages on session transitions",
    )
    default_max_concurrent_chats: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Capacity given to newly registered agents",
    )

    # --- Domain properties ---

    @cached_property
    def app(self) -> AppConfig:
        """Application environment configuration."""
        return AppConfig(
            name=self.app_name,
            version=APP_VERSION,
            env=self.app_env,
            debug=self.debug,
            allowed_origins=tuple(self.cors_allowed_origins),
        )

    @cached_property
    def auth(self) -> AuthConfig:
        """JWT authentication configuration."""
        return AuthConfig(
            secret_key=self.jwt_secret_key,
            algorithm=self.jwt_algorithm,
            access_token_expire_minutes=self.jwt_access_token_expire_minutes,
        )

    @cached_property
    def database(self) -> DatabaseConfig:
        """Database connection configuration."""
        return DatabaseConfig(url=self.database_url)

    @cached_property
    def redis(self) -> RedisConfig:
        """Redis connection configuration."""
        return RedisConfig(
            url=self.redis_url,
            socket_timeout_seconds=self.redis_socket_timeout_seconds,
        )

    @cached_property
    def rate_limit(self) -> RateLimitConfig:
        """Rate limiting configuration."""
        return RateLimitConfig(
            enabled=self.rate_limit_enabled,
            default=self.rate_limit_default,
        )

    @cached_property
    def support(self) -> SupportConfig:
        """Live support coordination configuration."""
        return SupportConfig(
            poll_interval_seconds=self.poll_interval_seconds,
            poll_timeout_seconds=self.poll_timeout_seconds,
            poll_batch_limit=self.poll_batch_limit,
            heartbeat_ttl_seconds=self.heartbeat_ttl_seconds,
            lock_ttl_seconds=self.lock_ttl_seconds,
            lock_wait_seconds=self.lock_wait_seconds,
            waiting_timeout_seconds=self.waiting_timeout_seconds,
            sweep_interval_seconds=self.sweep_interval_seconds,
            auto_assign_on_start=self.auto_assign_on_start,
            max_message_length=self.max_message_length,
            system_messages_enabled=self.system_messages_enabled,
            default_max_concurrent_chats=self.default_max_concurrent_chats,
        )


# Global settings instance
settings = Settings()
