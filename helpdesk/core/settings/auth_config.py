"""JWT authentication configuration."""

from pydantic import BaseModel, SecretStr


class AuthConfig(BaseModel, frozen=True):
    """JWT validation settings shared with the identity service."""

    secret_key: SecretStr
    algorithm: str
    access_token_expire_minutes: int
