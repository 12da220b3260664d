from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthSettings(BaseSettings):
    jwt_algorithm: str = "HS256"
    token_ttl_seconds: int = Field(default=60 * 60, gt=0)
    remember_ttl_seconds: int = Field(default=60 * 60 * 24 * 30, gt=0)

    # bcrypt cost; tests may lower it, production keeps >= 10
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)
    password_min_length: int = Field(default=6, ge=1)

    model_config = SettingsConfigDict(env_prefix="AUTH_", env_file=".env", extra="ignore")


_settings: AuthSettings | None = None


def get_auth_settings() -> AuthSettings:
    global _settings
    if _settings is None:
        _settings = AuthSettings()
    return _settings
