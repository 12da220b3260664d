from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiSettings(BaseSettings):
    prefix: str = "/rest/v1"
    project_header: str = "X-Project-Name"
    cors_origins: list[str] = ["*"]
    max_request_bytes: int = 25_000_000
    max_upload_files: int = 12

    model_config = SettingsConfigDict(
        env_prefix="API_",  # API_PREFIX, API_PROJECT_HEADER, API_CORS_ORIGINS='["http://x"]'
        env_file=".env",
        extra="ignore",
    )


@lru_cache
def get_api_settings(**kwargs) -> ApiSettings:
    filtered = {k: v for k, v in kwargs.items() if v is not None}
    return ApiSettings(**filtered)
