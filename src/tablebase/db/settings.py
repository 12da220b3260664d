from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """
    Where project data lives on disk.

    Env:
      TABLEBASE_DATA_DIR   root directory holding one sub-directory per project
    """

    data_dir: Path = Field(default=Path("projects"))

    model_config = SettingsConfigDict(
        env_prefix="TABLEBASE_",
        env_file=".env",
        extra="ignore",
    )


class TablesSettings(BaseSettings):
    default_limit: int = Field(default=10, ge=1)
    max_limit: int = Field(default=1000, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="TABLES_",  # TABLES_DEFAULT_LIMIT, TABLES_MAX_LIMIT
        env_file=".env",
        extra="ignore",
    )


@lru_cache
def get_store_settings(**kwargs) -> StoreSettings:
    filtered = {k: v for k, v in kwargs.items() if v is not None}
    return StoreSettings(**filtered)


@lru_cache
def get_tables_settings(**kwargs) -> TablesSettings:
    filtered = {k: v for k, v in kwargs.items() if v is not None}
    return TablesSettings(**filtered)
