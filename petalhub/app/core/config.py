from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="PETALHUB_", extra="ignore")

    app_name: str = "PetalHub Wholesale Orders"
    env: str = "dev"

    database_url: str = "sqlite+pysqlite:///./petalhub.db"
    db_pool_timeout_seconds: int = 10

    # Default deadline for one unit of work against the store
    store_timeout_ms: int = Field(default=5000, gt=0)

    default_currency: str = Field(default="USD", min_length=3, max_length=3)

    log_level: str = "INFO"
    # plain | kv
    log_format: str = "plain"

    seed_on_startup: bool = False


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
