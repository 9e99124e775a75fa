"""Configuration values for the marketcache package."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    market_data_provider: Literal["polygon", "eodhd"] = Field(
        "polygon", description="Upstream market data provider"
    )

    polygon_api_key: str | None = Field(None, description="Polygon.io API key")

    eodhd_api_key: str | None = Field(None, description="EODHD API token")
    eodhd_base_url: str = Field(
        "https://eodhd.com/api", description="EODHD API base URL"
    )

    cache_ttl_seconds: int = Field(300, description="Cache entry time-to-live", gt=0)
    cache_sweep_interval_seconds: float = Field(
        60.0, description="Seconds between sweeps of expired cache entries", gt=0
    )

    upstream_timeout_seconds: float = Field(
        10.0, description="Max seconds to wait on one upstream call", gt=0
    )
    upstream_max_workers: int = Field(
        4, description="Worker threads available for upstream calls", gt=0
    )

    synthetic_quote_fallback: bool = Field(
        False, description="Serve synthetic quotes instead of None on upstream failure"
    )

    search_limit: int = Field(10, description="Max symbol search results", gt=0)
    max_batch_symbols: int = Field(
        10, description="Max symbols accepted by one batch quote request", gt=0
    )

    timezone: str = Field("UTC", description="Timezone used to resolve 'now'")

    log_level: str = Field("INFO", description="Log level")

    sentry_dsn: str | None = Field(None, description="Sentry DSN (disabled if unset)")
    sentry_environment: str = Field("production", description="Sentry environment")
    sentry_traces_sample_rate: float = Field(
        0.0, description="Sentry performance traces sample rate"
    )


settings = Settings()
