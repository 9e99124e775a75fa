"""Wire a MarketDataService from Settings."""

import sentry_sdk

from marketcache.cache import CacheSweeper, TTLCache
from marketcache.config import Settings, settings
from marketcache.logging import logger
from marketcache.providers import EodhdProvider, MarketDataProvider, PolygonProvider
from marketcache.service import MarketDataService
from marketcache.synthetic import SyntheticDataGenerator
from marketcache.upstream import UpstreamCaller


def init_sentry(config: Settings = settings) -> bool:
    """Initialize Sentry if a DSN is configured. Returns True when enabled."""
    if not config.sentry_dsn:
        return False
    sentry_sdk.init(
        dsn=config.sentry_dsn,
        environment=config.sentry_environment,
        traces_sample_rate=config.sentry_traces_sample_rate,
        integrations=[],
        # Attach local variables to exceptions for better debugging
        attach_stacktrace=True,
    )
    logger.info(
        "Sentry initialized environment={environment} traces_sample_rate={traces_sample_rate}",
        environment=config.sentry_environment,
        traces_sample_rate=config.sentry_traces_sample_rate,
    )
    return True


def create_provider(config: Settings = settings) -> MarketDataProvider:
    """
    Build the provider named by `market_data_provider`.

    Raises:
        ValueError: If the selected provider has no API key configured
    """
    if config.market_data_provider == "eodhd":
        if not config.eodhd_api_key:
            raise ValueError("EODHD_API_KEY is required when MARKET_DATA_PROVIDER=eodhd")
        return EodhdProvider(
            api_key=config.eodhd_api_key,
            base_url=config.eodhd_base_url,
            timeout=config.upstream_timeout_seconds,
        )

    if not config.polygon_api_key:
        raise ValueError("POLYGON_API_KEY is required when MARKET_DATA_PROVIDER=polygon")
    return PolygonProvider(
        api_key=config.polygon_api_key, timeout=config.upstream_timeout_seconds
    )


def create_service(
    config: Settings = settings,
    provider: MarketDataProvider | None = None,
    start_sweeper: bool = True,
) -> MarketDataService:
    """
    Build a ready-to-use MarketDataService.

    Args:
        config: Settings to build from
        provider: Use this provider instead of the configured one
        start_sweeper: Start the background cache sweeper thread

    Returns:
        The service; call `close()` on it at shutdown
    """
    init_sentry(config)

    # a missing API key raises here, before any thread or pool exists
    if provider is None:
        provider = create_provider(config)

    cache = TTLCache(ttl_seconds=config.cache_ttl_seconds)
    sweeper = CacheSweeper(cache, interval_seconds=config.cache_sweep_interval_seconds)
    if start_sweeper:
        sweeper.start()

    service = MarketDataService(
        provider,
        cache=cache,
        upstream=UpstreamCaller(
            timeout=config.upstream_timeout_seconds,
            max_workers=config.upstream_max_workers,
        ),
        generator=SyntheticDataGenerator(),
        sweeper=sweeper,
        tz_name=config.timezone,
        synthetic_quote_fallback=config.synthetic_quote_fallback,
        search_limit=config.search_limit,
        max_batch_symbols=config.max_batch_symbols,
    )
    logger.info(
        "Market data service ready provider={provider} cache_ttl={ttl}s",
        provider=type(service.provider).__name__,
        ttl=config.cache_ttl_seconds,
    )
    return service
