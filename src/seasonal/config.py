"""Configuration system using pydantic-settings with environment variable loading."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from seasonal.retry import RetryPolicy


class ExchangeSettings(BaseSettings):
    """Market-data exchange connection settings (Binance public data API)."""

    model_config = SettingsConfigDict(env_prefix="EXCHANGE_")

    base_url: str = "https://data-api.binance.vision"
    instruments_path: str = "/api/v3/exchangeInfo"
    candles_path: str = "/api/v3/klines"
    quote_asset: str = "USDT"
    candle_interval: str = "1d"
    request_timeout: float = 15.0  # seconds, per HTTP request


class RetrySettings(BaseSettings):
    """Retry/backoff parameters shared by every rate-limit-aware component."""

    model_config = SettingsConfigDict(env_prefix="RETRY_")

    max_retries: int = 5
    initial_backoff: float = 2.0  # seconds, doubled per attempt
    storage_cooldown: float = 15.0  # seconds to wait out a throttled store

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            initial_backoff=self.initial_backoff,
            storage_cooldown=self.storage_cooldown,
        )


class IngestionSettings(BaseSettings):
    """Ingestion engine configuration.

    Controls storage location, lookback window, per-invocation work size,
    the bootstrap allowlist and the pacing delays used to stay under the
    upstream rate limit. All fields configurable via INGEST_ prefix;
    list fields are given as JSON (e.g. INGEST_POPULAR_SYMBOLS='["BTCUSDT"]').
    """

    model_config = SettingsConfigDict(env_prefix="INGEST_")

    db_path: str = "data/seasonal.db"
    lookback_years: int = 2
    fresh_threshold_days: int = 2  # newer data than this is "up to date"
    stale_run_minutes: int = 10  # claimed runs older than this are abandoned
    symbols_per_invocation: int = 1
    atomic_claim: bool = False  # opt-in compare-and-swap claim of the run
    popular_symbols: list[str] = [
        "BTCUSDT",
        "ETHUSDT",
        "BNBUSDT",
        "XRPUSDT",
        "ADAUSDT",
        "DOGEUSDT",
        "SOLUSDT",
        "MATICUSDT",
    ]

    # Symbol registry pacing
    registry_batch_size: int = 5
    registry_item_delay: float = 0.5
    registry_batch_delay: float = 5.0

    # Candle fetch/store pacing
    history_page_limit: int = 1000  # exchange max klines per request
    incremental_limit: int = 10
    candle_batch_size: int = 20
    candle_batch_delay: float = 1.0
    symbol_delay: float = 8.0


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: str = "json"  # "json" or "console"
    exchange: ExchangeSettings = ExchangeSettings()
    retry: RetrySettings = RetrySettings()
    ingestion: IngestionSettings = IngestionSettings()
