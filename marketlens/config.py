"""Application configuration."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = "postgresql://localhost/marketlens"

    # Symbols and intervals
    symbols: list[str] = ["ETH", "BTC", "SOL"]
    target_intervals: list[str] = ["5m", "15m", "30m", "1h", "4h", "1d"]
    signal_intervals: list[str] = ["5m", "15m", "30m", "1h"]
    quick_intervals: list[str] = ["1h", "4h"]

    # Analysis
    candle_limit: int = 100
    analysis_config_path: str = "analysis.yaml"

    # Aggregation
    aggregation_lookback_hours: int = 24
    base_candle_probe_limit: int = 100
    trade_fallback_limit: int = 1000
    aggregation_interval_seconds: float = 60.0  # 0 disables the periodic pass

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
