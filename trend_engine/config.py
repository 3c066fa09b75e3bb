"""
Configuration management for the trend signal engine.

Every tunable threshold, window, TTL and interval lives here so that no
component hard-wires a domain constant. Components receive a Settings
instance through their constructor and fall back to get_settings().
"""

from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Engine settings loaded from environment variables (or .env)."""

    # ── Classification ──
    # Below this many samples a series is INSUFFICIENT_DATA, never an error.
    min_data_points: int = Field(default=10, alias="MIN_DATA_POINTS")
    breakout_threshold: float = Field(default=0.8, alias="BREAKOUT_THRESHOLD")
    reversal_threshold: float = Field(default=0.8, alias="REVERSAL_THRESHOLD")
    seasonality_threshold: float = Field(default=0.7, alias="SEASONALITY_THRESHOLD")
    trend_strength_threshold: float = Field(default=0.7, alias="TREND_STRENGTH_THRESHOLD")

    # ── Statistics kernel ──
    # FFT input is padded to the next power of two at or above this floor
    fft_padding: int = Field(default=32, alias="FFT_PADDING")
    # Financial-series convention: trading days per year
    annualization_periods: int = Field(default=252, alias="ANNUALIZATION_PERIODS")

    # ── Band classification (momentum / volatility path) ──
    band_momentum_threshold: float = Field(default=0.3, alias="BAND_MOMENTUM_THRESHOLD")
    band_low_volatility: float = Field(default=0.2, alias="BAND_LOW_VOLATILITY")
    band_high_volatility: float = Field(default=0.4, alias="BAND_HIGH_VOLATILITY")
    band_flat_momentum: float = Field(default=0.1, alias="BAND_FLAT_MOMENTUM")
    band_flat_volatility: float = Field(default=0.15, alias="BAND_FLAT_VOLATILITY")
    band_reversal_magnitude: float = Field(default=0.2, alias="BAND_REVERSAL_MAGNITUDE")
    band_breakout_sigma: float = Field(default=2.0, alias="BAND_BREAKOUT_SIGMA")
    band_recent_points: int = Field(default=5, alias="BAND_RECENT_POINTS")

    # ── Dynamic weights ──
    # exp(-rate * hours)
    time_decay_rate: float = Field(default=0.01, alias="TIME_DECAY_RATE")
    default_seasonality_score: float = Field(default=0.7, alias="DEFAULT_SEASONALITY_SCORE")
    default_market_potential: float = Field(default=0.75, alias="DEFAULT_MARKET_POTENTIAL")

    # ── Aggregation pipeline ──
    history_window: int = Field(default=90, alias="HISTORY_WINDOW")
    pipeline_max_items: int = Field(default=10000, alias="PIPELINE_MAX_ITEMS")
    pipeline_workers: int = Field(default=4, alias="PIPELINE_WORKERS")
    batch_size_default: int = Field(default=50, alias="BATCH_SIZE_DEFAULT")
    batch_size_min: int = Field(default=10, alias="BATCH_SIZE_MIN")
    batch_size_max: int = Field(default=200, alias="BATCH_SIZE_MAX")
    batch_memory_threshold: float = Field(default=0.75, alias="BATCH_MEMORY_THRESHOLD")
    batch_target_seconds: float = Field(default=5.0, alias="BATCH_TARGET_SECONDS")

    # ── Caches (seconds) ──
    request_cache_ttl_seconds: float = Field(default=1800, alias="REQUEST_CACHE_TTL_SECONDS")
    competitor_cache_ttl_seconds: float = Field(default=14400, alias="COMPETITOR_CACHE_TTL_SECONDS")
    sentiment_cache_ttl_seconds: float = Field(default=86400, alias="SENTIMENT_CACHE_TTL_SECONDS")

    # ── Scheduled tasks (seconds) ──
    reaggregation_interval_seconds: float = Field(default=3600, alias="REAGGREGATION_INTERVAL_SECONDS")
    metrics_refresh_interval_seconds: float = Field(default=300, alias="METRICS_REFRESH_INTERVAL_SECONDS")
    weight_smoothing_interval_seconds: float = Field(default=900, alias="WEIGHT_SMOOTHING_INTERVAL_SECONDS")

    # ── Real-time adapter ──
    realtime_window: int = Field(default=100, alias="REALTIME_WINDOW")
    # EMA: smoothed = retain * old + (1 - retain) * new
    ema_retain: float = Field(default=0.7, alias="EMA_RETAIN")
    significance_threshold: float = Field(default=0.7, alias="SIGNIFICANCE_THRESHOLD")

    # ── Storage / runtime ──
    database_url: str = Field(default="sqlite:///./data/trends.db", alias="DATABASE_URL")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        frozen = True
        populate_by_name = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
