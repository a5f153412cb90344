"""Data models."""

from marketlens_core.models.candle import (
    BASE_INTERVAL,
    INTERVAL_MINUTES,
    Candle,
    Interval,
    Trade,
)
from marketlens_core.models.config import IndicatorConfig, SignalConfig
from marketlens_core.models.converters import (
    parse_timestamp,
    timestamp_to_datetime,
)
from marketlens_core.models.indicator_set import (
    BollingerBands,
    IndicatorSet,
    MacdSeries,
    PriceLevel,
    SupportResistance,
)
from marketlens_core.models.signal import (
    Signal,
    SignalBias,
    SignalSummary,
    SignalType,
    clamp_strength,
    generate_signal_id,
)

__all__ = [
    "BASE_INTERVAL",
    "INTERVAL_MINUTES",
    "Candle",
    "Interval",
    "Trade",
    "IndicatorConfig",
    "SignalConfig",
    "parse_timestamp",
    "timestamp_to_datetime",
    "BollingerBands",
    "IndicatorSet",
    "MacdSeries",
    "PriceLevel",
    "SupportResistance",
    "Signal",
    "SignalBias",
    "SignalSummary",
    "SignalType",
    "clamp_strength",
    "generate_signal_id",
]
