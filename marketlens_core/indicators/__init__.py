"""Technical indicators (pure math, no I/O)."""

from marketlens_core.indicators.indicators import (
    bollinger_bands,
    effective_period,
    ema,
    level_strength,
    macd,
    rsi,
    sma,
    support_resistance,
    vwap,
)
from marketlens_core.indicators.engine import compute_indicators

__all__ = [
    "bollinger_bands",
    "effective_period",
    "ema",
    "level_strength",
    "macd",
    "rsi",
    "sma",
    "support_resistance",
    "vwap",
    "compute_indicators",
]
