"""Indicator and signal configuration models."""

from pydantic import BaseModel, Field, model_validator


class IndicatorConfig(BaseModel):
    """Indicator periods and data-sufficiency thresholds."""

    # Below this many candles no indicator set is produced
    min_candles: int = Field(default=20, ge=1)

    # Shrink periods that exceed the available data instead of
    # returning empty series, but never below min_period
    adaptive_periods: bool = True
    min_period: int = Field(default=5, ge=2)

    rsi_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    bb_period: int = 20
    bb_std_mult: float = 2.0
    sma_fast: int = 20
    sma_slow: int = 50
    ema_fast: int = 12
    ema_slow: int = 26

    sr_lookback: int = 50
    sr_tolerance: float = 0.001  # 0.1%

    # Bars back for the price change figure (24 bars)
    change_lookback: int = 24

    @model_validator(mode="after")
    def _validate(self):
        if self.macd_fast >= self.macd_slow:
            raise ValueError(
                f"macd_fast ({self.macd_fast}) must be below macd_slow ({self.macd_slow})"
            )
        return self


class SignalConfig(BaseModel):
    """Thresholds and strength scaling for the signal rules."""

    rsi_oversold: float = 35.0
    rsi_overbought: float = 65.0
    rsi_max_strength: float = 95.0

    # RSI rising through the 30-50 band
    rsi_momentum_low: float = 30.0
    rsi_momentum_high: float = 50.0
    rsi_momentum_strength: float = 60.0

    macd_strength_scale: float = 1000.0
    macd_max_strength: float = 90.0

    bb_tolerance: float = 0.01  # 1%
    bb_strength: float = 75.0

    ma_cross_strength: float = 80.0

    funding_threshold: float = 0.01
    funding_strength_scale: float = 5000.0
    funding_max_strength: float = 95.0
