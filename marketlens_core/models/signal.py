"""Signal data models."""

import hashlib
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from marketlens_core.models.candle import Interval


class SignalBias(str, Enum):
    """Signal direction."""

    BULLISH = "bullish"
    BEARISH = "bearish"


class SignalType(str, Enum):
    """Rule that produced a signal (wire values)."""

    RSI_OVERSOLD = "rsi_oversold"
    RSI_OVERBOUGHT = "rsi_overbought"
    RSI_BULLISH_DIVERGENCE = "rsi_bullish_divergence"
    MACD_BULLISH_CROSSOVER = "macd_bullish_crossover"
    MACD_BEARISH_CROSSOVER = "macd_bearish_crossover"
    BB_OVERSOLD = "bb_oversold"
    BB_OVERBOUGHT = "bb_overbought"
    GOLDEN_CROSS = "golden_cross"
    DEATH_CROSS = "death_cross"
    EXTREME_FUNDING_BULLISH = "extreme_funding_bullish"
    EXTREME_FUNDING_BEARISH = "extreme_funding_bearish"


def clamp_strength(value: float) -> float:
    """Clamp a strength score into [0, 100]."""
    if value != value:  # NaN
        return 0.0
    return max(0.0, min(100.0, float(value)))


def generate_signal_id(
    symbol: str, interval: str, signal_type: str, bar_time: datetime | None
) -> str:
    """Generate a deterministic signal ID.

    The same rule firing on the same bar always yields the same ID, so
    consumers polling repeatedly can recognise a signal they already have.
    """
    ts_str = bar_time.strftime("%Y%m%d%H%M%S%f") if bar_time else "-"
    key = f"{symbol}:{interval}:{signal_type}:{ts_str}"
    return hashlib.sha256(key.encode()).hexdigest()[:32]


class Signal(BaseModel):
    """A scored trading signal emitted by one rule."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = ""  # Will be set in model_post_init
    symbol: str
    interval: Interval
    type: SignalBias
    signal_type: SignalType = Field(alias="signalType")
    description: str = ""
    strength: float
    price: float | None = None
    detected_at: datetime = Field(alias="detectedAt")
    bar_time: datetime | None = Field(default=None, alias="barTime")

    # Rule-specific fields
    rsi: float | None = None
    macd: float | None = None
    macd_signal: float | None = Field(default=None, alias="signal")
    lower_band: float | None = Field(default=None, alias="lowerBand")
    upper_band: float | None = Field(default=None, alias="upperBand")
    sma20: float | None = None
    sma50: float | None = None
    funding_rate: float | None = Field(default=None, alias="fundingRate")

    @field_validator("strength")
    @classmethod
    def _clamp_strength(cls, value: float) -> float:
        return clamp_strength(value)

    @computed_field
    @property
    def timeframe(self) -> str:
        """Alias of ``interval`` kept for dashboard consumers."""
        return self.interval.value

    def model_post_init(self, __context) -> None:
        """Generate deterministic ID after model initialization."""
        if not self.id:
            object.__setattr__(
                self,
                "id",
                generate_signal_id(
                    self.symbol,
                    self.interval.value,
                    self.signal_type.value,
                    self.bar_time,
                ),
            )

    @property
    def is_bullish(self) -> bool:
        return self.type == SignalBias.BULLISH

    def to_wire(self) -> dict:
        """Serialize with the camelCase field names consumers expect."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SignalSummary(BaseModel):
    """Signals partitioned by direction, strongest first."""

    bullish: list[Signal] = Field(default_factory=list)
    bearish: list[Signal] = Field(default_factory=list)
    total: int = 0
    timestamp: datetime

    def to_wire(self) -> dict:
        return {
            "bullish": [s.to_wire() for s in self.bullish],
            "bearish": [s.to_wire() for s in self.bearish],
            "total": self.total,
            "timestamp": self.timestamp.isoformat(),
        }
