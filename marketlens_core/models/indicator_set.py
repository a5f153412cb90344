"""Indicator bundle produced by the indicator engine."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from marketlens_core.models.candle import Interval


class PriceLevel(BaseModel):
    """A support or resistance level."""

    price: float
    time: datetime | None = None
    strength: int = 0


class SupportResistance(BaseModel):
    supports: list[PriceLevel] = Field(default_factory=list)
    resistances: list[PriceLevel] = Field(default_factory=list)


class MacdSeries(BaseModel):
    macd: list[float] = Field(default_factory=list)
    signal: list[float] = Field(default_factory=list)
    histogram: list[float] = Field(default_factory=list)


class BollingerBands(BaseModel):
    upper: list[float] = Field(default_factory=list)
    middle: list[float] = Field(default_factory=list)
    lower: list[float] = Field(default_factory=list)


class IndicatorSet(BaseModel):
    """Indicator series for one symbol and interval.

    Every series is ordered oldest first, so ``series[-1]`` is the value at
    the latest candle. An empty series means the indicator could not be
    computed from the supplied data and must be treated as unavailable.
    """

    model_config = ConfigDict(populate_by_name=True)

    symbol: str
    interval: Interval
    as_of: datetime = Field(alias="asOf")
    last_bar_time: datetime | None = Field(default=None, alias="lastBarTime")
    current_price: float = Field(alias="currentPrice")
    price_change_24h: float = Field(default=0.0, alias="priceChange24h")

    rsi: list[float] = Field(default_factory=list)
    macd: MacdSeries = Field(default_factory=MacdSeries)
    bollinger_bands: BollingerBands = Field(
        default_factory=BollingerBands, alias="bollingerBands"
    )
    sma20: list[float] = Field(default_factory=list)
    sma50: list[float] = Field(default_factory=list)
    ema12: list[float] = Field(default_factory=list)
    ema26: list[float] = Field(default_factory=list)
    vwap: list[float] = Field(default_factory=list)
    support_resistance: SupportResistance = Field(
        default_factory=SupportResistance, alias="supportResistance"
    )

    # Effective period per indicator after adaptive degradation
    periods: dict[str, int] = Field(default_factory=dict)

    def to_wire(self) -> dict:
        """Serialize with the camelCase field names consumers expect."""
        return self.model_dump(mode="json", by_alias=True)
