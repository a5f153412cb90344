"""Trade and candle (OHLCV) data models."""

from datetime import datetime, timedelta
from enum import Enum

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from marketlens_core.models.converters import parse_timestamp


class Interval(str, Enum):
    """Candle interval codes (wire values)."""

    M1 = "1m"
    M5 = "5m"
    M15 = "15m"
    M30 = "30m"
    H1 = "1h"
    H4 = "4h"
    D1 = "1d"

    @property
    def minutes(self) -> int:
        """Length of the interval in minutes."""
        return INTERVAL_MINUTES[self.value]

    @property
    def delta(self) -> timedelta:
        return timedelta(minutes=self.minutes)


# Interval to minutes mapping
INTERVAL_MINUTES = {
    "1m": 1,
    "5m": 5,
    "15m": 15,
    "30m": 30,
    "1h": 60,
    "4h": 240,
    "1d": 1440,
}

BASE_INTERVAL = Interval.M1


class Trade(BaseModel):
    """A single trade tick from the ingestion feed."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    price: float = Field(gt=0)
    timestamp: datetime = Field(validation_alias=AliasChoices("timestamp", "time"))

    @field_validator("timestamp", mode="before")
    @classmethod
    def _parse_timestamp(cls, value):
        return parse_timestamp(value)


class Candle(BaseModel):
    """OHLCV candle for one symbol, interval and aligned window.

    ``(symbol, interval, start_time)`` uniquely identifies a candle and is
    the key every write is upserted on.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    symbol: str
    interval: Interval
    start_time: datetime = Field(alias="startTime")
    end_time: datetime | None = Field(default=None, alias="endTime")
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_times(cls, value):
        if value is None:
            return None
        return parse_timestamp(value)

    @field_validator("volume", mode="before")
    @classmethod
    def _default_volume(cls, value):
        return 0.0 if value is None else value

    @model_validator(mode="after")
    def _check_ohlc(self):
        if min(self.open, self.high, self.low, self.close) <= 0:
            raise ValueError(
                f"non-positive OHLC: o={self.open} h={self.high} l={self.low} c={self.close}"
            )
        if not self.low <= min(self.open, self.close) <= max(self.open, self.close) <= self.high:
            raise ValueError(
                f"inconsistent OHLC: o={self.open} h={self.high} l={self.low} c={self.close}"
            )
        if self.volume < 0:
            raise ValueError(f"negative volume: {self.volume}")
        return self

    def model_post_init(self, __context) -> None:
        """Derive the window end from the interval when it was not supplied."""
        if self.end_time is None:
            object.__setattr__(self, "end_time", self.start_time + self.interval.delta)

    @property
    def key(self) -> tuple[str, str, datetime]:
        """Idempotency key for upserts."""
        return (self.symbol, self.interval.value, self.start_time)

    def to_wire(self) -> dict:
        """Serialize with the camelCase field names consumers expect."""
        return self.model_dump(mode="json", by_alias=True)
