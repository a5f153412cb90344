"""Market analysis service: indicators and signals over stored candles."""

import asyncio
import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from marketlens.analysis_config import AnalysisConfig
from marketlens.config import get_settings
from marketlens.storage import CandleRepository, FundingRateRepository
from marketlens_core.indicators import compute_indicators
from marketlens_core.models import Candle, IndicatorSet, Interval, Signal, SignalSummary
from marketlens_core.signals import aggregate_signals, detect_signals, top_signals

logger = logging.getLogger(__name__)


class MarketAnalysisService:
    """Reads candles and funding rates and runs the analytics core."""

    def __init__(
        self,
        config: AnalysisConfig | None = None,
        candle_repo: CandleRepository | None = None,
        funding_repo: FundingRateRepository | None = None,
    ):
        self.config = config or AnalysisConfig()
        self._candle_repo = candle_repo or CandleRepository()
        self._funding_repo = funding_repo or FundingRateRepository()
        self._limit = get_settings().candle_limit

    async def get_candles(
        self, symbol: str, interval: Interval | str, limit: int | None = None
    ) -> list[Candle]:
        return await self._candle_repo.get_latest(symbol, interval, limit or self._limit)

    async def get_indicators(
        self, symbol: str, interval: Interval | str, limit: int | None = None
    ) -> IndicatorSet | None:
        """Compute indicators from the latest candles.

        Returns:
            IndicatorSet, or None when there is not enough data
        """
        candles = await self.get_candles(symbol, interval, limit)
        return compute_indicators(candles, self.config.indicators)

    async def get_signals(self, symbol: str, interval: Interval | str) -> list[Signal]:
        """Detect signals for one symbol and interval (empty when data is short)."""
        indicators = await self.get_indicators(symbol, interval)
        if indicators is None:
            return []

        funding_rate = await self._funding_repo.get_latest_rate(symbol)
        return detect_signals(indicators, funding_rate, self.config.signals)

    async def _collect(self, symbols: list[str], intervals: list[str]) -> list[Signal]:
        pairs = [(s, i) for s in symbols for i in intervals]
        results = await asyncio.gather(
            *(self.get_signals(s, i) for s, i in pairs), return_exceptions=True
        )

        # Storage failures reach the caller; a pair failing inside the
        # analytics is logged and skipped
        for result in results:
            if isinstance(result, SQLAlchemyError):
                raise result

        signals: list[Signal] = []
        for (symbol, interval), result in zip(pairs, results):
            if isinstance(result, Exception):
                logger.error(f"Signal detection failed for {symbol} {interval}: {result}")
                continue
            signals.extend(result)
        return signals

    async def get_all_signals(
        self, symbols: list[str], intervals: list[str]
    ) -> SignalSummary:
        """Signals across every (symbol, interval) pair, split by direction."""
        signals = await self._collect(symbols, intervals)
        return aggregate_signals(signals, datetime.now(timezone.utc))

    async def get_top_signals(
        self, symbols: list[str], intervals: list[str], limit: int = 10
    ) -> list[Signal]:
        signals = await self._collect(symbols, intervals)
        return top_signals(signals, limit)
