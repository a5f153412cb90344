"""Aggregation service: keeps higher-interval candles in sync with 1m data.

One pass per symbol:

1. Probe for stored 1m candles. If there are none, build them from the
   latest raw trades and store them.
2. Load the last ``aggregation_lookback_hours`` of 1m candles.
3. Resample them into every target interval and upsert the result.

Passes are idempotent: re-running over overlapping input rewrites the same
rows with the same values, so overlapping or concurrent passes are safe.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from marketlens.config import get_settings
from marketlens.storage import CandleRepository, TradeRepository
from marketlens_core.models import BASE_INTERVAL, Interval
from marketlens_core.resampler import candles_from_trades, interval_start, resample

logger = logging.getLogger(__name__)


class AggregationService:
    """Runs resampling passes over stored candles."""

    def __init__(
        self,
        candle_repo: CandleRepository | None = None,
        trade_repo: TradeRepository | None = None,
        target_intervals: list[str] | None = None,
    ):
        settings = get_settings()
        self._candle_repo = candle_repo or CandleRepository()
        self._trade_repo = trade_repo or TradeRepository()
        self._targets = [
            Interval(i) for i in (target_intervals or settings.target_intervals)
        ]
        self._lookback = timedelta(hours=settings.aggregation_lookback_hours)
        self._probe_limit = settings.base_candle_probe_limit
        self._trade_limit = settings.trade_fallback_limit

    async def _ensure_base_candles(self, symbol: str) -> int:
        """Build 1m candles from trades when none are stored yet.

        Returns:
            Number of 1m candles created from trades
        """
        existing = await self._candle_repo.get_latest(
            symbol, BASE_INTERVAL, limit=self._probe_limit
        )
        if existing:
            return 0

        trades = await self._trade_repo.get_latest(symbol, limit=self._trade_limit)
        if not trades:
            logger.info(f"No 1m candles or trades for {symbol}")
            return 0

        candles = candles_from_trades(trades, BASE_INTERVAL)
        written = await self._candle_repo.upsert_batch(candles)
        logger.info(f"Built {written} 1m candles from {len(trades)} trades for {symbol}")
        return written

    async def aggregate_symbol(self, symbol: str, now: datetime | None = None) -> dict:
        """Run one aggregation pass for a symbol.

        Storage errors propagate to the caller.

        Returns:
            Per-interval counts of candles written, plus ``1m`` when base
            candles were built from trades
        """
        now = now or datetime.now(timezone.utc)
        counts: dict[str, int] = {}

        built = await self._ensure_base_candles(symbol)
        if built:
            counts[BASE_INTERVAL.value] = built

        # Start on an aligned day boundary so the first window of every
        # target interval is complete
        start = interval_start(now - self._lookback, Interval.D1)
        base = await self._candle_repo.get_range(symbol, BASE_INTERVAL, start, now)
        if not base:
            logger.info(f"No 1m candles in lookback window for {symbol}")
            return counts

        for target in self._targets:
            if target == BASE_INTERVAL:
                continue
            aggregated = resample(base, target)
            counts[target.value] = await self._candle_repo.upsert_batch(aggregated)

        logger.debug(f"Aggregated {symbol} from {len(base)} 1m candles: {counts}")
        return counts

    async def _aggregate_one(self, symbol: str) -> dict:
        try:
            counts = await self.aggregate_symbol(symbol)
            total = sum(counts.values())
            return {
                "symbol": symbol,
                "success": True,
                "message": f"Aggregated {total} candles",
                "candles": counts,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        except Exception as e:
            logger.error(f"Aggregation failed for {symbol}: {e}")
            return {
                "symbol": symbol,
                "success": False,
                "message": str(e),
                "candles": {},
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }

    async def aggregate(self, symbols: list[str] | None = None) -> list[dict]:
        """Aggregate several symbols concurrently.

        A failing symbol is reported in its result and does not stop the
        others.
        """
        symbols = symbols or get_settings().symbols
        results = await asyncio.gather(*(self._aggregate_one(s) for s in symbols))

        ok = sum(1 for r in results if r["success"])
        logger.info(f"Aggregation pass: {ok}/{len(results)} symbols succeeded")
        return list(results)

    async def run_periodic(
        self, interval_seconds: float, symbols: list[str] | None = None
    ) -> None:
        """Run aggregation passes forever, ``interval_seconds`` apart."""
        while True:
            try:
                await self.aggregate(symbols)
            except Exception as e:
                logger.warning(f"Aggregation pass error: {e}")
            await asyncio.sleep(interval_seconds)
