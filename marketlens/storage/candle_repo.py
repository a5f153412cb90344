"""Candle data repository."""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert

from marketlens.storage.database import CandleTable, get_database
from marketlens_core.models import Candle, Interval
from marketlens_core.resampler import sanitize_candles

logger = logging.getLogger(__name__)


def _row_to_dict(row: CandleTable) -> dict:
    return {
        "symbol": row.symbol,
        "interval": row.interval,
        "start_time": row.start_time,
        "end_time": row.end_time,
        "open": row.open,
        "high": row.high,
        "low": row.low,
        "close": row.close,
        "volume": row.volume,
    }


def _candle_values(candle: Candle) -> dict:
    return {
        "symbol": candle.symbol,
        "interval": candle.interval.value,
        "start_time": candle.start_time,
        "end_time": candle.end_time,
        "open": candle.open,
        "high": candle.high,
        "low": candle.low,
        "close": candle.close,
        "volume": candle.volume,
    }


def upsert_statement(candles: list[Candle]):
    """Build the INSERT ... ON CONFLICT DO UPDATE for one chunk of candles."""
    stmt = insert(CandleTable).values([_candle_values(c) for c in candles])
    return stmt.on_conflict_do_update(
        index_elements=["symbol", "interval", "start_time"],
        set_={
            "end_time": stmt.excluded.end_time,
            "open": stmt.excluded.open,
            "high": stmt.excluded.high,
            "low": stmt.excluded.low,
            "close": stmt.excluded.close,
            "volume": stmt.excluded.volume,
        },
    )


class CandleRepository:
    """Repository for candle data operations.

    Every write is an upsert on (symbol, interval, start_time), so writing
    the same aggregate twice, or from two concurrent passes, leaves one row
    with the same values.
    """

    async def upsert_batch(self, candles: list[Candle], chunk_size: int = 1000) -> int:
        """Save multiple candles in batch (upsert).

        Args:
            candles: Candles to save
            chunk_size: Maximum number of candles per insert (to stay under the
                        PostgreSQL 32767 parameter limit - 9 columns * 1000)

        Returns:
            Number of candles written
        """
        if not candles:
            return 0

        async with get_database().session() as session:
            for i in range(0, len(candles), chunk_size):
                chunk = candles[i:i + chunk_size]
                await session.execute(upsert_statement(chunk))

        logger.debug(f"Upserted {len(candles)} candles")
        return len(candles)

    async def get_latest(
        self, symbol: str, interval: Interval | str, limit: int = 100
    ) -> list[Candle]:
        """Get the latest candles for a symbol, oldest first."""
        interval = Interval(interval)
        async with get_database().session() as session:
            stmt = (
                select(CandleTable)
                .where(
                    CandleTable.symbol == symbol,
                    CandleTable.interval == interval.value,
                )
                .order_by(CandleTable.start_time.desc())
                .limit(limit)
            )
            result = await session.execute(stmt)
            rows = result.scalars().all()

        return sanitize_candles(_row_to_dict(row) for row in reversed(rows))

    async def get_range(
        self,
        symbol: str,
        interval: Interval | str,
        start: datetime,
        end: datetime | None = None,
    ) -> list[Candle]:
        """Get candles with start_time in [start, end], oldest first."""
        interval = Interval(interval)
        async with get_database().session() as session:
            stmt = select(CandleTable).where(
                CandleTable.symbol == symbol,
                CandleTable.interval == interval.value,
                CandleTable.start_time >= start,
            )
            if end is not None:
                stmt = stmt.where(CandleTable.start_time <= end)
            stmt = stmt.order_by(CandleTable.start_time.asc())

            result = await session.execute(stmt)
            rows = result.scalars().all()

        return sanitize_candles(_row_to_dict(row) for row in rows)
