"""Trade and funding rate repositories."""

from sqlalchemy import select

from marketlens.storage.database import FundingRateTable, TradeTable, get_database
from marketlens_core.models import Trade
from marketlens_core.resampler import sanitize_trades


class TradeRepository:
    """Read access to raw trades (written by the ingestion feed)."""

    async def get_latest(self, symbol: str, limit: int = 1000) -> list[Trade]:
        """Get the most recent trades for a symbol, oldest first."""
        async with get_database().session() as session:
            stmt = (
                select(TradeTable)
                .where(TradeTable.symbol == symbol)
                .order_by(TradeTable.timestamp.desc())
                .limit(limit)
            )
            result = await session.execute(stmt)
            rows = result.scalars().all()

        return sanitize_trades(
            {"symbol": row.symbol, "price": row.price, "timestamp": row.timestamp}
            for row in reversed(rows)
        )


class FundingRateRepository:
    """Read access to funding rates (written by the ingestion feed)."""

    async def get_latest_rate(self, symbol: str) -> float | None:
        """Get the most recent funding rate for a symbol, if any."""
        async with get_database().session() as session:
            stmt = (
                select(FundingRateTable.funding_rate)
                .where(FundingRateTable.symbol == symbol)
                .order_by(FundingRateTable.time.desc())
                .limit(1)
            )
            result = await session.execute(stmt)
            rate = result.scalar_one_or_none()

        return float(rate) if rate is not None else None
