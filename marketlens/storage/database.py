"""Database connection and table definitions."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import BigInteger, Column, DateTime, Index, Numeric, String
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from marketlens.config import get_settings

Base = declarative_base()


class CandleTable(Base):
    """OHLCV candles, unique per (symbol, interval, start_time)."""

    __tablename__ = "candles"

    symbol = Column(String(20), primary_key=True)
    interval = Column(String(10), primary_key=True)
    start_time = Column(DateTime(timezone=True), primary_key=True)
    end_time = Column(DateTime(timezone=True), nullable=False)
    open = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    high = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    low = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    close = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    volume = Column(Numeric(30, 8, asdecimal=False), nullable=False, default=0)

    __table_args__ = (
        Index("idx_candles_symbol_interval", "symbol", "interval"),
    )


class TradeTable(Base):
    """Raw trade ticks written by the ingestion feed."""

    __tablename__ = "trades"

    id = Column(BigInteger, primary_key=True, autoincrement=True)
    symbol = Column(String(20), nullable=False)
    price = Column(Numeric(20, 8, asdecimal=False), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_trades_symbol_time", "symbol", "timestamp"),
    )


class FundingRateTable(Base):
    """Perpetual funding rates, unique per (symbol, next_funding_time)."""

    __tablename__ = "funding_rates"

    symbol = Column(String(20), primary_key=True)
    next_funding_time = Column(DateTime(timezone=True), primary_key=True)
    funding_rate = Column(Numeric(20, 10, asdecimal=False), nullable=False)
    premium = Column(Numeric(20, 10, asdecimal=False), nullable=True)
    time = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_funding_rates_symbol_time", "symbol", "time"),
    )


class Database:
    """Database connection manager."""

    def __init__(self, database_url: str | None = None):
        settings = get_settings()
        url = database_url or settings.database_url

        # Convert postgresql:// to postgresql+asyncpg://
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)

        # One aggregation task per symbol plus API requests
        self.engine = create_async_engine(
            url,
            echo=settings.debug,
            pool_size=10,
            max_overflow=20,
            pool_pre_ping=True,
            pool_recycle=3600,
            pool_timeout=30,
        )
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    async def create_tables(self) -> None:
        """Create all tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a database session."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        """Close database connection."""
        await self.engine.dispose()


# Global database instance
_db: Database | None = None


def get_database() -> Database:
    """Get the global database instance."""
    global _db
    if _db is None:
        _db = Database()
    return _db


async def init_database() -> Database:
    """Initialize the database and create tables."""
    db = get_database()
    await db.create_tables()
    return db
