"""Data storage layer."""

from marketlens.storage.database import Database, get_database, init_database
from marketlens.storage.candle_repo import CandleRepository
from marketlens.storage.trade_repo import FundingRateRepository, TradeRepository

__all__ = [
    "Database",
    "get_database",
    "init_database",
    "CandleRepository",
    "FundingRateRepository",
    "TradeRepository",
]
