#!/usr/bin/env python3
"""
Run one aggregation pass and optionally print the resulting signals.

Examples:
    python scripts/run_aggregation.py --symbols ETH,BTC
    python scripts/run_aggregation.py --signals --intervals 15m,1h
"""

import argparse
import asyncio
import json
import logging

from marketlens.analysis_config import load_analysis_config
from marketlens.config import get_settings
from marketlens.services import AggregationService, MarketAnalysisService
from marketlens.storage import get_database, init_database

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def _split(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [v.strip() for v in value.split(",") if v.strip()]


async def main():
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Aggregate candles and detect signals")
    parser.add_argument("--symbols", help="Comma-separated symbols (default: all configured)")
    parser.add_argument("--intervals", help="Comma-separated signal intervals")
    parser.add_argument("--signals", action="store_true", help="Print signals after aggregating")
    parser.add_argument("--config", default=settings.analysis_config_path, help="analysis.yaml path")
    args = parser.parse_args()

    symbols = _split(args.symbols, settings.symbols)
    intervals = _split(args.intervals, settings.signal_intervals)

    await init_database()
    try:
        results = await AggregationService().aggregate(symbols)
        for result in results:
            status = "ok" if result["success"] else "FAILED"
            logger.info(f"{result['symbol']}: {status} - {result['message']}")

        if args.signals:
            service = MarketAnalysisService(load_analysis_config(args.config))
            summary = await service.get_all_signals(symbols, intervals)
            print(json.dumps(summary.to_wire(), indent=2))
    finally:
        await get_database().close()


if __name__ == "__main__":
    asyncio.run(main())
