"""REST API routes."""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel

from marketlens import __version__
from marketlens.analysis_config import load_analysis_config
from marketlens.config import get_settings
from marketlens.services import AggregationService, MarketAnalysisService
from marketlens_core.models import Interval
from marketlens_core.signals import list_rules

logger = logging.getLogger(__name__)

router = APIRouter(default_response_class=ORJSONResponse)


class AggregateRequest(BaseModel):
    """Aggregation request body."""

    symbols: Optional[list[str]] = None


_analysis_service: MarketAnalysisService | None = None
_aggregation_service: AggregationService | None = None


def get_analysis_service() -> MarketAnalysisService:
    global _analysis_service
    if _analysis_service is None:
        config = load_analysis_config(get_settings().analysis_config_path)
        _analysis_service = MarketAnalysisService(config)
    return _analysis_service


def get_aggregation_service() -> AggregationService:
    global _aggregation_service
    if _aggregation_service is None:
        _aggregation_service = AggregationService()
    return _aggregation_service


def _parse_interval(code: str) -> Interval:
    try:
        return Interval(code)
    except ValueError:
        valid = ", ".join(i.value for i in Interval)
        raise HTTPException(
            status_code=400, detail=f"Unknown interval '{code}' (expected one of {valid})"
        ) from None


def _parse_list(value: Optional[str], default: list[str]) -> list[str]:
    """Parse a comma-separated query parameter."""
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/status")
async def get_status():
    """Get system status."""
    settings = get_settings()
    return {
        "status": "running",
        "version": __version__,
        "symbols": settings.symbols,
        "intervals": [i.value for i in Interval],
        "rules": list_rules(),
    }


@router.get("/candles")
async def get_candles(
    symbol: str = Query(..., description="Trading symbol"),
    interval: str = Query("1h", description="Candle interval"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum candles to return"),
    service: MarketAnalysisService = Depends(get_analysis_service),
):
    """Get the latest stored candles, oldest first."""
    candles = await service.get_candles(symbol, _parse_interval(interval), limit)
    return [c.to_wire() for c in candles]


@router.get("/indicators/{symbol}")
async def get_indicators(
    symbol: str,
    interval: str = Query("1h", description="Candle interval"),
    limit: Optional[int] = Query(None, ge=1, le=1000, description="Candles to analyse"),
    service: MarketAnalysisService = Depends(get_analysis_service),
):
    """Get the indicator set for a symbol and interval."""
    parsed = _parse_interval(interval)
    indicators = await service.get_indicators(symbol, parsed, limit)
    if indicators is None:
        raise HTTPException(
            status_code=404, detail=f"Not enough data for {symbol} {parsed.value}"
        )
    return indicators.to_wire()


@router.get("/signals/all")
async def get_all_signals(
    symbols: Optional[str] = Query(None, description="Comma-separated symbols"),
    intervals: Optional[str] = Query(None, description="Comma-separated intervals"),
    service: MarketAnalysisService = Depends(get_analysis_service),
):
    """Get bullish and bearish signals across symbols and intervals."""
    settings = get_settings()
    symbol_list = _parse_list(symbols, settings.symbols)
    interval_list = [
        _parse_interval(i).value for i in _parse_list(intervals, settings.signal_intervals)
    ]

    summary = await service.get_all_signals(symbol_list, interval_list)
    return {**summary.to_wire(), "intervals": interval_list}


@router.get("/signals/quick")
async def get_quick_signals(
    symbols: Optional[str] = Query(None, description="Comma-separated symbols"),
    service: MarketAnalysisService = Depends(get_analysis_service),
):
    """Get signals for the quick (higher) intervals only."""
    settings = get_settings()
    symbol_list = _parse_list(symbols, settings.symbols)

    summary = await service.get_all_signals(symbol_list, settings.quick_intervals)
    return {
        **summary.to_wire(),
        "intervals": settings.quick_intervals,
        "isQuick": True,
    }


@router.get("/signals/top")
async def get_top_signals(
    limit: int = Query(10, ge=1, le=100, description="Maximum signals to return"),
    symbols: Optional[str] = Query(None, description="Comma-separated symbols"),
    intervals: Optional[str] = Query(None, description="Comma-separated intervals"),
    service: MarketAnalysisService = Depends(get_analysis_service),
):
    """Get the strongest signals regardless of direction."""
    settings = get_settings()
    symbol_list = _parse_list(symbols, settings.symbols)
    interval_list = [
        _parse_interval(i).value for i in _parse_list(intervals, settings.signal_intervals)
    ]

    signals = await service.get_top_signals(symbol_list, interval_list, limit)
    return {
        "topSignals": [s.to_wire() for s in signals],
        "total": len(signals),
        "timestamp": _now(),
    }


@router.get("/signals/{symbol}")
async def get_symbol_signals(
    symbol: str,
    interval: str = Query("1h", description="Candle interval"),
    service: MarketAnalysisService = Depends(get_analysis_service),
):
    """Get signals for one symbol and interval."""
    parsed = _parse_interval(interval)
    signals = await service.get_signals(symbol, parsed)
    return {
        "symbol": symbol,
        "interval": parsed.value,
        "signals": [s.to_wire() for s in signals],
        "total": len(signals),
        "timestamp": _now(),
    }


@router.post("/aggregate")
async def trigger_aggregation(
    request: AggregateRequest,
    background_tasks: BackgroundTasks,
    service: AggregationService = Depends(get_aggregation_service),
):
    """Schedule an aggregation pass in the background."""
    symbols = request.symbols or get_settings().symbols
    background_tasks.add_task(service.aggregate, symbols)
    logger.info(f"Scheduled aggregation for {', '.join(symbols)}")
    return {"status": "scheduled", "symbols": symbols}
