"""Tests for the aggregation service."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from marketlens.services import AggregationService
from marketlens_core.models import Candle, Interval, Trade

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
T0 = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)


def make_1m_candles(count: int, symbol: str = "ETH") -> list[Candle]:
    """Helper to create consecutive 1m candles starting at T0."""
    return [
        Candle(
            symbol=symbol,
            interval=Interval.M1,
            start_time=T0 + timedelta(minutes=i),
            open=100,
            high=101,
            low=99,
            close=100.5,
            volume=1,
        )
        for i in range(count)
    ]


def make_repos(latest=None, base=None, trades=None):
    """Helper to create mocked candle and trade repositories."""
    candle_repo = MagicMock()
    candle_repo.get_latest = AsyncMock(return_value=latest or [])
    candle_repo.get_range = AsyncMock(return_value=base or [])
    candle_repo.upsert_batch = AsyncMock(side_effect=lambda candles: len(candles))

    trade_repo = MagicMock()
    trade_repo.get_latest = AsyncMock(return_value=trades or [])
    return candle_repo, trade_repo


class TestAggregateSymbol:
    """Tests for a single-symbol pass."""

    @pytest.mark.asyncio
    async def test_resamples_into_targets(self):
        base = make_1m_candles(20)
        candle_repo, trade_repo = make_repos(latest=base[-1:], base=base)
        service = AggregationService(candle_repo, trade_repo, ["5m", "1h"])

        counts = await service.aggregate_symbol("ETH", now=NOW)

        assert counts == {"5m": 4, "1h": 1}
        trade_repo.get_latest.assert_not_called()

        written = [call.args[0] for call in candle_repo.upsert_batch.call_args_list]
        assert [c.interval for c in written[0]] == [Interval.M5] * 4
        assert written[1][0].volume == 20

    @pytest.mark.asyncio
    async def test_lookback_window(self):
        candle_repo, trade_repo = make_repos(latest=make_1m_candles(1))
        service = AggregationService(candle_repo, trade_repo, ["5m"])

        await service.aggregate_symbol("ETH", now=NOW)

        symbol, interval, start, end = candle_repo.get_range.call_args.args
        assert (symbol, interval) == ("ETH", Interval.M1)
        # 24h back from NOW, aligned to the day
        assert start == datetime(2024, 2, 29, tzinfo=timezone.utc)
        assert end == NOW

    @pytest.mark.asyncio
    async def test_trade_fallback(self):
        trades = [
            Trade(symbol="ETH", price=100 + i, timestamp=T0 + timedelta(seconds=20 * i))
            for i in range(6)
        ]
        built = []

        candle_repo, trade_repo = make_repos(trades=trades)

        async def upsert(candles):
            built.append(candles)
            return len(candles)

        candle_repo.upsert_batch = AsyncMock(side_effect=upsert)
        candle_repo.get_range = AsyncMock(side_effect=lambda *args: built[0])
        service = AggregationService(candle_repo, trade_repo, ["5m"])

        counts = await service.aggregate_symbol("ETH", now=NOW)

        trade_repo.get_latest.assert_awaited_once_with("ETH", limit=1000)
        assert [c.interval for c in built[0]] == [Interval.M1, Interval.M1]
        assert counts == {"1m": 2, "5m": 1}
        assert built[1][0].open == 100
        assert built[1][0].close == 105

    @pytest.mark.asyncio
    async def test_nothing_to_do(self):
        candle_repo, trade_repo = make_repos()
        service = AggregationService(candle_repo, trade_repo, ["5m"])

        counts = await service.aggregate_symbol("ETH", now=NOW)

        assert counts == {}
        candle_repo.upsert_batch.assert_not_called()


class TestAggregate:
    """Tests for multi-symbol passes."""

    @pytest.mark.asyncio
    async def test_failure_isolated(self):
        candle_repo, trade_repo = make_repos()
        service = AggregationService(candle_repo, trade_repo, ["5m"])

        async def fake_symbol(symbol, now=None):
            if symbol == "BTC":
                raise RuntimeError("connection lost")
            return {"5m": 3}

        with patch.object(service, "aggregate_symbol", side_effect=fake_symbol):
            results = await service.aggregate(["ETH", "BTC", "SOL"])

        by_symbol = {r["symbol"]: r for r in results}
        assert [r["symbol"] for r in results] == ["ETH", "BTC", "SOL"]
        assert by_symbol["ETH"]["success"] is True
        assert by_symbol["ETH"]["candles"] == {"5m": 3}
        assert by_symbol["BTC"]["success"] is False
        assert by_symbol["BTC"]["message"] == "connection lost"
        assert by_symbol["SOL"]["success"] is True

    @pytest.mark.asyncio
    async def test_run_periodic_survives_errors(self):
        candle_repo, trade_repo = make_repos()
        service = AggregationService(candle_repo, trade_repo, ["5m"])

        aggregate = AsyncMock(side_effect=RuntimeError("db down"))
        sleep = AsyncMock(side_effect=[None, asyncio.CancelledError()])

        with patch.object(service, "aggregate", aggregate), patch(
            "marketlens.services.aggregation_service.asyncio.sleep", sleep
        ):
            with pytest.raises(asyncio.CancelledError):
                await service.run_periodic(30, ["ETH"])

        assert aggregate.await_count == 2
        sleep.assert_awaited_with(30)

    @pytest.mark.asyncio
    async def test_run_periodic_stops_on_cancel(self):
        candle_repo, trade_repo = make_repos()
        service = AggregationService(candle_repo, trade_repo, ["5m"])

        aggregate = AsyncMock(side_effect=asyncio.CancelledError())
        sleep = AsyncMock()

        with patch.object(service, "aggregate", aggregate), patch(
            "marketlens.services.aggregation_service.asyncio.sleep", sleep
        ):
            with pytest.raises(asyncio.CancelledError):
                await service.run_periodic(30)

        sleep.assert_not_called()
