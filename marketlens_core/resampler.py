"""Candle resampler for building coarser intervals from finer candles.

Input candles are grouped into aligned windows of the target interval and
each non-empty window is folded into one candle:

- open: open of the earliest candle in the window
- high: highest high
- low: lowest low
- close: close of the latest candle in the window
- volume: sum of volumes

Window alignment (UTC):
- 1m, 5m, 15m, 30m: nearest lower multiple of the minute count within the hour
- 1h: top of the hour
- 4h: 4-hour blocks starting at 00:00 (00, 04, 08, ...)
- 1d: midnight

Windows without candles produce nothing; gaps are never synthesized. The
fold depends only on the set of candles in a window, so re-running it over
overlapping input yields identical rows for the same keys.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Iterable

from pydantic import ValidationError

from marketlens_core.models import BASE_INTERVAL, Candle, Interval, Trade
from marketlens_core.models.converters import parse_timestamp

logger = logging.getLogger(__name__)


def interval_start(timestamp: datetime, interval: Interval) -> datetime:
    """Get the aligned window start for a timestamp.

    Args:
        timestamp: Any timestamp (naive values are taken as UTC)
        interval: Target interval

    Returns:
        Window start as an aware UTC datetime
    """
    ts = parse_timestamp(timestamp)
    if interval == Interval.D1:
        return ts.replace(hour=0, minute=0, second=0, microsecond=0)
    if interval == Interval.H4:
        return ts.replace(hour=(ts.hour // 4) * 4, minute=0, second=0, microsecond=0)
    if interval == Interval.H1:
        return ts.replace(minute=0, second=0, microsecond=0)

    period_minutes = interval.minutes
    minute = (ts.minute // period_minutes) * period_minutes
    return ts.replace(minute=minute, second=0, microsecond=0)


def interval_end(start: datetime, interval: Interval) -> datetime:
    """Get the exclusive window end for an aligned window start."""
    return start + interval.delta


def sanitize_candles(rows: Iterable[Any]) -> list[Candle]:
    """Validate raw candle rows, dropping the invalid ones.

    Rows may be ``Candle`` instances or mappings using either the model
    field names or the camelCase wire names. A row with non-positive OHLC,
    inconsistent high/low or an unparseable timestamp is dropped with a
    warning and never reaches a fold.
    """
    candles: list[Candle] = []
    for row in rows:
        if isinstance(row, Candle):
            candles.append(row)
            continue
        try:
            candles.append(Candle.model_validate(row))
        except ValidationError as e:
            logger.warning(f"Dropping invalid candle {_describe(row)}: {_first_error(e)}")
    return candles


def sanitize_trades(rows: Iterable[Any]) -> list[Trade]:
    """Validate raw trade rows, dropping the invalid ones."""
    trades: list[Trade] = []
    for row in rows:
        if isinstance(row, Trade):
            trades.append(row)
            continue
        try:
            trades.append(Trade.model_validate(row))
        except ValidationError as e:
            logger.warning(f"Dropping invalid trade {_describe(row)}: {_first_error(e)}")
    return trades


def fold_candles(
    symbol: str,
    interval: Interval,
    start_time: datetime,
    candles: list[Candle],
) -> Candle:
    """Fold one window of candles into a single candle.

    Args:
        symbol: Trading symbol
        interval: Interval of the produced candle
        start_time: Aligned window start
        candles: Non-empty list of candles inside the window

    Returns:
        The aggregated candle
    """
    ordered = sorted(candles, key=lambda c: c.start_time)
    return Candle(
        symbol=symbol,
        interval=interval,
        start_time=start_time,
        end_time=interval_end(start_time, interval),
        open=ordered[0].open,  # Earliest candle's open
        high=max(c.high for c in ordered),  # Highest high
        low=min(c.low for c in ordered),  # Lowest low
        close=ordered[-1].close,  # Latest candle's close
        volume=sum(c.volume for c in ordered),  # Sum of volumes
    )


def resample(candles: Iterable[Any], target: Interval | str) -> list[Candle]:
    """Resample candles into the target interval.

    Args:
        candles: Candles (or raw candle rows) all at one interval
        target: Target interval; must not be finer than the input interval

    Returns:
        Aggregated candles sorted by (symbol, start_time)
    """
    target = Interval(target)
    valid = sanitize_candles(candles)
    if not valid:
        return []

    # Mixed inputs would count overlapping windows twice
    source_intervals = {c.interval for c in valid}
    if len(source_intervals) > 1:
        codes = ", ".join(sorted(i.value for i in source_intervals))
        logger.warning(f"Cannot resample mixed input intervals ({codes}) into {target.value}")
        return []

    source = source_intervals.pop()
    if target.minutes < source.minutes:
        logger.warning(
            f"Target interval {target.value} is finer than input interval {source.value}"
        )
        return []

    # Groups: {(symbol, window_start): [candles]}
    groups: dict[tuple[str, datetime], list[Candle]] = defaultdict(list)
    for candle in valid:
        groups[(candle.symbol, interval_start(candle.start_time, target))].append(candle)

    result = [
        fold_candles(symbol, target, start, group)
        for (symbol, start), group in sorted(groups.items())
    ]

    logger.debug(f"Resampled {len(valid)} candles into {len(result)} {target.value} candles")
    return result


def candles_from_trades(
    trades: Iterable[Any],
    interval: Interval | str = BASE_INTERVAL,
) -> list[Candle]:
    """Build candles directly from raw trades.

    Used to bootstrap base candles when none exist yet. Trades are bucketed
    with the same alignment as ``resample``; open/close are the first/last
    trade prices in the window and volume is the trade count, since tick
    payloads may omit the traded size.

    Args:
        trades: Trades (or raw trade rows) in any order
        interval: Interval of the produced candles

    Returns:
        Candles sorted by (symbol, start_time)
    """
    interval = Interval(interval)
    valid = sanitize_trades(trades)

    groups: dict[tuple[str, datetime], list[Trade]] = defaultdict(list)
    for trade in sorted(valid, key=lambda t: t.timestamp):
        groups[(trade.symbol, interval_start(trade.timestamp, interval))].append(trade)

    result: list[Candle] = []
    for (symbol, start), bucket in sorted(groups.items()):
        prices = [t.price for t in bucket]
        result.append(
            Candle(
                symbol=symbol,
                interval=interval,
                start_time=start,
                end_time=interval_end(start, interval),
                open=prices[0],
                high=max(prices),
                low=min(prices),
                close=prices[-1],
                volume=float(len(bucket)),
            )
        )

    logger.debug(f"Built {len(result)} {interval.value} candles from {len(valid)} trades")
    return result


def _describe(row: Any) -> str:
    if isinstance(row, dict):
        symbol = row.get("symbol", "?")
        start = row.get("start_time", row.get("startTime", row.get("timestamp", row.get("time"))))
        return f"{symbol}@{start}"
    return repr(row)


def _first_error(error: ValidationError) -> str:
    errors = error.errors()
    if not errors:
        return str(error)
    return errors[0].get("msg", str(error))
