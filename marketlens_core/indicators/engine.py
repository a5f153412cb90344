"""Indicator engine: computes the full indicator bundle from candles."""

import logging
from datetime import datetime, timezone
from typing import Any, Sequence

from marketlens_core.indicators.indicators import (
    bollinger_bands,
    effective_period,
    ema,
    macd,
    rsi,
    sma,
    support_resistance,
    vwap,
)
from marketlens_core.models import (
    BollingerBands,
    Candle,
    IndicatorConfig,
    IndicatorSet,
    MacdSeries,
    SupportResistance,
)
from marketlens_core.resampler import sanitize_candles

logger = logging.getLogger(__name__)


def compute_indicators(
    candles: Sequence[Any],
    config: IndicatorConfig | None = None,
    as_of: datetime | None = None,
) -> IndicatorSet | None:
    """Compute every indicator for one symbol and interval.

    When a canonical period exceeds the available data and
    ``config.adaptive_periods`` is set, the largest feasible period (not
    below ``config.min_period``) is used instead and recorded in
    ``IndicatorSet.periods``. Indicators that still cannot be computed are
    left empty.

    Args:
        candles: Candles ordered by start time (re-sorted here)
        config: Periods and sufficiency thresholds
        as_of: Evaluation time, defaults to now

    Returns:
        IndicatorSet, or None if fewer than ``config.min_candles`` valid candles
    """
    config = config or IndicatorConfig()
    valid = sanitize_candles(candles)
    if not valid:
        logger.info("No candles supplied for indicators")
        return None

    valid.sort(key=lambda c: c.start_time)
    latest = valid[-1]
    series = [c for c in valid if c.symbol == latest.symbol and c.interval == latest.interval]
    if len(series) != len(valid):
        logger.warning(
            f"Ignoring {len(valid) - len(series)} candles not matching "
            f"{latest.symbol} {latest.interval.value}"
        )

    if len(series) < config.min_candles:
        logger.info(
            f"Not enough data for {latest.symbol} {latest.interval.value} indicators: "
            f"{len(series)}/{config.min_candles} candles"
        )
        return None

    return _build_indicator_set(series, config, as_of or datetime.now(timezone.utc))


def _build_indicator_set(
    candles: list[Candle],
    config: IndicatorConfig,
    as_of: datetime,
) -> IndicatorSet:
    n = len(candles)
    closes = [c.close for c in candles]
    highs = [c.high for c in candles]
    lows = [c.low for c in candles]
    volumes = [c.volume for c in candles]
    times = [c.start_time for c in candles]

    periods: dict[str, int] = {}

    def resolve(name: str, period: int, available: int = n) -> int | None:
        resolved = effective_period(
            period, available, config.min_period, config.adaptive_periods
        )
        if resolved is not None:
            periods[name] = resolved
            if resolved != period:
                logger.debug(f"{name} period reduced {period} -> {resolved} ({n} candles)")
        return resolved

    # RSI needs period + 1 closes
    rsi_period = resolve("rsi", config.rsi_period, n - 1)
    rsi_values = rsi(closes, rsi_period) if rsi_period else []

    macd_series = MacdSeries()
    slow = resolve("macd_slow", config.macd_slow)
    if slow:
        fast = resolve("macd_fast", config.macd_fast, slow - 1)
        signal = resolve("macd_signal", config.macd_signal)
        if fast and signal:
            line, signal_line, histogram = macd(closes, fast, slow, signal)
            macd_series = MacdSeries(macd=line, signal=signal_line, histogram=histogram)

    bands = BollingerBands()
    bb_period = resolve("bollinger", config.bb_period)
    if bb_period:
        upper, middle, lower = bollinger_bands(closes, bb_period, config.bb_std_mult)
        bands = BollingerBands(upper=upper, middle=middle, lower=lower)

    sma_fast = resolve("sma20", config.sma_fast)
    sma_slow = resolve("sma50", config.sma_slow)
    ema_fast = resolve("ema12", config.ema_fast)
    ema_slow = resolve("ema26", config.ema_slow)

    levels = SupportResistance()
    sr_lookback = resolve("support_resistance", config.sr_lookback)
    if sr_lookback:
        supports, resistances = support_resistance(
            highs, lows, times, lookback=sr_lookback, tolerance=config.sr_tolerance
        )
        levels = SupportResistance(supports=supports, resistances=resistances)

    current_price = closes[-1]
    reference = closes[max(0, n - config.change_lookback)]
    price_change = (current_price - reference) / reference * 100

    return IndicatorSet(
        symbol=candles[-1].symbol,
        interval=candles[-1].interval,
        as_of=as_of,
        last_bar_time=times[-1],
        current_price=current_price,
        price_change_24h=price_change,
        rsi=rsi_values,
        macd=macd_series,
        bollinger_bands=bands,
        sma20=sma(closes, sma_fast) if sma_fast else [],
        sma50=sma(closes, sma_slow) if sma_slow else [],
        ema12=ema(closes, ema_fast) if ema_fast else [],
        ema26=ema(closes, ema_slow) if ema_slow else [],
        vwap=vwap(highs, lows, closes, volumes),
        support_resistance=levels,
        periods=periods,
    )
