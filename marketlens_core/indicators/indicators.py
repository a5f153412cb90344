"""Technical indicators (pure math, no I/O).

All functions take plain float sequences ordered oldest first and return
lists ordered the same way. Input shorter than an indicator's period
yields empty output rather than NaN padding; callers treat an empty
series as "indicator unavailable".
"""

from datetime import datetime
from typing import Sequence

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from marketlens_core.models import PriceLevel


def _to_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def effective_period(
    period: int,
    available: int,
    min_period: int = 5,
    adaptive: bool = True,
) -> int | None:
    """Resolve the period to use for the amount of data available.

    Args:
        period: Canonical indicator period
        available: Largest period the data can support
        min_period: Smallest period accepted when shrinking
        adaptive: Whether shrinking is allowed at all

    Returns:
        ``period`` when the data supports it, otherwise the largest feasible
        period not below ``min_period``, or None when nothing fits
    """
    if available >= period:
        return period
    if not adaptive or available < min_period:
        return None
    return available


def sma(values: Sequence[float], period: int) -> list[float]:
    """
    Calculate Simple Moving Average.

    One value is emitted per window of ``period`` consecutive values, so the
    output has ``len(values) - period + 1`` entries.

    Args:
        values: Sequence of price values
        period: SMA period

    Returns:
        List of SMA values (empty if there is not enough data)
    """
    if period <= 0 or len(values) < period:
        return []

    windows = sliding_window_view(_to_array(values), period)
    return windows.mean(axis=1).tolist()


def ema(values: Sequence[float], period: int) -> list[float]:
    """
    Calculate Exponential Moving Average.

    Seeded with the first value, then
    ``ema[i] = value[i] * k + ema[i-1] * (1 - k)`` with ``k = 2 / (period + 1)``.

    Args:
        values: Sequence of price values
        period: EMA period

    Returns:
        List of EMA values, same length as input (empty if shorter than period)
    """
    if period <= 0 or len(values) < period:
        return []

    arr = _to_array(values)
    multiplier = 2.0 / (period + 1)

    result = np.empty_like(arr)
    result[0] = arr[0]
    for i in range(1, len(arr)):
        result[i] = arr[i] * multiplier + result[i - 1] * (1 - multiplier)

    return result.tolist()


def rsi(values: Sequence[float], period: int = 14) -> list[float]:
    """
    Calculate Relative Strength Index.

    Average gain and loss are simple means over the trailing ``period``
    price changes (not Wilder's smoothing). RSI is 100 when the average
    loss is zero.

    Args:
        values: Sequence of close prices
        period: RSI period

    Returns:
        List of RSI values in [0, 100], one per bar from bar ``period`` on
    """
    if period <= 0 or len(values) < period + 1:
        return []

    changes = np.diff(_to_array(values))
    gains = np.where(changes > 0, changes, 0.0)
    losses = np.where(changes < 0, -changes, 0.0)

    avg_gain = sliding_window_view(gains, period).mean(axis=1)
    avg_loss = sliding_window_view(losses, period).mean(axis=1)

    result = np.full_like(avg_gain, 100.0)
    has_loss = avg_loss > 0
    rs = avg_gain[has_loss] / avg_loss[has_loss]
    result[has_loss] = 100.0 - 100.0 / (1.0 + rs)

    return np.clip(result, 0.0, 100.0).tolist()


def macd(
    values: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> tuple[list[float], list[float], list[float]]:
    """
    Calculate MACD line, signal line and histogram.

    macd = EMA(fast) - EMA(slow) on their overlapping suffix,
    signal = EMA(signal_period) of the macd line,
    histogram = macd - signal.

    Args:
        values: Sequence of close prices
        fast_period: Fast EMA period
        slow_period: Slow EMA period
        signal_period: Signal EMA period

    Returns:
        Tuple of (macd, signal, histogram) lists
    """
    if len(values) < slow_period:
        return [], [], []

    fast = ema(values, fast_period)
    slow = ema(values, slow_period)
    overlap = min(len(fast), len(slow))
    if overlap == 0:
        return [], [], []

    macd_line = np.asarray(fast[-overlap:]) - np.asarray(slow[-overlap:])
    signal_line = ema(macd_line.tolist(), signal_period)

    size = min(len(macd_line), len(signal_line))
    histogram = macd_line[-size:] - np.asarray(signal_line[-size:]) if size else np.array([])

    return macd_line.tolist(), signal_line, histogram.tolist()


def bollinger_bands(
    values: Sequence[float],
    period: int = 20,
    std_mult: float = 2.0,
) -> tuple[list[float], list[float], list[float]]:
    """
    Calculate Bollinger Bands.

    middle = SMA(period); upper/lower = middle +/- std_mult * population
    standard deviation of the same window.

    Args:
        values: Sequence of close prices
        period: Lookback period
        std_mult: Standard deviation multiplier

    Returns:
        Tuple of (upper, middle, lower) lists, aligned with ``sma(values, period)``
    """
    if period <= 0 or len(values) < period:
        return [], [], []

    windows = sliding_window_view(_to_array(values), period)
    middle = windows.mean(axis=1)
    std = windows.std(axis=1)

    upper = middle + std * std_mult
    lower = middle - std * std_mult
    return upper.tolist(), middle.tolist(), lower.tolist()


def vwap(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    volumes: Sequence[float],
) -> list[float]:
    """
    Calculate Volume Weighted Average Price (VWAP).

    Note: This is a cumulative VWAP from the start of the supplied series.
    A zero volume counts as 1 so thin synthetic candles still contribute.

    Args:
        highs: Sequence of high prices
        lows: Sequence of low prices
        closes: Sequence of close prices
        volumes: Sequence of volumes

    Returns:
        List of VWAP values
    """
    if len(closes) == 0:
        return []

    high_arr = _to_array(highs)
    low_arr = _to_array(lows)
    close_arr = _to_array(closes)
    vol_arr = _to_array(volumes)
    vol_arr = np.where(vol_arr > 0, vol_arr, 1.0)

    # Typical price = (high + low + close) / 3
    tp = (high_arr + low_arr + close_arr) / 3

    cum_vol = np.cumsum(vol_arr)
    cum_pv = np.cumsum(tp * vol_arr)

    return (cum_pv / cum_vol).tolist()


def level_strength(
    level: float,
    highs: Sequence[float],
    lows: Sequence[float],
    tolerance: float = 0.001,
) -> int:
    """Count bars whose high or low lies within ``tolerance`` (relative) of a level."""
    if len(highs) == 0:
        return 0

    band = level * tolerance
    high_arr = _to_array(highs)
    low_arr = _to_array(lows)
    touches = (np.abs(high_arr - level) <= band) | (np.abs(low_arr - level) <= band)
    return int(touches.sum())


def support_resistance(
    highs: Sequence[float],
    lows: Sequence[float],
    times: Sequence[datetime] | None = None,
    lookback: int = 50,
    tolerance: float = 0.001,
) -> tuple[list[PriceLevel], list[PriceLevel]]:
    """
    Find support and resistance levels from local extremes.

    A bar is a support if its low is strictly below the lows of the two
    bars on each side; resistance likewise for highs. A level's strength is
    the number of bars within ``lookback`` of it that touch the level.

    Args:
        highs: Sequence of high prices
        lows: Sequence of low prices
        times: Optional bar start times, attached to each level
        lookback: Window size on each side used for strength
        tolerance: Relative distance counted as a touch

    Returns:
        Tuple of (supports, resistances) lists in bar order
    """
    n = len(highs)
    if n < lookback or n < 5:
        return [], []

    supports: list[PriceLevel] = []
    resistances: list[PriceLevel] = []

    for i in range(2, n - 2):
        lo = max(0, i - lookback)
        hi = i + lookback
        time = times[i] if times is not None else None

        if all(lows[i] < lows[j] for j in (i - 2, i - 1, i + 1, i + 2)):
            supports.append(
                PriceLevel(
                    price=lows[i],
                    time=time,
                    strength=level_strength(lows[i], highs[lo:hi], lows[lo:hi], tolerance),
                )
            )

        if all(highs[i] > highs[j] for j in (i - 2, i - 1, i + 1, i + 2)):
            resistances.append(
                PriceLevel(
                    price=highs[i],
                    time=time,
                    strength=level_strength(highs[i], highs[lo:hi], lows[lo:hi], tolerance),
                )
            )

    return supports, resistances
