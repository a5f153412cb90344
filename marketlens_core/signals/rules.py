"""Signal rules.

Each rule looks only at the last one or two points of the indicator
series it needs and returns zero or more signals:

- rsi_extremes: RSI below 35 (bullish) / above 65 (bearish)
- rsi_momentum: RSI rising inside the 30-50 band (bullish)
- macd_crossover: histogram changes sign between the last two bars
- bollinger_touch: price within 1% of the lower (bullish) / upper (bearish) band
- ma_cross: SMA20 crosses SMA50 (golden / death cross)
- funding_extreme: funding rate beyond +/-0.01
"""

from marketlens_core.models import (
    IndicatorSet,
    Signal,
    SignalBias,
    SignalConfig,
    SignalType,
)
from marketlens_core.signals.protocol import RuleContext
from marketlens_core.signals.registry import register_rule


def _make_signal(
    indicators: IndicatorSet,
    context: RuleContext,
    bias: SignalBias,
    signal_type: SignalType,
    strength: float,
    description: str,
    **fields,
) -> Signal:
    fields.setdefault("price", indicators.current_price)
    return Signal(
        symbol=indicators.symbol,
        interval=indicators.interval,
        type=bias,
        signal_type=signal_type,
        description=description,
        strength=strength,
        detected_at=context.detected_at,
        bar_time=indicators.last_bar_time,
        **fields,
    )


@register_rule("rsi_extremes")
def rsi_extremes(
    indicators: IndicatorSet, config: SignalConfig, context: RuleContext
) -> list[Signal]:
    """RSI oversold / overbought."""
    if not indicators.rsi:
        return []

    current = indicators.rsi[-1]
    signals = []

    if current < config.rsi_oversold:
        signals.append(
            _make_signal(
                indicators,
                context,
                SignalBias.BULLISH,
                SignalType.RSI_OVERSOLD,
                min(config.rsi_max_strength, 100 - current * 2),
                f"RSI oversold ({current:.1f})",
                rsi=current,
            )
        )

    if current > config.rsi_overbought:
        signals.append(
            _make_signal(
                indicators,
                context,
                SignalBias.BEARISH,
                SignalType.RSI_OVERBOUGHT,
                min(config.rsi_max_strength, (current - 50) * 2),
                f"RSI overbought ({current:.1f})",
                rsi=current,
            )
        )

    return signals


@register_rule("rsi_momentum")
def rsi_momentum(
    indicators: IndicatorSet, config: SignalConfig, context: RuleContext
) -> list[Signal]:
    """RSI turning up from the lower half of its range."""
    values = indicators.rsi
    if len(values) < 3:
        return []

    prev, current = values[-2], values[-1]
    if prev < current and config.rsi_momentum_low < current < config.rsi_momentum_high:
        return [
            _make_signal(
                indicators,
                context,
                SignalBias.BULLISH,
                SignalType.RSI_BULLISH_DIVERGENCE,
                config.rsi_momentum_strength,
                f"RSI showing bullish momentum ({current:.1f})",
                rsi=current,
            )
        ]
    return []


@register_rule("macd_crossover")
def macd_crossover(
    indicators: IndicatorSet, config: SignalConfig, context: RuleContext
) -> list[Signal]:
    """MACD line crossing its signal line."""
    series = indicators.macd
    if len(series.histogram) < 2 or not series.macd or not series.signal:
        return []

    prev_hist, current_hist = series.histogram[-2], series.histogram[-1]
    strength = min(config.macd_max_strength, abs(current_hist) * config.macd_strength_scale)
    fields = {"macd": series.macd[-1], "macd_signal": series.signal[-1]}

    # Bullish: histogram goes from <= 0 to > 0
    if prev_hist <= 0 < current_hist:
        return [
            _make_signal(
                indicators,
                context,
                SignalBias.BULLISH,
                SignalType.MACD_BULLISH_CROSSOVER,
                strength,
                "MACD bullish crossover",
                **fields,
            )
        ]

    # Bearish: histogram goes from >= 0 to < 0
    if prev_hist >= 0 > current_hist:
        return [
            _make_signal(
                indicators,
                context,
                SignalBias.BEARISH,
                SignalType.MACD_BEARISH_CROSSOVER,
                strength,
                "MACD bearish crossover",
                **fields,
            )
        ]

    return []


@register_rule("bollinger_touch")
def bollinger_touch(
    indicators: IndicatorSet, config: SignalConfig, context: RuleContext
) -> list[Signal]:
    """Price at or near a Bollinger band."""
    bands = indicators.bollinger_bands
    if not bands.upper or not bands.lower:
        return []

    price = indicators.current_price
    upper, lower = bands.upper[-1], bands.lower[-1]
    signals = []

    if price <= lower * (1 + config.bb_tolerance):
        signals.append(
            _make_signal(
                indicators,
                context,
                SignalBias.BULLISH,
                SignalType.BB_OVERSOLD,
                config.bb_strength,
                "Price near Bollinger lower band",
                lower_band=lower,
            )
        )

    if price >= upper * (1 - config.bb_tolerance):
        signals.append(
            _make_signal(
                indicators,
                context,
                SignalBias.BEARISH,
                SignalType.BB_OVERBOUGHT,
                config.bb_strength,
                "Price near Bollinger upper band",
                upper_band=upper,
            )
        )

    return signals


@register_rule("ma_cross")
def ma_cross(
    indicators: IndicatorSet, config: SignalConfig, context: RuleContext
) -> list[Signal]:
    """SMA20 / SMA50 golden and death crosses."""
    fast, slow = indicators.sma20, indicators.sma50
    if len(fast) < 2 or len(slow) < 2:
        return []

    # Both series end at the latest bar, so negative indexes line up
    prev_fast, current_fast = fast[-2], fast[-1]
    prev_slow, current_slow = slow[-2], slow[-1]
    fields = {"sma20": current_fast, "sma50": current_slow}

    if prev_fast <= prev_slow and current_fast > current_slow:
        return [
            _make_signal(
                indicators,
                context,
                SignalBias.BULLISH,
                SignalType.GOLDEN_CROSS,
                config.ma_cross_strength,
                "Golden Cross (SMA20 > SMA50)",
                **fields,
            )
        ]

    if prev_fast >= prev_slow and current_fast < current_slow:
        return [
            _make_signal(
                indicators,
                context,
                SignalBias.BEARISH,
                SignalType.DEATH_CROSS,
                config.ma_cross_strength,
                "Death Cross (SMA20 < SMA50)",
                **fields,
            )
        ]

    return []


@register_rule("funding_extreme")
def funding_extreme(
    indicators: IndicatorSet, config: SignalConfig, context: RuleContext
) -> list[Signal]:
    """Extreme perpetual funding rate."""
    rate = context.funding_rate
    if rate is None:
        return []

    strength = min(config.funding_max_strength, abs(rate) * config.funding_strength_scale)

    # Shorts paying longs
    if rate > config.funding_threshold:
        return [
            _make_signal(
                indicators,
                context,
                SignalBias.BULLISH,
                SignalType.EXTREME_FUNDING_BULLISH,
                strength,
                f"Extremely high funding rate ({rate * 100:.3f}%)",
                funding_rate=rate,
                price=None,
            )
        ]

    # Longs paying shorts
    if rate < -config.funding_threshold:
        return [
            _make_signal(
                indicators,
                context,
                SignalBias.BEARISH,
                SignalType.EXTREME_FUNDING_BEARISH,
                strength,
                f"Extremely negative funding rate ({rate * 100:.3f}%)",
                funding_rate=rate,
                price=None,
            )
        ]

    return []
