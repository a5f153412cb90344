"""Tests for signal rules and the detector."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from marketlens_core.indicators import compute_indicators
from marketlens_core.models import (
    BollingerBands,
    Candle,
    IndicatorSet,
    Interval,
    MacdSeries,
    Signal,
    SignalBias,
    SignalConfig,
    SignalType,
)
from marketlens_core.signals import (
    RuleContext,
    aggregate_signals,
    detect_signals,
    get_rule,
    list_rules,
    register_rule,
    top_signals,
)
from marketlens_core.signals.rules import (
    bollinger_touch,
    funding_extreme,
    ma_cross,
    macd_crossover,
    rsi_extremes,
    rsi_momentum,
)

NOW = datetime(2024, 3, 2, 12, 0, tzinfo=timezone.utc)
BAR = datetime(2024, 3, 2, 11, 0, tzinfo=timezone.utc)
CONFIG = SignalConfig()
CONTEXT = RuleContext(detected_at=NOW)


def make_indicators(**overrides) -> IndicatorSet:
    """Helper to create an indicator set with no series filled in."""
    fields = {
        "symbol": "ETH",
        "interval": Interval.H1,
        "as_of": NOW,
        "last_bar_time": BAR,
        "current_price": 100.0,
    }
    fields.update(overrides)
    return IndicatorSet(**fields)


def make_signal(
    strength: float,
    bias: SignalBias = SignalBias.BULLISH,
    signal_type: SignalType = SignalType.RSI_OVERSOLD,
    symbol: str = "ETH",
) -> Signal:
    return Signal(
        symbol=symbol,
        interval=Interval.H1,
        type=bias,
        signal_type=signal_type,
        strength=strength,
        detected_at=NOW,
        bar_time=BAR,
    )


class TestRsiExtremes:
    """Tests for the RSI oversold/overbought rule."""

    def test_oversold(self):
        signals = rsi_extremes(make_indicators(rsi=[40, 20]), CONFIG, CONTEXT)

        assert len(signals) == 1
        assert signals[0].signal_type == SignalType.RSI_OVERSOLD
        assert signals[0].type == SignalBias.BULLISH
        assert signals[0].strength == 60  # 100 - 2 * 20
        assert signals[0].rsi == 20

    def test_oversold_strength_capped(self):
        signals = rsi_extremes(make_indicators(rsi=[0.0]), CONFIG, CONTEXT)
        assert signals[0].strength == 95

    def test_overbought(self):
        signals = rsi_extremes(make_indicators(rsi=[80]), CONFIG, CONTEXT)

        assert signals[0].signal_type == SignalType.RSI_OVERBOUGHT
        assert signals[0].type == SignalBias.BEARISH
        assert signals[0].strength == 60  # 2 * (80 - 50)

    def test_neutral(self):
        assert rsi_extremes(make_indicators(rsi=[50]), CONFIG, CONTEXT) == []

    def test_thresholds_are_strict(self):
        assert rsi_extremes(make_indicators(rsi=[35]), CONFIG, CONTEXT) == []
        assert rsi_extremes(make_indicators(rsi=[65]), CONFIG, CONTEXT) == []

    def test_no_rsi(self):
        assert rsi_extremes(make_indicators(), CONFIG, CONTEXT) == []


class TestRsiMomentum:
    """Tests for the RSI bullish momentum rule."""

    def test_rising_in_band(self):
        signals = rsi_momentum(make_indicators(rsi=[35, 38, 42]), CONFIG, CONTEXT)

        assert len(signals) == 1
        assert signals[0].signal_type == SignalType.RSI_BULLISH_DIVERGENCE
        assert signals[0].strength == 60

    def test_needs_three_points(self):
        assert rsi_momentum(make_indicators(rsi=[38, 42]), CONFIG, CONTEXT) == []

    def test_falling(self):
        assert rsi_momentum(make_indicators(rsi=[45, 44, 42]), CONFIG, CONTEXT) == []

    def test_outside_band(self):
        assert rsi_momentum(make_indicators(rsi=[50, 52, 55]), CONFIG, CONTEXT) == []


class TestMacdCrossover:
    """Tests for the MACD crossover rule."""

    def test_bullish(self):
        series = MacdSeries(macd=[0.5, 0.7], signal=[0.51, 0.68], histogram=[-0.01, 0.02])

        signals = macd_crossover(make_indicators(macd=series), CONFIG, CONTEXT)

        assert len(signals) == 1
        assert signals[0].signal_type == SignalType.MACD_BULLISH_CROSSOVER
        assert signals[0].strength == pytest.approx(20)  # 0.02 * 1000
        assert signals[0].macd == 0.7
        assert signals[0].macd_signal == 0.68

    def test_bearish_from_zero(self):
        series = MacdSeries(macd=[1, 1], signal=[1, 1.5], histogram=[0.0, -0.5])

        signals = macd_crossover(make_indicators(macd=series), CONFIG, CONTEXT)

        assert signals[0].signal_type == SignalType.MACD_BEARISH_CROSSOVER
        assert signals[0].strength == 90  # capped

    def test_no_sign_change(self):
        series = MacdSeries(macd=[1, 1], signal=[0.5, 0.6], histogram=[0.5, 0.4])
        assert macd_crossover(make_indicators(macd=series), CONFIG, CONTEXT) == []

    def test_single_point(self):
        series = MacdSeries(macd=[1], signal=[0.5], histogram=[0.5])
        assert macd_crossover(make_indicators(macd=series), CONFIG, CONTEXT) == []


class TestBollingerTouch:
    """Tests for the Bollinger band touch rule."""

    def test_lower_band_within_tolerance(self):
        bands = BollingerBands(upper=[110], middle=[100], lower=[99.5])
        indicators = make_indicators(bollinger_bands=bands, current_price=100.4)

        signals = bollinger_touch(indicators, CONFIG, CONTEXT)

        assert len(signals) == 1
        assert signals[0].signal_type == SignalType.BB_OVERSOLD
        assert signals[0].strength == 75
        assert signals[0].lower_band == 99.5

    def test_upper_band(self):
        bands = BollingerBands(upper=[101], middle=[95], lower=[89])
        indicators = make_indicators(bollinger_bands=bands, current_price=100.0)

        signals = bollinger_touch(indicators, CONFIG, CONTEXT)

        assert signals[0].signal_type == SignalType.BB_OVERBOUGHT
        assert signals[0].upper_band == 101

    def test_inside_bands(self):
        bands = BollingerBands(upper=[110], middle=[100], lower=[90])
        assert bollinger_touch(make_indicators(bollinger_bands=bands), CONFIG, CONTEXT) == []


class TestMaCross:
    """Tests for golden and death crosses."""

    def test_golden_cross_fires_once(self):
        """Evaluated bar by bar, the cross fires only on the crossing bar."""
        sma20 = [99.0, 101.0, 102.0, 103.0]
        sma50 = [100.0, 100.0, 100.0, 100.0]

        fired = []
        for end in range(2, len(sma20) + 1):
            indicators = make_indicators(sma20=sma20[:end], sma50=sma50[:end])
            fired.append(ma_cross(indicators, CONFIG, CONTEXT))

        assert [len(s) for s in fired] == [1, 0, 0]
        assert fired[0][0].signal_type == SignalType.GOLDEN_CROSS
        assert fired[0][0].strength == 80
        assert fired[0][0].sma20 == 101.0

    def test_death_cross(self):
        indicators = make_indicators(sma20=[100.0, 99.0], sma50=[100.0, 100.0])

        signals = ma_cross(indicators, CONFIG, CONTEXT)

        assert signals[0].signal_type == SignalType.DEATH_CROSS
        assert signals[0].type == SignalBias.BEARISH

    def test_short_series(self):
        indicators = make_indicators(sma20=[101.0, 102.0], sma50=[100.0])
        assert ma_cross(indicators, CONFIG, CONTEXT) == []


class TestFundingExtreme:
    """Tests for the funding rate rule."""

    def test_high_positive_rate(self):
        context = RuleContext(detected_at=NOW, funding_rate=0.02)

        signals = funding_extreme(make_indicators(), CONFIG, context)

        assert signals[0].signal_type == SignalType.EXTREME_FUNDING_BULLISH
        assert signals[0].strength == 95  # min(95, 100)
        assert signals[0].funding_rate == 0.02

    def test_funding_signal_has_no_price(self):
        context = RuleContext(detected_at=NOW, funding_rate=0.02)

        signal = funding_extreme(make_indicators(), CONFIG, context)[0]

        assert signal.price is None
        wire = signal.to_wire()
        assert "price" not in wire
        assert wire["fundingRate"] == 0.02

    def test_price_signals_keep_price(self):
        signal = rsi_extremes(make_indicators(rsi=[20]), CONFIG, CONTEXT)[0]
        assert signal.price == 100.0

    def test_negative_rate(self):
        context = RuleContext(detected_at=NOW, funding_rate=-0.015)

        signals = funding_extreme(make_indicators(), CONFIG, context)

        assert signals[0].signal_type == SignalType.EXTREME_FUNDING_BEARISH
        assert signals[0].strength == pytest.approx(75)

    def test_normal_rate(self):
        context = RuleContext(detected_at=NOW, funding_rate=0.005)
        assert funding_extreme(make_indicators(), CONFIG, context) == []

    def test_no_rate(self):
        assert funding_extreme(make_indicators(), CONFIG, CONTEXT) == []


class TestRegistry:
    """Tests for the rule registry."""

    def test_rules_registered(self):
        assert list_rules() == sorted([
            "bollinger_touch",
            "funding_extreme",
            "ma_cross",
            "macd_crossover",
            "rsi_extremes",
            "rsi_momentum",
        ])

    def test_get_rule(self):
        assert get_rule("ma_cross") is ma_cross

    def test_unknown_rule(self):
        with pytest.raises(KeyError):
            get_rule("nope")

    def test_duplicate_registration(self):
        with pytest.raises(ValueError):
            register_rule("ma_cross")(lambda indicators, config, context: [])


def _spike_candles() -> list[Candle]:
    """24 flat bars followed by one sharp drop."""
    t0 = datetime(2024, 3, 1, tzinfo=timezone.utc)
    closes = [100.0] * 24 + [90.0]
    candles = []
    for i, close in enumerate(closes):
        open_price = closes[i - 1] if i else close
        candles.append(
            Candle(
                symbol="ETH",
                interval=Interval.H1,
                start_time=t0 + timedelta(hours=i),
                open=open_price,
                high=max(open_price, close) + 1,
                low=min(open_price, close) - 1,
                close=close,
                volume=5,
            )
        )
    return candles


class TestDetectSignals:
    """Tests for detect_signals()."""

    def test_down_spike_touches_lower_band(self):
        indicators = compute_indicators(_spike_candles(), as_of=NOW)

        signals = detect_signals(indicators)

        bb = [s for s in signals if s.signal_type == SignalType.BB_OVERSOLD]
        assert len(bb) == 1
        assert bb[0].strength == 75
        assert bb[0].lower_band == indicators.bollinger_bands.lower[-1]
        assert bb[0].price == 90

    def test_sorted_by_strength(self):
        indicators = compute_indicators(_spike_candles(), as_of=NOW)

        signals = detect_signals(indicators)

        strengths = [s.strength for s in signals]
        assert strengths == sorted(strengths, reverse=True)
        assert len(signals) >= 2

    def test_stamps_bar_and_detection_time(self):
        indicators = make_indicators(rsi=[20])

        signals = detect_signals(indicators)

        assert signals[0].detected_at == NOW
        assert signals[0].bar_time == BAR

    def test_stateless_refiring(self):
        """A persisting condition fires again with the same id."""
        indicators = make_indicators(rsi=[20])

        first = detect_signals(indicators)
        second = detect_signals(indicators, detected_at=NOW + timedelta(minutes=5))

        assert [s.id for s in first] == [s.id for s in second]

    def test_funding_rate_passed_through(self):
        signals = detect_signals(make_indicators(), funding_rate=-0.02)
        assert [s.signal_type for s in signals] == [SignalType.EXTREME_FUNDING_BEARISH]

    def test_custom_thresholds(self):
        config = SignalConfig(rsi_oversold=25)
        assert detect_signals(make_indicators(rsi=[30]), config=config) == []

    def test_failing_rule_skipped(self, caplog):
        def broken(indicators, config, context):
            raise RuntimeError("boom")

        rules = [("broken", broken), ("rsi_extremes", rsi_extremes)]
        with patch("marketlens_core.signals.detector.registered_rules", return_value=rules):
            signals = detect_signals(make_indicators(rsi=[20]))

        assert [s.signal_type for s in signals] == [SignalType.RSI_OVERSOLD]
        assert "broken" in caplog.text


class TestAggregation:
    """Tests for aggregate_signals() and top_signals()."""

    def test_partition(self):
        signals = [
            make_signal(50),
            make_signal(80, SignalBias.BEARISH, SignalType.RSI_OVERBOUGHT),
            make_signal(90, signal_type=SignalType.GOLDEN_CROSS),
        ]

        summary = aggregate_signals(signals, timestamp=NOW)

        assert [s.strength for s in summary.bullish] == [90, 50]
        assert [s.strength for s in summary.bearish] == [80]
        assert summary.total == 3
        assert summary.timestamp == NOW

    def test_empty(self):
        summary = aggregate_signals([])
        assert summary.total == 0
        assert summary.bullish == [] and summary.bearish == []

    def test_top_signals(self):
        signals = [
            make_signal(10),
            make_signal(70, SignalBias.BEARISH, SignalType.DEATH_CROSS),
            make_signal(40, signal_type=SignalType.BB_OVERSOLD),
        ]

        top = top_signals(signals, limit=2)

        assert [s.strength for s in top] == [70, 40]

    def test_top_signals_limit_zero(self):
        assert top_signals([make_signal(10)], limit=0) == []

    def test_summary_wire(self):
        summary = aggregate_signals([make_signal(50)], timestamp=NOW)

        wire = summary.to_wire()

        assert set(wire) == {"bullish", "bearish", "total", "timestamp"}
        assert wire["bullish"][0]["signalType"] == "rsi_oversold"
        assert wire["bullish"][0]["type"] == "bullish"
