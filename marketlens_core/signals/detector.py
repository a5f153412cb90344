"""Signal detector: runs every registered rule and ranks the results."""

import logging
from datetime import datetime, timezone
from typing import Iterable

from marketlens_core.models import (
    IndicatorSet,
    Signal,
    SignalBias,
    SignalConfig,
    SignalSummary,
)
from marketlens_core.signals.protocol import RuleContext
from marketlens_core.signals.registry import registered_rules

logger = logging.getLogger(__name__)


def _by_strength(signals: Iterable[Signal]) -> list[Signal]:
    return sorted(signals, key=lambda s: s.strength, reverse=True)


def detect_signals(
    indicators: IndicatorSet,
    funding_rate: float | None = None,
    config: SignalConfig | None = None,
    detected_at: datetime | None = None,
) -> list[Signal]:
    """Evaluate every rule against the latest indicator values.

    Evaluation is stateless: nothing is remembered between calls, so a
    condition that still holds on the next poll produces the same signal
    again (with the same deterministic ``id``).

    Args:
        indicators: Indicator set for one symbol and interval
        funding_rate: Latest funding rate for the symbol, if available
        config: Rule thresholds
        detected_at: Timestamp stamped on the signals, defaults to ``indicators.as_of``

    Returns:
        Signals sorted by strength, strongest first
    """
    config = config or SignalConfig()
    context = RuleContext(
        detected_at=detected_at or indicators.as_of,
        funding_rate=funding_rate,
    )

    signals: list[Signal] = []
    for name, rule in registered_rules():
        try:
            signals.extend(rule(indicators, config, context))
        except Exception as e:
            logger.error(
                f"Signal rule {name} failed for {indicators.symbol} "
                f"{indicators.interval.value}: {e}"
            )

    if signals:
        logger.debug(
            f"Detected {len(signals)} signals for {indicators.symbol} {indicators.interval.value}"
        )
    return _by_strength(signals)


def aggregate_signals(
    signals: Iterable[Signal],
    timestamp: datetime | None = None,
) -> SignalSummary:
    """Partition signals into bullish and bearish, each strongest first."""
    signals = list(signals)
    bullish = [s for s in signals if s.type == SignalBias.BULLISH]
    bearish = [s for s in signals if s.type == SignalBias.BEARISH]
    return SignalSummary(
        bullish=_by_strength(bullish),
        bearish=_by_strength(bearish),
        total=len(signals),
        timestamp=timestamp or datetime.now(timezone.utc),
    )


def top_signals(signals: Iterable[Signal], limit: int = 10) -> list[Signal]:
    """Merge both directions and keep the ``limit`` strongest signals."""
    if limit <= 0:
        return []
    return _by_strength(signals)[:limit]
