"""Signal rule protocol.

A rule is a pure function over the latest points of an IndicatorSet. It
keeps no state between calls, so a condition that persists fires again on
every evaluation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from marketlens_core.models import IndicatorSet, Signal, SignalConfig


@dataclass(frozen=True)
class RuleContext:
    """Inputs a rule needs beyond the indicator set.

    Attributes:
        detected_at: Evaluation timestamp stamped on every signal.
        funding_rate: Latest external funding rate, if known.
    """

    detected_at: datetime
    funding_rate: float | None = None


SignalRule = Callable[[IndicatorSet, SignalConfig, RuleContext], list[Signal]]
