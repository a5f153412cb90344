"""Indicator and signal parameters loaded from analysis.yaml.

Example:

    indicators:
      min_candles: 30
      adaptive_periods: false
    signals:
      rsi_oversold: ${RSI_OVERSOLD}
      rsi_overbought: 70

``${VAR}`` references are expanded from the environment, after loading a
``.env`` next to the file. A missing file means defaults for everything.
"""

import logging
import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from marketlens_core.models import IndicatorConfig, SignalConfig

logger = logging.getLogger(__name__)


class AnalysisConfig(BaseModel):
    """Top-level analysis.yaml configuration."""

    indicators: IndicatorConfig = Field(default_factory=IndicatorConfig)
    signals: SignalConfig = Field(default_factory=SignalConfig)


def load_analysis_config(path: Path | str | None = None) -> AnalysisConfig:
    """Load analysis config from YAML file.

    Raises:
        pydantic.ValidationError: If the file contains invalid values.
    """
    config_path = Path(path) if path else Path("analysis.yaml")

    load_dotenv(config_path.parent / ".env", override=False)

    if not config_path.exists():
        logger.info("No analysis config at %s, using defaults", config_path)
        return AnalysisConfig()

    with open(config_path) as f:
        raw = yaml.safe_load(os.path.expandvars(f.read())) or {}

    config = AnalysisConfig(**raw)
    logger.info(
        "Loaded analysis config: min_candles=%d adaptive=%s rsi=%s/%s",
        config.indicators.min_candles,
        config.indicators.adaptive_periods,
        config.signals.rsi_oversold,
        config.signals.rsi_overbought,
    )
    return config
