"""Signal detection over indicator sets (pure logic, no I/O)."""

from marketlens_core.signals import rules  # noqa: F401  registers the rule set
from marketlens_core.signals.detector import aggregate_signals, detect_signals, top_signals
from marketlens_core.signals.protocol import RuleContext, SignalRule
from marketlens_core.signals.registry import (
    get_rule,
    list_rules,
    register_rule,
    registered_rules,
)

__all__ = [
    "aggregate_signals",
    "detect_signals",
    "top_signals",
    "RuleContext",
    "SignalRule",
    "get_rule",
    "list_rules",
    "register_rule",
    "registered_rules",
]
