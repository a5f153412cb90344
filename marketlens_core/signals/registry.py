"""Signal rule registry.

Usage:
    @register_rule("my_rule")
    def my_rule(indicators, config, context):
        ...

    rule = get_rule("my_rule")
    names = list_rules()
"""

from __future__ import annotations

import logging

from marketlens_core.signals.protocol import SignalRule

logger = logging.getLogger(__name__)

# Global registry: rule_name -> rule function (registration order is kept)
_REGISTRY: dict[str, SignalRule] = {}


def register_rule(name: str):
    """Decorator to register a rule function under a given name.

    Raises:
        ValueError: If a rule with the same name is already registered.
    """

    def decorator(fn: SignalRule) -> SignalRule:
        if name in _REGISTRY:
            raise ValueError(
                f"Rule '{name}' is already registered by {_REGISTRY[name].__name__}"
            )
        _REGISTRY[name] = fn
        logger.debug("Registered signal rule: %s -> %s", name, fn.__name__)
        return fn

    return decorator


def get_rule(name: str) -> SignalRule:
    """Get a rule by name.

    Raises:
        KeyError: If no rule is registered under the given name.
    """
    fn = _REGISTRY.get(name)
    if fn is None:
        available = ", ".join(sorted(_REGISTRY.keys())) or "(none)"
        raise KeyError(f"Unknown rule '{name}'. Available: {available}")
    return fn


def registered_rules() -> list[tuple[str, SignalRule]]:
    """Return (name, rule) pairs in registration order."""
    return list(_REGISTRY.items())


def list_rules() -> list[str]:
    """Return a sorted list of registered rule names."""
    return sorted(_REGISTRY.keys())
