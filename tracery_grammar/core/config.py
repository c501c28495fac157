from __future__ import annotations

import os

from tracery_grammar.core.errors import GrammarConfigError


DEFAULT_MAX_DEPTH = 64
DEFAULT_SELECTOR = "random"


def max_depth() -> int:
    """Return the recursion limit for a single flatten call.

    Resolution order:
      1) TRACERY_MAX_DEPTH
      2) DEFAULT_MAX_DEPTH
    """

    raw = (os.getenv("TRACERY_MAX_DEPTH", "") or "").strip()
    if not raw:
        return DEFAULT_MAX_DEPTH
    try:
        value = int(raw)
    except ValueError:
        value = 0
    if value <= 0:
        raise GrammarConfigError(
            code="E_CONFIG_INVALID",
            message=f"TRACERY_MAX_DEPTH must be a positive integer, got {raw!r}",
            path="TRACERY_MAX_DEPTH",
        )
    return value


def default_selector() -> str:
    override = (os.getenv("TRACERY_SELECTOR", "") or "").strip().lower()
    return override or DEFAULT_SELECTOR
