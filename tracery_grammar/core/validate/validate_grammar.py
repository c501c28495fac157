from __future__ import annotations

from typing import Any, Iterable, Optional, cast

from tracery_grammar.core.errors import GrammarValidationError
from tracery_grammar.core.rules import RuleTable, canonical


def _is_list_of_str(v: Any) -> bool:
    return isinstance(v, list) and all(isinstance(x, str) for x in v)


def validate_grammar(raw: dict[str, Any]) -> tuple[Optional[RuleTable], list[GrammarValidationError]]:
    """Validate a loaded grammar mapping.

    Returns (rules, errors). Rules is None when errors exist.
    """

    file = cast(Optional[str], raw.get("__file__"))
    errors: list[GrammarValidationError] = []
    table = RuleTable()
    seen: dict[str, str] = {}

    for key, value in raw.items():
        if key == "__file__":
            continue

        if not isinstance(key, str) or not key.strip():
            errors.append(
                GrammarValidationError(
                    code="E_INVALID_SYMBOL",
                    message=f"symbol names must be non-empty strings, got {key!r}",
                    file=file,
                    path=str(key),
                )
            )
            continue

        if canonical(key) in seen:
            errors.append(
                GrammarValidationError(
                    code="E_DUPLICATE_SYMBOL",
                    message=f"symbol {key} duplicates {seen[canonical(key)]} (names are case-insensitive)",
                    file=file,
                    path=key,
                )
            )
            continue
        seen[canonical(key)] = key

        if isinstance(value, str):
            table[key] = value
        elif _is_list_of_str(value):
            table[key] = value
        else:
            errors.append(
                GrammarValidationError(
                    code="E_INVALID_TYPE",
                    message="candidates must be a string or an array of strings",
                    file=file,
                    path=key,
                )
            )

    if errors:
        return None, _sorted(errors)
    return table, []


def summarize_grammar(table: RuleTable) -> str:
    total = sum(len(c) for c in table.values())
    return f"OK: {len(table)} symbols ({total} candidates)"


def _sorted(errors: Iterable[GrammarValidationError]) -> list[GrammarValidationError]:
    return sorted(
        list(errors),
        key=lambda e: (
            e.file or "",
            e.path or "",
            e.code,
        ),
    )
