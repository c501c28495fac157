from __future__ import annotations

from collections import deque
from collections.abc import Mapping
from typing import Any, Optional

from tracery_grammar.core.errors import GrammarValidationError
from tracery_grammar.core.expand.syntax import bindings, references
from tracery_grammar.core.rules import RuleTable, canonical


# Grammar lint rules
# - L_EMPTY_CANDIDATES: symbol has no candidates (always expands to "")
# - L_UNKNOWN_SYMBOL: reference to a name that is neither a rule nor bound anywhere
# - L_UNKNOWN_MODIFIER: modifier not in the supplied registry
# - L_UNREACHABLE_SYMBOL: symbol never referenced (transitively) from origin
# - L_NON_TERMINATING: every expansion of the symbol recurses forever


def lint_grammar(
    table: RuleTable,
    *,
    modifiers: Optional[Mapping[str, Any]] = None,
    origin: Optional[str] = None,
    file: Optional[str] = None,
) -> list[GrammarValidationError]:
    """Lint a validated grammar.

    Lint is advisory: the engine degrades gracefully on everything reported
    here, but each finding usually means the author made a typo.
    """

    bound: set[str] = set()
    for cands in table.values():
        for cand in cands:
            for b in bindings(cand):
                if b.rule is not None:
                    bound.add(canonical(b.name))

    # canonical symbol -> canonical symbols it references (rules only)
    deps: dict[str, list[set[str]]] = {}
    errors: list[GrammarValidationError] = []

    for sym, cands in table.items():
        if not cands:
            errors.append(
                GrammarValidationError(
                    code="L_EMPTY_CANDIDATES",
                    message=f"symbol {sym} has no candidates and always expands to an empty string",
                    file=file,
                    path=sym,
                )
            )

        per_candidate: list[set[str]] = []
        for i, cand in enumerate(cands):
            refs: set[str] = set()
            for ref in references(cand):
                name = canonical(ref.symbol)
                if ref.symbol in table:
                    refs.add(name)
                elif ref.symbol and name not in bound:
                    errors.append(
                        GrammarValidationError(
                            code="L_UNKNOWN_SYMBOL",
                            message=f"reference {ref.raw} names no rule or variable (expands to literal text)",
                            file=file,
                            path=f"{sym}[{i}]",
                        )
                    )
                if modifiers is not None:
                    for mod in ref.modifiers:
                        if mod not in modifiers:
                            errors.append(
                                GrammarValidationError(
                                    code="L_UNKNOWN_MODIFIER",
                                    message=f"unknown modifier '{mod}' in {ref.raw}",
                                    file=file,
                                    path=f"{sym}[{i}]",
                                )
                            )
            per_candidate.append(refs)
        deps[canonical(sym)] = per_candidate

    names = {canonical(sym): sym for sym in table}

    if origin is not None and origin in table:
        reachable = _reachable(canonical(origin), deps)
        for key in sorted(set(names) - reachable):
            errors.append(
                GrammarValidationError(
                    code="L_UNREACHABLE_SYMBOL",
                    message=f"symbol is not reachable from {origin}",
                    file=file,
                    path=names[key],
                )
            )

    for key in sorted(_non_terminating(deps)):
        errors.append(
            GrammarValidationError(
                code="L_NON_TERMINATING",
                message="every candidate recurses back into itself; expansion can never finish",
                file=file,
                path=names[key],
            )
        )

    return _sorted(errors)


def _reachable(start: str, deps: dict[str, list[set[str]]]) -> set[str]:
    q: deque[str] = deque([start])
    seen: set[str] = set()
    while q:
        cur = q.popleft()
        if cur in seen:
            continue
        seen.add(cur)
        for refs in deps.get(cur, []):
            for nxt in refs:
                if nxt not in seen:
                    q.append(nxt)
    return seen


def _non_terminating(deps: dict[str, list[set[str]]]) -> set[str]:
    # A symbol terminates once one of its candidates only references
    # terminating symbols; an empty candidate list terminates ("").
    done: set[str] = set()
    changed = True
    while changed:
        changed = False
        for sym, cands in deps.items():
            if sym in done:
                continue
            if not cands or any(refs <= done for refs in cands):
                done.add(sym)
                changed = True
    return set(deps) - done


def _sorted(errors: list[GrammarValidationError]) -> list[GrammarValidationError]:
    return sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
