from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import Optional

from tracery_grammar.core import config
from tracery_grammar.core.errors import ExpansionDepthError
from tracery_grammar.core.expand.syntax import (
    EXPANSION_DELIMITER,
    Binding,
    Reference,
    Text,
    has_syntax,
    parse,
)
from tracery_grammar.core.rules import (
    CandidatesLike,
    CaseInsensitiveMap,
    Modifier,
    ModifierRegistry,
    RuleTable,
)
from tracery_grammar.core.select.selectors import RandomSelector, Selector

logger = logging.getLogger(__name__)


class Grammar(RuleTable):
    """A rule table plus the modifiers used to flatten rule strings.

    The grammar is itself the rule mapping: ``grammar["animal"] = ["eagle"]``
    defines a symbol, ``"animal" in grammar`` tests for one.
    """

    def __init__(
        self,
        rules: Optional[Mapping[str, CandidatesLike]] = None,
        modifiers: Optional[Mapping[str, Modifier]] = None,
        *,
        persist_bindings: bool = False,
        max_depth: Optional[int] = None,
        strict: bool = False,
    ) -> None:
        super().__init__(rules)
        self.modifiers = ModifierRegistry(modifiers)
        self.persist_bindings = persist_bindings
        self.max_depth = max_depth if max_depth is not None else config.max_depth()
        self.strict = strict

    @property
    def rules(self) -> RuleTable:
        return self

    def add_rule(self, name: str, candidates: CandidatesLike) -> "Grammar":
        self[name] = candidates
        return self

    def add_modifier(self, name: str, fn: Modifier) -> "Grammar":
        self.modifiers.register(name, fn)
        return self

    def add_modifiers(self, modifiers: Mapping[str, Modifier]) -> "Grammar":
        for name, fn in modifiers.items():
            self.modifiers.register(name, fn)
        return self

    def flatten(self, rule: str, selector: Optional[Selector] = None) -> str:
        """Recursively expand ``rule`` into plain text.

        ``#name#`` is replaced by a candidate of ``name`` chosen by
        ``selector`` and expanded in turn; ``#name.s.capitalize#`` then runs
        the ``s`` and ``capitalize`` modifiers, left to right. Inside a
        reference, ``[hero:#name#]`` flattens ``#name#`` and binds the result
        to ``hero`` for the rest of this call, so every later ``#hero#``
        yields the same text. ``[hero]`` expands ``#hero#`` only for its side
        effects. Outside a reference a binding still runs, but its brackets
        stay in the text, so ``arr[i]`` comes out as written.

        Bindings live in a store owned by this call and are discarded when it
        returns, unless ``persist_bindings`` is set, in which case each bound
        value is also written into the grammar as a one-candidate rule.

        Unknown symbols pass through as literal text, unknown modifiers are
        skipped, and symbols with no candidates yield "". Once expansion goes
        deeper than ``max_depth`` nothing else in the call expands and the
        remaining text is returned as-is (or ExpansionDepthError is raised
        when ``strict``).
        """

        run = _Expansion(self, selector or RandomSelector())
        return run.flatten(rule, 0)


class _Expansion:
    """State for one top-level flatten call."""

    def __init__(self, grammar: Grammar, selector: Selector) -> None:
        self.grammar = grammar
        self.selector = selector
        self.variables: CaseInsensitiveMap[str] = CaseInsensitiveMap()
        self.truncated = False

    def flatten(self, rule: str, depth: int) -> str:
        if not has_syntax(rule):
            return rule
        if self.truncated or depth > self.grammar.max_depth:
            return self._too_deep(rule)

        out: list[str] = []
        for node in parse(rule):
            if isinstance(node, Text):
                out.append(node.value)
            elif isinstance(node, Binding):
                # bindings outside a reference run for effect; their text stays
                self.bind(node, depth)
                out.append(node.raw)
            else:
                out.append(self.expand(node, depth))
        return "".join(out)

    def expand(self, ref: Reference, depth: int) -> str:
        for b in ref.bindings:
            self.bind(b, depth)

        text = self.flatten(self.resolve(ref.symbol), depth + 1)

        for name in ref.modifiers:
            modifier = self.grammar.modifiers.get(name)
            if modifier is None:
                logger.debug("skipping unknown modifier %r in %s", name, ref.raw)
                continue
            text = modifier(text)

        return self.flatten(text, depth + 1)

    def resolve(self, symbol: str) -> str:
        if symbol in self.variables:
            return self.variables[symbol]
        if symbol in self.grammar:
            return self.selector.select(symbol, self.grammar[symbol])
        return symbol

    def bind(self, b: Binding, depth: int) -> None:
        if b.rule is None:
            self.flatten(f"{EXPANSION_DELIMITER}{b.name}{EXPANSION_DELIMITER}", depth + 1)
            return

        value = self.flatten(b.rule, depth + 1)
        self.variables[b.name] = value
        if self.grammar.persist_bindings:
            self.grammar[b.name] = (value,)
        logger.debug("bound %s = %r", b.name, value)

    def _too_deep(self, rule: str) -> str:
        limit = self.grammar.max_depth
        if self.grammar.strict:
            raise ExpansionDepthError(
                code="E_MAX_DEPTH",
                message=f"expansion exceeded max depth {limit} (cyclic grammar?)",
                path=rule,
            )
        if not self.truncated:
            # once the limit is hit, nothing else in this call expands
            self.truncated = True
            logger.warning("expansion exceeded max depth %d; leaving %r unexpanded", limit, rule)
        return rule


def iter_flatten(
    grammar: Grammar, rule: str, selector: Optional[Selector] = None, count: int = 1
) -> Iterator[str]:
    """Flatten ``rule`` ``count`` times with one shared selector."""
    selector = selector or RandomSelector()
    for _ in range(count):
        yield grammar.flatten(rule, selector)
