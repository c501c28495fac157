from __future__ import annotations

import random
from collections.abc import Mapping, Sequence
from typing import Optional, Protocol

from tracery_grammar.core.errors import GrammarConfigError
from tracery_grammar.core.rules import CaseInsensitiveMap


class Selector(Protocol):
    def select(self, key: str, candidates: Sequence[str]) -> str: ...


class RandomSelector:
    """Uniform pseudo-random choice from an injected random source."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def select(self, key: str, candidates: Sequence[str]) -> str:
        if not candidates:
            return ""
        return candidates[self._rng.randrange(len(candidates))]


class FirstSelector:
    def select(self, key: str, candidates: Sequence[str]) -> str:
        if not candidates:
            return ""
        return candidates[0]


class SequentialSelector:
    """Walk each symbol's candidates in order, wrapping around at the end."""

    def __init__(self) -> None:
        self._cursor: CaseInsensitiveMap[int] = CaseInsensitiveMap()

    def select(self, key: str, candidates: Sequence[str]) -> str:
        if not candidates:
            return ""
        i = self._cursor.get(key, 0) % len(candidates)
        self._cursor[key] = i + 1
        return candidates[i]


class DeckSelector:
    """Draw without replacement per symbol; reshuffle once the deck runs out.

    The deck is rebuilt whenever the candidate list for a key changes, so
    editing a rule between calls never yields a stale candidate.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()
        self._decks: CaseInsensitiveMap[tuple[tuple[str, ...], list[str]]] = CaseInsensitiveMap()

    def select(self, key: str, candidates: Sequence[str]) -> str:
        if not candidates:
            return ""
        source = tuple(candidates)
        entry = self._decks.get(key)
        if entry is None or entry[0] != source or not entry[1]:
            deck = list(source)
            self._rng.shuffle(deck)
            entry = (source, deck)
            self._decks[key] = entry
        return entry[1].pop()


class CompositeSelector:
    """Route each symbol to a named sub-selector by a suffix on its key.

    ``color*deck`` is handled by the selector registered as ``deck``; the name
    is whatever follows the last marker (the whole key when there is none).
    Keys naming no registered selector resolve to the empty string.
    """

    def __init__(self, selectors: Mapping[str, Selector], marker: str = "*") -> None:
        if not marker:
            raise ValueError("marker must be a non-empty string")
        self.selectors: CaseInsensitiveMap[Selector] = CaseInsensitiveMap(selectors)
        self.marker = marker

    def select(self, key: str, candidates: Sequence[str]) -> str:
        name = key[key.rfind(self.marker) + len(self.marker):] if self.marker in key else key
        selector = self.selectors.get(name)
        if selector is None:
            return ""
        return selector.select(key, candidates)


SELECTOR_NAMES: tuple[str, ...] = ("random", "first", "sequential", "deck")


def build_selector(name: str, seed: Optional[int] = None) -> Selector:
    """Build a selector by name (CLI/config entry point)."""

    key = name.strip().lower()
    if key == "random":
        return RandomSelector(random.Random(seed))
    if key == "first":
        return FirstSelector()
    if key == "sequential":
        return SequentialSelector()
    if key == "deck":
        return DeckSelector(random.Random(seed))
    raise GrammarConfigError(
        code="E_UNKNOWN_SELECTOR",
        message=f"unknown selector: {name} (choose one of: {', '.join(SELECTOR_NAMES)})",
        path="selector",
    )
