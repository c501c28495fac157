from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, MutableMapping
from typing import Callable, Generic, TypeVar, Union


V = TypeVar("V")

Modifier = Callable[[str], str]
CandidatesLike = Union[str, Iterable[str]]


def canonical(key: str) -> str:
    return key.lower()


class CaseInsensitiveMap(MutableMapping[str, V], Generic[V]):
    """Mapping keyed by lowercased strings.

    Iteration yields keys as they were last written, so a grammar authored as
    ``heroName`` lists back as ``heroName`` while ``#HERONAME#`` still finds it.
    """

    def __init__(self, data: Mapping[str, V] | Iterable[tuple[str, V]] | None = None) -> None:
        self._data: dict[str, tuple[str, V]] = {}
        if data is not None:
            self.update(data)

    def __getitem__(self, key: str) -> V:
        return self._data[canonical(key)][1]

    def __setitem__(self, key: str, value: V) -> None:
        if not isinstance(key, str):
            raise TypeError(f"keys must be strings, got {type(key).__name__}")
        self._data[canonical(key)] = (key, value)

    def __delitem__(self, key: str) -> None:
        del self._data[canonical(key)]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and canonical(key) in self._data

    def __iter__(self) -> Iterator[str]:
        return (k for k, _ in self._data.values())

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({dict(self.items())!r})"


class RuleTable(CaseInsensitiveMap[tuple[str, ...]]):
    """Symbol name -> ordered candidate expansions."""

    def __setitem__(self, key: str, value: CandidatesLike) -> None:  # type: ignore[override]
        super().__setitem__(key, _normalize_candidates(key, value))

    def add(self, key: str, candidates: CandidatesLike) -> None:
        if key in self:
            raise KeyError(f"symbol already defined: {key}")
        self[key] = candidates

    def remove(self, key: str) -> bool:
        if key not in self:
            return False
        del self[key]
        return True

    def candidates(self, key: str) -> tuple[str, ...]:
        return self.get(key, ())


class ModifierRegistry(CaseInsensitiveMap[Modifier]):
    def __setitem__(self, key: str, value: Modifier) -> None:
        if not callable(value):
            raise TypeError(f"modifier '{key}' must be callable")
        super().__setitem__(key, value)

    def register(self, name: str, fn: Modifier) -> None:
        self[name] = fn


def _normalize_candidates(key: str, value: CandidatesLike) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    out = tuple(value)
    for item in out:
        if not isinstance(item, str):
            raise TypeError(f"candidates for '{key}' must be strings, got {type(item).__name__}")
    return out
