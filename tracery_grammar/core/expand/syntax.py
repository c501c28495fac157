"""Tokenizer for rule strings.

A rule string is literal text interleaved with two constructs:

  #symbol.mod1.mod2#     expansion reference (bindings may sit inside the hashes)
  [name:rule] / [name]   variable binding / forced evaluation

A reference closes at the first ``#`` outside any ``[...]``, so hashes that
belong to a binding's rule never end the enclosing reference. Malformed input
never raises: an unterminated ``#`` or ``[`` makes the remainder plain text.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Union


EXPANSION_DELIMITER = "#"
MODIFIER_DELIMITER = "."
VARIABLE_DELIMITER = ":"
BINDING_OPEN = "["
BINDING_CLOSE = "]"


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class Binding:
    raw: str
    name: str
    rule: Optional[str]  # None for a bare [name]


@dataclass(frozen=True)
class Reference:
    raw: str
    symbol: str
    modifiers: tuple[str, ...]
    bindings: tuple[Binding, ...]


Node = Union[Text, Binding, Reference]


def parse(rule: str) -> list[Node]:
    nodes: list[Node] = []
    buf: list[str] = []
    i = 0
    n = len(rule)

    def flush() -> None:
        if buf:
            nodes.append(Text("".join(buf)))
            buf.clear()

    while i < n:
        c = rule[i]
        if c == EXPANSION_DELIMITER:
            end = _reference_end(rule, i + 1)
            if end == -1:
                buf.append(rule[i:])
                break
            if end == i + 1:
                # "##" has no body
                buf.append(c)
                i += 1
                continue
            flush()
            nodes.append(_parse_reference(rule[i : end + 1]))
            i = end + 1
        elif c == BINDING_OPEN:
            end = _binding_end(rule, i + 1)
            if end == -1:
                buf.append(rule[i:])
                break
            flush()
            nodes.append(_parse_binding(rule[i : end + 1]))
            i = end + 1
        else:
            buf.append(c)
            i += 1

    flush()
    return nodes


def has_syntax(rule: str) -> bool:
    """Cheap pre-check: strings without any delimiter are already flat."""
    return EXPANSION_DELIMITER in rule or BINDING_OPEN in rule


def references(rule: str) -> Iterator[Reference]:
    """Yield every reference in ``rule``, including those nested in binding rules."""
    for node in parse(rule):
        if isinstance(node, Reference):
            yield node
            for b in node.bindings:
                yield from _binding_references(b)
        elif isinstance(node, Binding):
            yield from _binding_references(node)


def bindings(rule: str) -> Iterator[Binding]:
    """Yield every binding in ``rule`` at any nesting level."""
    for node in parse(rule):
        found: tuple[Binding, ...] = ()
        if isinstance(node, Reference):
            found = node.bindings
        elif isinstance(node, Binding):
            found = (node,)
        for b in found:
            yield b
            if b.rule is not None:
                yield from bindings(b.rule)


def _binding_references(b: Binding) -> Iterator[Reference]:
    if b.rule is None:
        # [name] evaluates #name#
        yield Reference(raw=f"#{b.name}#", symbol=b.name, modifiers=(), bindings=())
    else:
        yield from references(b.rule)


def _reference_end(s: str, start: int) -> int:
    depth = 0
    for i in range(start, len(s)):
        c = s[i]
        if c == BINDING_OPEN:
            depth += 1
        elif c == BINDING_CLOSE:
            if depth > 0:
                depth -= 1
        elif c == EXPANSION_DELIMITER and depth == 0:
            return i
    return -1


def _binding_end(s: str, start: int) -> int:
    depth = 1
    for i in range(start, len(s)):
        c = s[i]
        if c == BINDING_OPEN:
            depth += 1
        elif c == BINDING_CLOSE:
            depth -= 1
            if depth == 0:
                return i
    return -1


def _parse_reference(raw: str) -> Reference:
    body = raw[1:-1]
    found: list[Binding] = []
    path: list[str] = []
    i = 0
    while i < len(body):
        c = body[i]
        if c == BINDING_OPEN:
            end = _binding_end(body, i + 1)
            if end != -1:
                found.append(_parse_binding(body[i : end + 1]))
                i = end + 1
                continue
        path.append(c)
        i += 1

    symbol, *modifiers = "".join(path).split(MODIFIER_DELIMITER)
    return Reference(raw=raw, symbol=symbol, modifiers=tuple(modifiers), bindings=tuple(found))


def _parse_binding(raw: str) -> Binding:
    inner = raw[1:-1]
    name, sep, rule = inner.partition(VARIABLE_DELIMITER)
    return Binding(raw=raw, name=name, rule=rule if sep else None)
