"""English modifiers layered on top of the engine.

  s / plural              pluralize the last word         (#animal.s#  -> eagles)
  a                       prefix an indefinite article    (#animal.a#  -> an eagle)
  capitalize / sentence   upper-case the first character
  capitalizeAll / title   upper-case the first character of every word
"""
from __future__ import annotations

import re

import inflect

from tracery_grammar.core.expand.grammar import Grammar


_engine = inflect.engine()

_LAST_WORD = re.compile(r"^(.*?)([A-Za-z][\w'-]*)(\W*)$", re.DOTALL)
_WORD_START = re.compile(r"(^|\s)(\S)")


def plural(value: str) -> str:
    m = _LAST_WORD.match(value)
    if not m:
        return value
    head, word, tail = m.groups()
    return f"{head}{_engine.plural(word)}{tail}"


def article(value: str) -> str:
    if not value.strip():
        return value
    return _engine.a(value)


def sentence_case(value: str) -> str:
    return value[:1].upper() + value[1:]


def title_case(value: str) -> str:
    return _WORD_START.sub(lambda m: m.group(1) + m.group(2).upper(), value)


def add_plural(grammar: Grammar) -> Grammar:
    return grammar.add_modifiers({"s": plural, "plural": plural})


def add_article(grammar: Grammar) -> Grammar:
    return grammar.add_modifier("a", article)


def add_sentence_case(grammar: Grammar) -> Grammar:
    return grammar.add_modifiers({"capitalize": sentence_case, "sentence": sentence_case})


def add_title_case(grammar: Grammar) -> Grammar:
    return grammar.add_modifiers({"capitalizeAll": title_case, "title": title_case})


def add_english(grammar: Grammar) -> Grammar:
    """Install every modifier above; returns ``grammar`` for chaining."""
    add_plural(grammar)
    add_article(grammar)
    add_sentence_case(grammar)
    return add_title_case(grammar)
