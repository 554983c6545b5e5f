"""Restricted visibility-condition language.

Grammar (patterns tried in order against the trimmed source):

1. ``field === 'literal'`` / ``==`` / ``!==`` / ``!=``
2. ``field === true|false`` / ``!== true|false``
3. ``field`` / ``!field``
4. ``a && b && ...``
5. ``a || b || ...``

There is no precedence and there are no parentheses; mixing ``&&`` and ``||``
in one expression is rejected. Nothing here evaluates code.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping, Union

from pydantic import BaseModel

from .errors import UnparsableCondition
from .models import YesNoWithText

logger = logging.getLogger(__name__)

_STRING_EQUALITY = re.compile(r"""^(\w+)\s*(===?|!==?)\s*(['"])([^'"]*)\3\s*$""")
_BOOL_EQUALITY = re.compile(r"^(\w+)\s*(===?|!==?)\s*(true|false)\s*$")
_TRUTHY = re.compile(r"^(!?)(\w+)$")


@dataclass(frozen=True)
class Equals:
    field: str
    literal: Union[str, bool]


@dataclass(frozen=True)
class NotEquals:
    field: str
    literal: Union[str, bool]


@dataclass(frozen=True)
class Truthy:
    field: str


@dataclass(frozen=True)
class Falsy:
    field: str


@dataclass(frozen=True)
class And:
    parts: tuple["Condition", ...]


@dataclass(frozen=True)
class Or:
    parts: tuple["Condition", ...]


Condition = Union[Equals, NotEquals, Truthy, Falsy, And, Or]


@lru_cache(maxsize=1024)
def parse(source: str) -> Condition:
    """Parse a ``show_if``/predicate source string into a Condition.

    Raises UnparsableCondition for anything outside the grammar.
    """
    text = (source or "").strip()
    if not text:
        raise UnparsableCondition(source, "empty expression")

    match = _STRING_EQUALITY.match(text)
    if match:
        field, operator, _, literal = match.groups()
        return _comparison(field, operator, literal)

    match = _BOOL_EQUALITY.match(text)
    if match:
        field, operator, literal = match.groups()
        return _comparison(field, operator, literal == "true")

    match = _TRUTHY.match(text)
    if match:
        negated, field = match.groups()
        return Falsy(field) if negated else Truthy(field)

    has_and = "&&" in text
    has_or = "||" in text
    if has_and and has_or:
        raise UnparsableCondition(source, "mixing && and || is not supported")
    if has_and:
        return And(tuple(_parse_part(source, part) for part in text.split("&&")))
    if has_or:
        return Or(tuple(_parse_part(source, part) for part in text.split("||")))

    raise UnparsableCondition(source)


def _comparison(field: str, operator: str, literal: Union[str, bool]) -> Condition:
    if operator.startswith("!"):
        return NotEquals(field, literal)
    return Equals(field, literal)


def _parse_part(source: str, part: str) -> Condition:
    try:
        return parse(part)
    except UnparsableCondition as exc:
        raise UnparsableCondition(source, f"bad operand {part.strip()!r} ({exc.reason})") from exc


def evaluate(condition: Condition, answers: Mapping[str, Any]) -> bool:
    """Evaluate a parsed condition. Total: unknown fields read as missing."""
    if isinstance(condition, Equals):
        return _strict_equals(answers.get(condition.field), condition.literal)
    if isinstance(condition, NotEquals):
        return not _strict_equals(answers.get(condition.field), condition.literal)
    if isinstance(condition, Truthy):
        return is_truthy(answers.get(condition.field))
    if isinstance(condition, Falsy):
        return not is_truthy(answers.get(condition.field))
    if isinstance(condition, And):
        return all(evaluate(part, answers) for part in condition.parts)
    if isinstance(condition, Or):
        return any(evaluate(part, answers) for part in condition.parts)
    raise TypeError(f"Not a condition: {condition!r}")


def evaluate_source(source: str, answers: Mapping[str, Any]) -> bool:
    """Parse and evaluate in one step; unparsable sources fail open (True)."""
    try:
        condition = parse(source)
    except UnparsableCondition as exc:
        logger.warning("Could not parse condition %r (%s); treating it as satisfied", source, exc.reason)
        return True
    return evaluate(condition, answers)


def referenced_fields(condition: Condition) -> frozenset[str]:
    if isinstance(condition, (And, Or)):
        names: set[str] = set()
        for part in condition.parts:
            names |= referenced_fields(part)
        return frozenset(names)
    return frozenset({condition.field})


def is_truthy(value: Any) -> bool:
    if value is None or value is False:
        return False
    if isinstance(value, YesNoWithText):
        return value.answer is True
    if isinstance(value, str):
        return value != ""
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, (list, tuple, dict)):
        return len(value) > 0
    if isinstance(value, BaseModel):
        return True
    return bool(value)


def _strict_equals(actual: Any, expected: Union[str, bool]) -> bool:
    if isinstance(expected, bool):
        if isinstance(actual, YesNoWithText):
            actual = actual.answer
        return isinstance(actual, bool) and actual is expected
    return isinstance(actual, str) and actual == expected


__all__ = [
    "And",
    "Condition",
    "Equals",
    "Falsy",
    "NotEquals",
    "Or",
    "Truthy",
    "evaluate",
    "evaluate_source",
    "is_truthy",
    "parse",
    "referenced_fields",
]
