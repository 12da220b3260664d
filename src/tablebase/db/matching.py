"""
Filter evaluation for file-backed collections.

Filters use the Mongo/NeDB shape::

    {"name": "Laptop"}                              # equality
    {"price": {"$gte": 1000, "$lte": 2000}}         # operators on one field, ANDed
    {"$or": [{"category": "books"}, {"tags": "sale"}]}

Dotted paths reach into nested objects (``"metadata.color"``). Query-string
values arrive as strings, so a numeric string is compared as a number when
the stored value is a number, and ``"true"``/``"false"`` as booleans when the
stored value is a boolean.
"""

from __future__ import annotations

import math
import re
from typing import Any, Callable, Mapping

from tablebase.exceptions import ValidationError

Predicate = Callable[[Mapping[str, Any]], bool]

MISSING: Any = object()

_INTEGER = re.compile(r"^[+-]?\d+$")


def get_path(doc: Any, path: str) -> Any:
    current = doc
    for part in path.split("."):
        if isinstance(current, Mapping):
            if part not in current:
                return MISSING
            current = current[part]
        elif isinstance(current, list) and part.isdigit():
            idx = int(part)
            if idx >= len(current):
                return MISSING
            current = current[idx]
        else:
            return MISSING
    return current


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _coerce(stored: Any, operand: Any) -> Any:
    if not isinstance(operand, str):
        return operand
    if _is_number(stored):
        if _INTEGER.match(operand):
            return int(operand)
        try:
            number = float(operand)
        except ValueError:
            return operand
        return number if math.isfinite(number) else operand
    if isinstance(stored, bool) and operand in ("true", "false"):
        return operand == "true"
    return operand


def _equals(stored: Any, operand: Any) -> bool:
    if stored is MISSING:
        return operand is None
    if isinstance(stored, list) and not isinstance(operand, list):
        return any(_equals(item, operand) for item in stored)
    operand = _coerce(stored, operand)
    # True == 1 in Python; documents keep them distinct
    if isinstance(stored, bool) != isinstance(operand, bool):
        return False
    return stored == operand


def _ordered(compare: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def check(stored: Any, operand: Any) -> bool:
        if isinstance(stored, list):
            return any(check(item, operand) for item in stored)
        operand = _coerce(stored, operand)
        if _is_number(stored) and _is_number(operand):
            return compare(stored, operand)
        if isinstance(stored, str) and isinstance(operand, str):
            return compare(stored, operand)
        return False

    return check


def _in(stored: Any, operand: list) -> bool:
    return any(_equals(stored, candidate) for candidate in operand)


def _exists(stored: Any, operand: Any) -> bool:
    if isinstance(operand, str):
        operand = operand.lower() in ("1", "true", "yes")
    return (stored is not MISSING) == bool(operand)


def _regex(stored: Any, pattern: re.Pattern) -> bool:
    if isinstance(stored, list):
        return any(_regex(item, pattern) for item in stored)
    return isinstance(stored, str) and pattern.search(stored) is not None


OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "$eq": _equals,
    "$ne": lambda stored, operand: not _equals(stored, operand),
    "$gt": _ordered(lambda a, b: a > b),
    "$gte": _ordered(lambda a, b: a >= b),
    "$lt": _ordered(lambda a, b: a < b),
    "$lte": _ordered(lambda a, b: a <= b),
    "$in": _in,
    "$nin": lambda stored, operand: not _in(stored, operand),
    "$exists": _exists,
    "$regex": _regex,
}


def _field_predicate(path: str, cond: Any) -> Predicate:
    if not (isinstance(cond, Mapping) and any(str(k).startswith("$") for k in cond)):
        return lambda doc: _equals(get_path(doc, path), cond)

    if not all(str(k).startswith("$") for k in cond):
        raise ValidationError(f"Cannot mix operators and plain fields for '{path}'")

    checks: list[tuple[Callable[[Any, Any], bool], Any]] = []
    for op, operand in cond.items():
        fn = OPERATORS.get(op)
        if fn is None:
            raise ValidationError(f"Unknown operator '{op}' on field '{path}'")
        if op in ("$in", "$nin") and not isinstance(operand, list):
            raise ValidationError(f"Operator '{op}' expects a list")
        if op == "$regex":
            try:
                operand = re.compile(str(operand))
            except re.error as exc:
                raise ValidationError(f"Invalid pattern for '{path}': {exc}") from exc
        checks.append((fn, operand))

    def check(doc: Mapping[str, Any]) -> bool:
        stored = get_path(doc, path)
        return all(fn(stored, operand) for fn, operand in checks)

    return check


def compile_predicate(query: Mapping[str, Any] | None) -> Predicate:
    """Validate ``query`` once and return a predicate over documents."""
    if not query:
        return lambda doc: True
    if not isinstance(query, Mapping):
        raise ValidationError("Filter must be an object")

    preds: list[Predicate] = []
    for key, cond in query.items():
        if key in ("$and", "$or"):
            if not isinstance(cond, list) or not cond:
                raise ValidationError(f"'{key}' expects a non-empty list of filters")
            subs = [compile_predicate(sub) for sub in cond]
            combine = all if key == "$and" else any
            preds.append(lambda doc, subs=subs, combine=combine: combine(p(doc) for p in subs))
        elif key == "$not":
            sub = compile_predicate(cond)
            preds.append(lambda doc, sub=sub: not sub(doc))
        elif key.startswith("$"):
            raise ValidationError(f"Unknown operator '{key}'")
        else:
            preds.append(_field_predicate(key, cond))

    return lambda doc: all(p(doc) for p in preds)


def sort_key(value: Any) -> tuple:
    """Total order across JSON types: missing < null < numbers < strings < booleans < arrays < objects."""
    if value is MISSING:
        return (0,)
    if value is None:
        return (1,)
    if isinstance(value, bool):
        return (4, value)
    if _is_number(value):
        return (2, value)
    if isinstance(value, str):
        return (3, value)
    if isinstance(value, list):
        return (5, tuple(sort_key(item) for item in value))
    if isinstance(value, Mapping):
        return (6, tuple((k, sort_key(v)) for k, v in sorted(value.items())))
    return (7, str(value))


__all__ = ["MISSING", "OPERATORS", "compile_predicate", "get_path", "sort_key"]
