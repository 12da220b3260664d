"""
Query-string compiler for table list/patch/delete endpoints.

Reserved parameters start with ``_``::

    _page   1-based page number (default 1)
    _limit  page size (default 10)
    _sort   field to sort by (optional)
    _order  "desc" for descending, anything else ascending

Every other parameter becomes a filter on the field of the same name.
``price_gte=10`` means ``price >= 10``, ``price_lte`` means ``<=``,
``price_ne`` means ``!=``; a bare ``price=10`` is equality. All predicates
are ANDed; several operators on one field merge into one condition.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from tablebase.exceptions import ValidationError

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10

SUFFIX_OPERATORS: tuple[tuple[str, str], ...] = (
    ("_gte", "$gte"),
    ("_lte", "$lte"),
    ("_ne", "$ne"),
)


@dataclass(frozen=True)
class CompiledQuery:
    filter: dict[str, Any] = field(default_factory=dict)
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    sort_field: Optional[str] = None
    sort_order: int = 1

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def _split_key(key: str) -> tuple[str, str]:
    for suffix, op in SUFFIX_OPERATORS:
        if key.endswith(suffix) and len(key) > len(suffix):
            return key[: -len(suffix)], op
    return key, "$eq"


def compile_filter(params: Mapping[str, Any]) -> dict[str, Any]:
    """Filter part only; reserved and unknown ``_`` parameters are dropped."""
    conditions: dict[str, dict[str, Any]] = {}
    for key, value in params.items():
        if key.startswith("_"):
            continue
        name, op = _split_key(key)
        conditions.setdefault(name, {})[op] = value
    return {
        name: ops["$eq"] if list(ops) == ["$eq"] else ops
        for name, ops in conditions.items()
    }


def _positive_int(params: Mapping[str, Any], key: str, default: int) -> int:
    raw = params.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"'{key}' must be a positive integer") from None
    if value < 1:
        raise ValidationError(f"'{key}' must be a positive integer")
    return value


def compile_query(
    params: Mapping[str, Any],
    *,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: Optional[int] = None,
) -> CompiledQuery:
    page = _positive_int(params, "_page", DEFAULT_PAGE)
    limit = _positive_int(params, "_limit", default_limit)
    if max_limit is not None and limit > max_limit:
        raise ValidationError(f"'_limit' may not exceed {max_limit}")

    sort_field = params.get("_sort") or None
    return CompiledQuery(
        filter=compile_filter(params),
        page=page,
        limit=limit,
        sort_field=sort_field,
        sort_order=-1 if params.get("_order") == "desc" else 1,
    )


__all__ = ["CompiledQuery", "compile_filter", "compile_query"]
