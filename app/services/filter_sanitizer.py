"""Recursive cleaning of untrusted, Mongo-style query filters.

A filter is a nested mapping of field names to values or operator documents.
Cleaning either returns a structurally identical mapping, or fails on the
first disallowed operator, unsupported regex flag or excessive nesting.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from app.services.query_outcome import QueryErrorKind, QueryOutcome, QueryRejected

OPERATOR_SIGIL = "$"
REGEX_OPERATOR = "$regex"
REGEX_OPTIONS_OPERATOR = "$options"


@dataclass(frozen=True)
class FilterPolicy:
    allowed_operators: frozenset[str] = field(
        default_factory=lambda: frozenset(
            {
                "$gt",
                "$gte",
                "$lt",
                "$lte",
                "$eq",
                "$ne",
                "$in",
                "$nin",
                "$exists",
                "$and",
                "$or",
                REGEX_OPERATOR,
                REGEX_OPTIONS_OPERATOR,
            }
        )
    )
    allowed_regex_flags: frozenset[str] = frozenset({"i"})
    max_depth: int = 5


DEFAULT_FILTER_POLICY = FilterPolicy()


class JsonKind(str, Enum):
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"
    OTHER = "other"


def json_kind(value: Any) -> JsonKind:
    if value is None:
        return JsonKind.NULL
    # bool is an int subclass; check it first.
    if isinstance(value, bool):
        return JsonKind.BOOL
    if isinstance(value, (int, float, Decimal)):
        return JsonKind.NUMBER
    if isinstance(value, str):
        return JsonKind.STRING
    if isinstance(value, (list, tuple)):
        return JsonKind.ARRAY
    if isinstance(value, Mapping):
        return JsonKind.OBJECT
    return JsonKind.OTHER


def is_operator_key(key: Any) -> bool:
    return isinstance(key, str) and key.startswith(OPERATOR_SIGIL)


def regex_text(value: Any) -> str:
    """String form of a `$regex` value; compiled patterns render as `/pattern/flags`."""
    if isinstance(value, re.Pattern):
        flags = "i" if value.flags & re.IGNORECASE else ""
        return f"/{value.pattern}/{flags}"
    return str(value)


def _clean(filter_doc: Any, depth: int, policy: FilterPolicy) -> dict[str, Any]:
    if depth > policy.max_depth:
        raise QueryRejected(QueryErrorKind.FILTER_TOO_DEEP, "Filter nesting too deep")
    if json_kind(filter_doc) is not JsonKind.OBJECT:
        return {}

    cleaned: dict[str, Any] = {}
    for key, value in filter_doc.items():
        if is_operator_key(key) and key not in policy.allowed_operators:
            raise QueryRejected(
                QueryErrorKind.OPERATOR_NOT_PERMITTED,
                f"Operator {key} not permitted for security",
            )

        if key == REGEX_OPERATOR:
            cleaned[key] = regex_text(value)
            continue

        if key == REGEX_OPTIONS_OPERATOR:
            if not isinstance(value, str) or value not in policy.allowed_regex_flags:
                raise QueryRejected(
                    QueryErrorKind.UNSUPPORTED_REGEX_FLAG,
                    "Only case-insensitive (i) regex flag allowed",
                )
            cleaned[key] = value
            continue

        kind = json_kind(value)
        if kind is JsonKind.OBJECT:
            cleaned[key] = _clean(value, depth + 1, policy)
        elif kind is JsonKind.ARRAY:
            # An invalid element rejects the whole filter.
            cleaned[key] = [
                _clean(item, depth + 1, policy) if json_kind(item) is JsonKind.OBJECT else item
                for item in value
            ]
        else:
            cleaned[key] = value
    return cleaned


def clean_filter(
    filter_doc: Any,
    depth: int = 0,
    policy: FilterPolicy = DEFAULT_FILTER_POLICY,
) -> QueryOutcome:
    try:
        return QueryOutcome.success(_clean(filter_doc, depth, policy))
    except QueryRejected as exc:
        return exc.to_outcome()
