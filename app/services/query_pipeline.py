"""Validation and read-only execution of model-generated query descriptors.

`validate_descriptor` turns an untrusted descriptor into a `SafeQuery`;
`execute_safe_query` is the only code path that runs one against the
database, and it only ever issues SELECT statements.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.services.crm_records import QUERYABLE_COLLECTIONS
from app.services.filter_sanitizer import DEFAULT_FILTER_POLICY, FilterPolicy, clean_filter
from app.services.query_compiler import apply_projection, compile_filter, compile_sort
from app.services.query_outcome import QueryErrorKind, QueryOutcome, QueryRejected

READ_ONLY_OPERATION = "find"
ALLOWED_COLLECTIONS = ("Customer", "Property", "Task")
DEFAULT_LIMIT = 50
MIN_LIMIT = 1
MAX_LIMIT = 200

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class SafeQuery:
    collection: str
    filter: dict[str, Any]
    limit: int
    projection: Any = None
    sort: Any = None
    meta: Any = None
    operation: str = READ_ONLY_OPERATION

    @property
    def count_only(self) -> bool:
        return isinstance(self.meta, Mapping) and bool(self.meta.get("countOnly"))

    def as_dict(self) -> dict[str, Any]:
        return {
            "collection": self.collection,
            "operation": self.operation,
            "filter": self.filter,
            "projection": self.projection,
            "sort": self.sort,
            "limit": self.limit,
            "meta": self.meta,
        }


def parse_limit(raw: Any) -> int | None:
    """Leading-integer parse: 12 -> 12, "12abc" -> 12, 3.9 -> 3, "abc" -> None."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if math.isfinite(raw) else None
    match = _LEADING_INT_RE.match(str(raw))
    return int(match.group(1)) if match else None


def effective_limit(raw: Any) -> int:
    parsed = parse_limit(raw)
    if parsed is None:
        parsed = DEFAULT_LIMIT
    return min(max(parsed, MIN_LIMIT), MAX_LIMIT)


def _present_or_none(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (Mapping, list)):
        return value
    return value or None


def validate_descriptor(descriptor: Any, policy: FilterPolicy = DEFAULT_FILTER_POLICY) -> QueryOutcome:
    if not isinstance(descriptor, Mapping):
        return QueryOutcome.failure(QueryErrorKind.INVALID_DESCRIPTOR, "Invalid query object received from model")

    if descriptor.get("operation") != READ_ONLY_OPERATION:
        return QueryOutcome.failure(
            QueryErrorKind.OPERATION_NOT_ALLOWED,
            "Only read-only find operations are permitted",
        )

    collection = descriptor.get("collection")
    if not isinstance(collection, str) or collection not in ALLOWED_COLLECTIONS:
        return QueryOutcome.failure(
            QueryErrorKind.UNSUPPORTED_COLLECTION,
            "Unsupported collection. Allowed: " + ", ".join(ALLOWED_COLLECTIONS),
        )

    raw_filter = descriptor.get("filter")
    cleaned = clean_filter(raw_filter if raw_filter is not None else {}, 0, policy)
    if not cleaned.ok:
        return cleaned

    return QueryOutcome.success(
        SafeQuery(
            collection=collection,
            filter=cleaned.data,
            limit=effective_limit(descriptor.get("limit")),
            projection=_present_or_none(descriptor.get("projection")),
            sort=_present_or_none(descriptor.get("sort")),
            meta=_present_or_none(descriptor.get("meta")),
        )
    )


def execute_safe_query(safe_query: SafeQuery, db: Session) -> QueryOutcome:
    """Run a validated query. Database errors propagate to the caller."""
    collection = QUERYABLE_COLLECTIONS.get(safe_query.collection)
    if collection is None:
        raise RuntimeError("Model resolution failed")

    try:
        where = compile_filter(safe_query.filter, collection)
    except QueryRejected as exc:
        return exc.to_outcome()

    if safe_query.count_only:
        total = db.execute(select(func.count()).select_from(collection.model).where(where)).scalar_one()
        return QueryOutcome.success({"count": int(total)})

    stmt = select(collection.model).where(where)
    for clause in compile_sort(safe_query.sort, collection):
        stmt = stmt.order_by(clause)
    stmt = stmt.limit(safe_query.limit)

    rows = db.execute(stmt).scalars().all()
    return QueryOutcome.success([apply_projection(collection.serialize(row), safe_query.projection) for row in rows])
