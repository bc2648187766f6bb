from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class QueryErrorKind(str, Enum):
    INVALID_DESCRIPTOR = "InvalidDescriptor"
    OPERATION_NOT_ALLOWED = "OperationNotAllowed"
    UNSUPPORTED_COLLECTION = "UnsupportedCollection"
    OPERATOR_NOT_PERMITTED = "OperatorNotPermitted"
    UNSUPPORTED_REGEX_FLAG = "UnsupportedRegexFlag"
    FILTER_TOO_DEEP = "FilterTooDeep"
    # Raised while turning a sanitized filter into SQL.
    INVALID_FILTER_VALUE = "InvalidFilterValue"
    MALFORMED_FILTER = "MalformedFilter"


@dataclass(frozen=True)
class QueryError:
    kind: QueryErrorKind
    message: str

    def as_payload(self) -> dict[str, Any]:
        return {"success": False, "message": self.message, "kind": self.kind.value}


@dataclass(frozen=True)
class QueryOutcome:
    """Either `ok` with `data`, or not `ok` with `error`."""

    ok: bool
    data: Any = None
    error: QueryError | None = None

    @classmethod
    def success(cls, data: Any) -> "QueryOutcome":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, kind: QueryErrorKind, message: str) -> "QueryOutcome":
        return cls(ok=False, error=QueryError(kind=kind, message=message))


class QueryRejected(Exception):
    """Internal short-circuit; converted to a failed QueryOutcome at module boundaries."""

    def __init__(self, kind: QueryErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def to_outcome(self) -> QueryOutcome:
        return QueryOutcome.failure(self.kind, self.message)
