from __future__ import annotations

import json
import math
import operator
import re
import uuid
from collections.abc import Mapping
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import String, and_, asc, cast, desc, false, not_, or_, true

from app.services.crm_records import CollectionSpec, QueryField
from app.services.filter_sanitizer import REGEX_OPERATOR, REGEX_OPTIONS_OPERATOR, is_operator_key
from app.services.query_outcome import QueryErrorKind, QueryRejected

LOGICAL_OPERATORS = {"$and", "$or"}
RANGE_OPERATORS = {
    "$gt": operator.gt,
    "$gte": operator.ge,
    "$lt": operator.lt,
    "$lte": operator.le,
}
_DESCENDING = {"-1", "desc", "descending"}


def _malformed(message: str) -> QueryRejected:
    return QueryRejected(QueryErrorKind.MALFORMED_FILTER, message)


def _bad_filter_value(field_key: str, kind: str) -> QueryRejected:
    return QueryRejected(QueryErrorKind.INVALID_FILTER_VALUE, f'Invalid filter value for field "{field_key}" ({kind})')


def _coerce_bool_filter_value(field_key: str, value):
    if isinstance(value, bool):
        return value
    text = str(value if value is not None else "").strip().lower()
    if text in {"1", "true", "yes", "y"}:
        return True
    if text in {"0", "false", "no", "n"}:
        return False
    raise _bad_filter_value(field_key, "boolean")


def _coerce_number_filter_value(field_key: str, value, python_type):
    if isinstance(value, bool):
        raise _bad_filter_value(field_key, "number")
    try:
        if python_type in {int, float} and isinstance(value, (int, float)):
            if not math.isfinite(value):
                raise _bad_filter_value(field_key, "number")
            return python_type(value)
        if python_type is Decimal and isinstance(value, Decimal):
            if not value.is_finite():
                raise _bad_filter_value(field_key, "number")
            return value
        text = str(value).strip()
        if not text:
            raise _bad_filter_value(field_key, "number")
        normalized = text.replace(",", ".")
        if python_type is Decimal:
            parsed = Decimal(normalized)
            if not parsed.is_finite():
                raise _bad_filter_value(field_key, "number")
            return parsed
        number = float(normalized)
        if not math.isfinite(number):
            raise _bad_filter_value(field_key, "number")
        return int(number) if python_type is int else number
    except (ValueError, TypeError, OverflowError, InvalidOperation):
        raise _bad_filter_value(field_key, "number")


def _coerce_date_filter_value(field_key: str, value):
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    text = str(value or "").strip()
    if not text:
        raise _bad_filter_value(field_key, "date")
    try:
        if "T" in text or " " in text:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        return date.fromisoformat(text)
    except ValueError:
        raise _bad_filter_value(field_key, "date")


def _coerce_datetime_filter_value(field_key: str, value):
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value or "").strip()
        if not text:
            raise _bad_filter_value(field_key, "datetime")
        try:
            if "T" not in text and " " not in text and len(text) == 10:
                # Date-only value for a timestamp column -> start of the day.
                parsed = datetime.combine(date.fromisoformat(text), datetime.min.time())
            else:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise _bad_filter_value(field_key, "datetime")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _coerce_string_filter_value(field_key: str, value):
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return str(value)
    raise _bad_filter_value(field_key, "string")


def _column_python_type(column):
    try:
        return column.property.columns[0].type.python_type
    except Exception:
        return None


def _coerce_filter_value(field_key: str, column, value):
    python_type = _column_python_type(column)
    if python_type is uuid.UUID:
        if isinstance(value, uuid.UUID):
            return value
        try:
            return uuid.UUID(str(value or "").strip())
        except ValueError:
            raise _bad_filter_value(field_key, "id")
    if python_type is bool:
        return _coerce_bool_filter_value(field_key, value)
    if python_type in {int, float, Decimal}:
        return _coerce_number_filter_value(field_key, value, python_type)
    if python_type is date:
        return _coerce_date_filter_value(field_key, value)
    if python_type is datetime:
        return _coerce_datetime_filter_value(field_key, value)
    if python_type is str:
        return _coerce_string_filter_value(field_key, value)
    return value


def _is_date_only_filter_literal(raw_value) -> bool:
    if isinstance(raw_value, date) and not isinstance(raw_value, datetime):
        return True
    if not isinstance(raw_value, str):
        return False
    text = raw_value.strip()
    if not text or "T" in text or " " in text:
        return False
    try:
        date.fromisoformat(text)
        return True
    except ValueError:
        return False


def _is_document(value) -> bool:
    return isinstance(value, (list, tuple, Mapping))


def _all_of(clauses):
    if not clauses:
        return true()
    if len(clauses) == 1:
        return clauses[0]
    return and_(*clauses)


def _operand_list(field_key: str, op: str, operand) -> list:
    if not isinstance(operand, (list, tuple)):
        raise _malformed(f'{op} on field "{field_key}" expects an array')
    return list(operand)


def _scalar_equality(field: QueryField, field_key: str, value):
    column = field.column
    if value is None:
        return column.is_(None)
    if _is_document(value):
        return false()
    coerced = _coerce_filter_value(field_key, column, value)
    if _column_python_type(column) is datetime and _is_date_only_filter_literal(value):
        return and_(column >= coerced, column < coerced + timedelta(days=1))
    return column == coerced


def _scalar_not_equal(field: QueryField, field_key: str, value):
    if value is None:
        return field.column.is_not(None)
    return or_(not_(_scalar_equality(field, field_key, value)), field.column.is_(None))


def _regex_clause(field: QueryField, field_key: str, pattern, options):
    if _column_python_type(field.column) is not str:
        return false()
    text = str(pattern)
    if options == "i":
        text = "(?i)" + text
    try:
        re.compile(text)
    except re.error:
        raise _bad_filter_value(field_key, "regular expression")
    return field.column.regexp_match(text)


def _scalar_operator(field: QueryField, field_key: str, op: str, operand, siblings: Mapping):
    column = field.column
    if op == "$eq":
        return _scalar_equality(field, field_key, operand)
    if op == "$ne":
        return _scalar_not_equal(field, field_key, operand)
    if op in RANGE_OPERATORS:
        if operand is None or _is_document(operand):
            return false()
        return RANGE_OPERATORS[op](column, _coerce_filter_value(field_key, column, operand))
    if op in {"$in", "$nin"}:
        values = _operand_list(field_key, op, operand)
        has_null = any(item is None for item in values)
        members = [
            _coerce_filter_value(field_key, column, item)
            for item in values
            if item is not None and not _is_document(item)
        ]
        if op == "$in":
            parts = []
            if members:
                parts.append(column.in_(members))
            if has_null:
                parts.append(column.is_(None))
            return or_(*parts) if parts else false()
        excluded = column.not_in(members) if members else true()
        if has_null:
            return and_(excluded, column.is_not(None))
        return or_(excluded, column.is_(None))
    if op == "$exists":
        return column.is_not(None) if operand else column.is_(None)
    if op == REGEX_OPERATOR:
        return _regex_clause(field, field_key, operand, siblings.get(REGEX_OPTIONS_OPERATOR))
    raise _malformed(f'Operator {op} is not supported for field "{field_key}"')


def _list_contains(field: QueryField, item):
    if item is None or _is_document(item):
        return false()
    # List columns hold JSON arrays of strings; match the serialized element.
    return cast(field.column, String).contains(json.dumps(str(item)), autoescape=True)


def _list_equality(field: QueryField, value):
    if isinstance(value, (list, tuple)):
        if not value:
            return cast(field.column, String) == "[]"
        return _all_of([_list_contains(field, item) for item in value])
    return _list_contains(field, value)


def _list_operator(field: QueryField, field_key: str, op: str, operand):
    if op == "$eq":
        return _list_equality(field, operand)
    if op == "$ne":
        return not_(_list_equality(field, operand))
    if op in {"$in", "$nin"}:
        parts = [_list_contains(field, item) for item in _operand_list(field_key, op, operand)]
        if op == "$in":
            return or_(*parts) if parts else false()
        return not_(or_(*parts)) if parts else true()
    if op == "$exists":
        return true() if operand else false()
    return false()


def _missing_field_clause(op: str, operand):
    # Unknown fields behave like absent document fields.
    if op == "$exists":
        return false() if operand else true()
    if op == "$eq":
        return true() if operand is None else false()
    if op == "$ne":
        return false() if operand is None else true()
    if op == "$in":
        return true() if isinstance(operand, (list, tuple)) and None in operand else false()
    if op == "$nin":
        return false() if isinstance(operand, (list, tuple)) and None in operand else true()
    return false()


def _compile_operators(field_key: str, ops: Mapping, collection: CollectionSpec) -> list:
    if REGEX_OPTIONS_OPERATOR in ops and REGEX_OPERATOR not in ops:
        raise _malformed(f'Field "{field_key}" uses $options without $regex')
    field = collection.fields.get(field_key)
    clauses = []
    for op, operand in ops.items():
        if op == REGEX_OPTIONS_OPERATOR:
            continue
        if op in LOGICAL_OPERATORS:
            raise _malformed(f'{op} cannot be applied to field "{field_key}"')
        if field is None:
            clauses.append(_missing_field_clause(op, operand))
        elif field.is_list:
            clauses.append(_list_operator(field, field_key, op, operand))
        else:
            clauses.append(_scalar_operator(field, field_key, op, operand, ops))
    return clauses


def _compile_equality(field_key: str, value, collection: CollectionSpec):
    field = collection.fields.get(field_key)
    if field is None:
        return true() if value is None else false()
    if field.is_list:
        return _list_equality(field, value)
    return _scalar_equality(field, field_key, value)


def _compile_logical(op: str, value, collection: CollectionSpec):
    if not isinstance(value, (list, tuple)) or not value or not all(isinstance(item, Mapping) for item in value):
        raise _malformed(f"{op} expects a non-empty array of filters")
    parts = [_all_of(_compile_document(item, collection, prefix="")) for item in value]
    return and_(*parts) if op == "$and" else or_(*parts)


def _compile_document(doc: Mapping, collection: CollectionSpec, prefix: str) -> list:
    clauses = []
    for key, value in doc.items():
        if key in LOGICAL_OPERATORS:
            if prefix:
                raise _malformed(f'{key} cannot be nested under field "{prefix[:-1]}"')
            clauses.append(_compile_logical(key, value, collection))
            continue
        if is_operator_key(key):
            raise _malformed(f"Operator {key} must be applied to a field")
        field_key = prefix + str(key)
        if isinstance(value, Mapping) and value:
            operator_keys = [k for k in value if is_operator_key(k)]
            if not operator_keys:
                # Sub-document: match on dotted sub-fields.
                clauses.extend(_compile_document(value, collection, prefix=field_key + "."))
            elif len(operator_keys) != len(value):
                raise _malformed(f'Field "{field_key}" mixes operators and sub-fields')
            else:
                clauses.extend(_compile_operators(field_key, value, collection))
            continue
        if isinstance(value, Mapping):
            clauses.append(false())
            continue
        clauses.append(_compile_equality(field_key, value, collection))
    return clauses


def compile_filter(filter_doc: Mapping[str, Any], collection: CollectionSpec):
    """Translate a sanitized filter into one SQLAlchemy boolean clause.

    Raises QueryRejected for values that cannot be coerced to the column type
    and for operator placements that have no meaning (e.g. a top-level `$gt`).
    """
    return _all_of(_compile_document(filter_doc or {}, collection, prefix=""))


def _is_descending(direction) -> bool:
    if isinstance(direction, bool):
        return False
    if isinstance(direction, (int, float)):
        return direction < 0
    return str(direction or "").strip().lower() in _DESCENDING


def compile_sort(sort_spec, collection: CollectionSpec) -> list:
    if not isinstance(sort_spec, Mapping):
        return []
    clauses = []
    for key, direction in sort_spec.items():
        field = collection.fields.get(str(key))
        if field is None or field.is_list:
            continue
        clauses.append(desc(field.column) if _is_descending(direction) else asc(field.column))
    return clauses


def _projection_key(key) -> str:
    head = str(key).split(".", 1)[0]
    return "id" if head == "_id" else head


def _projection_flag(value) -> bool:
    if isinstance(value, str):
        return value.strip() not in {"", "0", "false"}
    return bool(value)


def apply_projection(record: dict[str, Any], projection) -> dict[str, Any]:
    if not isinstance(projection, Mapping) or not projection:
        return record
    flags: dict[str, bool] = {}
    for key, value in projection.items():
        flags[_projection_key(key)] = _projection_flag(value)
    included = {key for key, keep in flags.items() if keep}
    if included:
        if flags.get("id", True):
            included.add("id")
        return {key: value for key, value in record.items() if key in included}
    return {key: value for key, value in record.items() if key not in flags}
