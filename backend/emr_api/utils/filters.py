"""Translate list-query criteria into SQLAlchemy expressions.

Clients name properties the way the API documents them
(`PropertyName: "ItemName"`), while the models use snake_case columns;
`normalize_field_name` bridges the two so `ItemName`, `itemName` and
`item_name` all resolve to the same column.
"""

import re
from typing import Any, List, Type, get_args

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import false, func, or_
from sqlmodel import SQLModel

_CASE_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def normalize_field_name(name: str) -> str:
    """Convert a PascalCase or camelCase property name to snake_case."""
    return _CASE_BOUNDARY.sub("_", name.strip()).lower()


def resolve_field(model: Type[SQLModel], name: str) -> str:
    """Return the model field matching `name` or raise ValueError."""
    field = normalize_field_name(name)
    if field not in model.model_fields:
        raise ValueError(f"Unknown property '{name}' for {model.__name__}")
    return field


def coerce_value(model: Type[SQLModel], field: str, value: Any) -> Any:
    """Validate `value` against the declared type of `model.field`."""
    if value is None:
        return None
    annotation = model.model_fields[field].annotation
    try:
        return TypeAdapter(annotation).validate_python(value)
    except ValidationError:
        raise ValueError(f"Invalid value {value!r} for property '{field}'")


def _text(column):
    return func.lower(column)


_OPERATORS = {
    "equal": lambda c, v: c == v,
    "notequal": lambda c, v: c != v,
    "greaterthan": lambda c, v: c > v,
    "greaterthanorequal": lambda c, v: c >= v,
    "lessthan": lambda c, v: c < v,
    "lessthanorequal": lambda c, v: c <= v,
    "contains": lambda c, v: _text(c).contains(str(v).lower(), autoescape=True),
    "startswith": lambda c, v: _text(c).startswith(str(v).lower(), autoescape=True),
    "endswith": lambda c, v: _text(c).endswith(str(v).lower(), autoescape=True),
}


def build_filter_clause(model: Type[SQLModel], property_name: str, operator: str, value: Any):
    """Build the WHERE clause for one `{PropertyName, Operator, Value}` item.

    Operators are matched case-insensitively. `In` expects a list value;
    the text operators only apply to text columns, compare
    case-insensitively and treat `%` and `_` literally.
    """
    field = resolve_field(model, property_name)
    column = getattr(model, field)
    op = (operator or "Equal").replace("_", "").lower()
    if op == "in":
        if not isinstance(value, list):
            raise ValueError(f"Operator 'In' requires a list value for property '{property_name}'")
        return column.in_([coerce_value(model, field, v) for v in value])
    if op not in _OPERATORS:
        raise ValueError(f"Unsupported filter operator '{operator}'")
    if op in ("contains", "startswith", "endswith"):
        if not _is_text(model.model_fields[field].annotation):
            raise ValueError(f"Operator '{operator}' only applies to text properties, not '{property_name}'")
        if value is None:
            raise ValueError(f"Operator '{operator}' requires a value")
        return _OPERATORS[op](column, value)
    return _OPERATORS[op](column, coerce_value(model, field, value))


def _is_text(annotation) -> bool:
    return annotation is str or str in get_args(annotation)


def string_columns(model: Type[SQLModel]) -> List:
    """Return the model's text columns, in declaration order."""
    table = model.__table__
    return [table.columns[name] for name, info in model.model_fields.items() if _is_text(info.annotation)]


def build_search_clause(model: Type[SQLModel], search_term: str):
    """OR a case-insensitive literal substring match over every text column.

    Entities without text columns match nothing.
    """
    columns = string_columns(model)
    if not columns:
        return false()
    term = search_term.strip().lower()
    return or_(*[_text(c).contains(term, autoescape=True) for c in columns])
