"""Searchable field catalog and per-field search predicates.

Each searchable field name is declared under exactly one FieldKind:

    NUMERIC  term must parse as a number; exact match
    TEXT     case-insensitive substring match
    DATE     term is an ISO calendar date; matches [date, date + 1 day)

A term that does not parse for a field's kind drops that field from the
search instead of failing the query.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional

from sqlalchemy import (
    BigInteger, Column, Date, DateTime, Integer, Numeric, SmallInteger, String, and_, cast, func,
)
from sqlalchemy.sql.elements import ColumnElement

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


class FieldKind(str, Enum):
    """How a search term is matched against a field"""
    NUMERIC = "numeric"
    TEXT = "text"
    DATE = "date"


class FieldCatalog:
    """Field name -> FieldKind table, validated when built.

    Example:
        catalog = FieldCatalog({
            FieldKind.NUMERIC: ["reference_number", "order_referral_id"],
            FieldKind.TEXT: ["name", "observation"],
        })
    """

    def __init__(self, fields: Mapping[FieldKind, Iterable[str]]):
        self._kinds: Dict[str, FieldKind] = {}
        for kind, names in fields.items():
            kind = FieldKind(kind)
            for name in names:
                existing = self._kinds.get(name)
                if existing is not None and existing is not kind:
                    raise ConfigurationError(
                        f"Field {name} is declared both {existing.value} and {kind.value}"
                    )
                self._kinds[name] = kind

    def kind_of(self, name: str) -> FieldKind:
        """Kind of a searchable field.

        Raises:
            ConfigurationError: If the field is not in the catalog
        """
        kind = self._kinds.get(name)
        if kind is None:
            raise ConfigurationError(f"Field {name} is not searchable", field=name)
        return kind

    def names(self, kind: Optional[FieldKind] = None) -> List[str]:
        return [name for name, k in self._kinds.items() if kind is None or k is kind]

    def __contains__(self, name: str) -> bool:
        return name in self._kinds


DEFAULT_FIELD_CATALOG = FieldCatalog({
    FieldKind.NUMERIC: [
        "reference_number",
        "order_referral_id",
        "total_quantity",
        "planned_quantity",
        "quantity",
    ],
    FieldKind.TEXT: [
        "name",
        "observation",
        "title",
        "type",
        "movement_type",
        "status",
        "email",
        "username",
    ],
    FieldKind.DATE: [
        "date",
        "delivery_date",
        "issue_date",
        "created_at",
        "updated_at",
    ],
})


def parse_number(term: str) -> Optional[Decimal]:
    try:
        number = Decimal(term.strip())
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def parse_date(term: str) -> Optional[date]:
    try:
        return date.fromisoformat(term.strip())
    except ValueError:
        return None


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally (escape char is a backslash)."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# Longest digit string matched against a reference column without a length
MAX_REFERENCE_DIGITS = 64

# Exclusive magnitude bounds of the integer column types (subclasses before Integer)
INTEGER_BOUNDS = (
    (SmallInteger, 2 ** 15),
    (BigInteger, 2 ** 63),
    (Integer, 2 ** 31),
)


def _integer_bound(column_type: Integer) -> int:
    for type_, bound in INTEGER_BOUNDS:
        if isinstance(column_type, type_):
            return bound
    return 2 ** 63


def numeric_predicate(column: Column, term: str) -> Optional[ColumnElement]:
    """Exact-match predicate, or None when the term cannot fit the column."""
    number = parse_number(term)
    if number is None:
        return None
    integral = number == number.to_integral_value()

    if isinstance(column.type, String):
        # Zero-padded reference strings: compare digit-normalized values
        if number < 0 or not integral:
            return None
        max_digits = column.type.length or MAX_REFERENCE_DIGITS
        if number.adjusted() + 1 > max_digits:
            return None
        digits = format(number.to_integral_value(), "f").lstrip("0")
        return func.ltrim(column, "0") == digits

    if isinstance(column.type, Integer):
        if not integral or abs(number) >= _integer_bound(column.type):
            return None
        return column == int(number)

    if isinstance(column.type, Numeric):
        precision, scale = column.type.precision, column.type.scale or 0
        if precision is not None and abs(number) >= Decimal(10) ** (precision - scale):
            return None
        return column == number

    raise ConfigurationError(
        f"Column {column.name} is not numeric ({column.type})", field=column.name
    )


def text_predicate(column: Column, term: str) -> ColumnElement:
    target = column if isinstance(column.type, String) else cast(column, String)
    return target.ilike(f"%{escape_like(term)}%", escape="\\")


def date_predicate(column: Column, term: str) -> Optional[ColumnElement]:
    day = parse_date(term)
    if day is None:
        return None

    if isinstance(column.type, DateTime):
        tz = timezone.utc if column.type.timezone else None
        start = datetime.combine(day, time.min, tzinfo=tz)
        return and_(column >= start, column < start + timedelta(days=1))

    if isinstance(column.type, Date):
        return and_(column >= day, column < day + timedelta(days=1))

    raise ConfigurationError(
        f"Column {column.name} is not a date ({column.type})", field=column.name
    )


PREDICATES = {
    FieldKind.NUMERIC: numeric_predicate,
    FieldKind.TEXT: text_predicate,
    FieldKind.DATE: date_predicate,
}


def field_predicate(kind: FieldKind, column: Column, term: str) -> Optional[ColumnElement]:
    """Predicate matching ``term`` against ``column``, None when the term does not apply."""
    predicate = PREDICATES[kind](column, term)
    if predicate is None:
        logger.debug(
            "Search term does not apply to field, dropping it",
            extra={"field": column.name, "field_kind": kind.value},
        )
    return predicate
