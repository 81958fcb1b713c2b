#!/usr/bin/env python3
"""
PocketBase filter expressions.

Builds the string passed as the ``filter`` query parameter of list requests,
e.g. ``status="active"&&age>18``.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple, Union

from ..exceptions import InvalidFilterError


class FilterOperator(Enum):
    """PocketBase filter operators."""
    # Comparison
    EQUAL = "="
    NOT_EQUAL = "!="
    GREATER_THAN = ">"
    GREATER_THAN_OR_EQUAL = ">="
    LESS_THAN = "<"
    LESS_THAN_OR_EQUAL = "<="

    # Text
    LIKE = "~"
    NOT_LIKE = "!~"

    # Any-of (multi-value fields)
    CONTAINS = "?~"
    NOT_CONTAINS = "!?~"
    IN = "?="
    NOT_IN = "!?="

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Check if a string is a valid operator token."""
        return value in {op.value for op in cls}

    @classmethod
    def from_string(cls, value: str) -> Optional['FilterOperator']:
        """Convert a wire token to an operator."""
        for op in cls:
            if op.value == value:
                return op
        return None


_LITERALS = {"null", "true", "false"}

_DATE_PATTERNS = (
    re.compile(r"\d{4}-\d{2}-\d{2}\Z"),                         # YYYY-MM-DD
    re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\Z"),       # YYYY-MM-DD HH:MM:SS
    re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}"),         # ISO 8601, any suffix
)


def _is_number(value: str) -> bool:
    # float() also accepts padding and digit separators; the server does not
    if value != value.strip() or "_" in value:
        return False
    try:
        float(value)
    except ValueError:
        return False
    return True


def _is_date(value: str) -> bool:
    return any(pattern.match(value) for pattern in _DATE_PATTERNS)


def needs_quotes(value: str) -> bool:
    """
    Decide whether a raw filter value must be wrapped in double quotes.

    Literals (null/true/false, any case), numbers and date-like values are
    sent bare; everything else is quoted. No escaping is performed.
    """
    if value.lower() in _LITERALS:
        return False
    return not (_is_number(value) or _is_date(value))


@dataclass(frozen=True)
class FilterExpression:
    """
    A single comparison: ``<field><operator><value>``.
    """
    field: str
    operator: FilterOperator
    value: str

    def __post_init__(self):
        if not self.field:
            raise InvalidFilterError("Filter field cannot be empty")
        if not isinstance(self.operator, FilterOperator):
            op = FilterOperator.from_string(self.operator)
            if op is None:
                raise InvalidFilterError(f"Unknown filter operator: {self.operator!r}")
            object.__setattr__(self, 'operator', op)
        object.__setattr__(self, 'value', str(self.value))

    def render(self) -> str:
        """Build the wire form of this comparison."""
        value = f'"{self.value}"' if needs_quotes(self.value) else self.value
        return f"{self.field}{self.operator.value}{value}"

    def __str__(self):
        return self.render()


OperatorLike = Union[FilterOperator, str]


@dataclass(frozen=True)
class FilterQueryBuilder:
    """
    Immutable, ordered list of filter expressions joined with ``&&``.

    Every adding method returns a new builder and leaves the receiver as is:

        base = FilterQueryBuilder().equal("status", "active")
        adults = base.greater_than("age", "18")
        adults.render()  # status="active"&&age>18
    """
    expressions: Tuple[FilterExpression, ...] = ()

    def __init__(self, expressions: Iterable[FilterExpression] = ()):
        object.__setattr__(self, 'expressions', tuple(expressions))

    @property
    def is_empty(self) -> bool:
        """True when no expression has been added."""
        return not self.expressions

    def render(self) -> str:
        """Build the ``filter`` query parameter value."""
        return "&&".join(expr.render() for expr in self.expressions)

    def __str__(self):
        return self.render()

    def __len__(self):
        return len(self.expressions)

    def filter(self,
               field: Union[FilterExpression, str],
               operator: Optional[OperatorLike] = None,
               value: Optional[str] = None) -> 'FilterQueryBuilder':
        """
        Append an expression.

        Accepts either a ready FilterExpression or ``field, operator, value``.
        """
        if isinstance(field, FilterExpression):
            expression = field
        else:
            if operator is None or value is None:
                raise InvalidFilterError("filter() needs an expression or field, operator and value")
            expression = FilterExpression(field, operator, value)
        return FilterQueryBuilder(self.expressions + (expression,))

    def equal(self, field: str, value: str) -> 'FilterQueryBuilder':
        return self.filter(field, FilterOperator.EQUAL, value)

    def not_equal(self, field: str, value: str) -> 'FilterQueryBuilder':
        return self.filter(field, FilterOperator.NOT_EQUAL, value)

    def greater_than(self, field: str, value: str) -> 'FilterQueryBuilder':
        return self.filter(field, FilterOperator.GREATER_THAN, value)

    def greater_than_or_equal(self, field: str, value: str) -> 'FilterQueryBuilder':
        return self.filter(field, FilterOperator.GREATER_THAN_OR_EQUAL, value)

    def less_than(self, field: str, value: str) -> 'FilterQueryBuilder':
        return self.filter(field, FilterOperator.LESS_THAN, value)

    def less_than_or_equal(self, field: str, value: str) -> 'FilterQueryBuilder':
        return self.filter(field, FilterOperator.LESS_THAN_OR_EQUAL, value)

    def like(self, field: str, value: str) -> 'FilterQueryBuilder':
        """Pattern match (``~``)."""
        return self.filter(field, FilterOperator.LIKE, value)

    def not_like(self, field: str, value: str) -> 'FilterQueryBuilder':
        return self.filter(field, FilterOperator.NOT_LIKE, value)

    def contains(self, field: str, value: str) -> 'FilterQueryBuilder':
        return self.filter(field, FilterOperator.CONTAINS, value)

    def not_contains(self, field: str, value: str) -> 'FilterQueryBuilder':
        return self.filter(field, FilterOperator.NOT_CONTAINS, value)

    def in_(self, field: str, values: Iterable[str]) -> 'FilterQueryBuilder':
        """Value in list; the values are sent as one comma-joined string."""
        return self.filter(field, FilterOperator.IN, ",".join(values))

    def not_in(self, field: str, values: Iterable[str]) -> 'FilterQueryBuilder':
        return self.filter(field, FilterOperator.NOT_IN, ",".join(values))

    def is_null(self, field: str) -> 'FilterQueryBuilder':
        return self.equal(field, "null")

    def is_not_null(self, field: str) -> 'FilterQueryBuilder':
        return self.not_equal(field, "null")


class FilterBuilder:
    """
    Mutable collector for building a FilterQueryBuilder step by step.

    Methods mutate the collector and return it for chaining; ``build()``
    hands out the immutable query.
    """

    def __init__(self):
        self._query = FilterQueryBuilder()

    def condition(self, expression: FilterExpression) -> 'FilterBuilder':
        self._query = self._query.filter(expression)
        return self

    def filter(self, field: str, operator: OperatorLike, value: str) -> 'FilterBuilder':
        self._query = self._query.filter(field, operator, value)
        return self

    def equal(self, field: str, value: str) -> 'FilterBuilder':
        self._query = self._query.equal(field, value)
        return self

    def not_equal(self, field: str, value: str) -> 'FilterBuilder':
        self._query = self._query.not_equal(field, value)
        return self

    def greater_than(self, field: str, value: str) -> 'FilterBuilder':
        self._query = self._query.greater_than(field, value)
        return self

    def greater_than_or_equal(self, field: str, value: str) -> 'FilterBuilder':
        self._query = self._query.greater_than_or_equal(field, value)
        return self

    def less_than(self, field: str, value: str) -> 'FilterBuilder':
        self._query = self._query.less_than(field, value)
        return self

    def less_than_or_equal(self, field: str, value: str) -> 'FilterBuilder':
        self._query = self._query.less_than_or_equal(field, value)
        return self

    def like(self, field: str, value: str) -> 'FilterBuilder':
        self._query = self._query.like(field, value)
        return self

    def not_like(self, field: str, value: str) -> 'FilterBuilder':
        self._query = self._query.not_like(field, value)
        return self

    def contains(self, field: str, value: str) -> 'FilterBuilder':
        self._query = self._query.contains(field, value)
        return self

    def not_contains(self, field: str, value: str) -> 'FilterBuilder':
        self._query = self._query.not_contains(field, value)
        return self

    def in_(self, field: str, values: Iterable[str]) -> 'FilterBuilder':
        self._query = self._query.in_(field, values)
        return self

    def not_in(self, field: str, values: Iterable[str]) -> 'FilterBuilder':
        self._query = self._query.not_in(field, values)
        return self

    def is_null(self, field: str) -> 'FilterBuilder':
        self._query = self._query.is_null(field)
        return self

    def is_not_null(self, field: str) -> 'FilterBuilder':
        self._query = self._query.is_not_null(field)
        return self

    def build(self) -> FilterQueryBuilder:
        """Return the immutable query built so far."""
        return self._query
