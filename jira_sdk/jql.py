"""
Predicate builder and JQL translator.

Provides a type-safe, Pythonic way to build issue filters and compile them to
JQL. The translator validates every clause against the field catalog and the
custom-field schema, and quotes and escapes every literal, so an invalid query
fails here and never reaches the server.

Example:
    from jira_sdk.jql import Q

    predicate = (
        Q.field("project").equals("TST")
        & Q.field("summary").contains("crash")
        & Q.field("affects_versions").contains_all("1.0", "2.0")
        & Q.custom("Custom Text Field").equals("My new value")
    )
    issues = client.issues.query(predicate, limit=10)

    # Raw JQL escape hatch (caller owns quoting)
    issues = client.issues.query(Q.raw('status = "In Progress" ORDER BY key'))
"""

from __future__ import annotations

from abc import ABC
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any

from .exceptions import UnknownFieldError, UnsupportedQueryError
from .models.entities import NamedValue
from .models.types import (
    ALLOWED_OPERATORS,
    EMPTINESS_OPERATORS,
    LIST_OPERATORS,
    FieldKind,
    Operator,
    custom_field_number,
    lookup_system_field,
)
from .schema import EMPTY_SCHEMA, FieldSchema


@dataclass(frozen=True, slots=True)
class RawToken:
    """
    A raw token inserted into a clause without quoting.

    Used for JQL functions and relative dates such as `now()`, `currentUser()`
    or `-7d`. The caller is responsible for its syntax.
    """

    token: str


@dataclass(frozen=True, slots=True)
class FieldRef:
    """Reference to a system field (attribute, wire or JQL name) or a custom field."""

    name: str
    custom: bool = False


# =============================================================================
# Predicate AST
# =============================================================================


class Predicate(ABC):
    """Base class for predicate expressions."""

    __slots__ = ()

    def __and__(self, other: Predicate) -> Predicate:
        """Combine two predicates with `&`."""
        return And(self, other)

    def __or__(self, other: Predicate) -> Predicate:
        """Combine two predicates with `|`."""
        return Or(self, other)

    def __invert__(self) -> Predicate:
        """Negate the predicate with `~`."""
        return Not(self)

    def to_jql(self, schema: FieldSchema | None = None) -> str:
        return JqlTranslator(schema).translate(self)


@dataclass(frozen=True, slots=True)
class Comparison(Predicate):
    field: FieldRef
    operator: Operator
    value: Any = None


@dataclass(frozen=True, slots=True)
class MembershipAll(Predicate):
    """The multi-valued field contains every one of `values`."""

    field: FieldRef
    values: tuple[Any, ...]


@dataclass(frozen=True, slots=True)
class And(Predicate):
    left: Predicate
    right: Predicate


@dataclass(frozen=True, slots=True)
class Or(Predicate):
    left: Predicate
    right: Predicate


@dataclass(frozen=True, slots=True)
class Not(Predicate):
    expr: Predicate


@dataclass(frozen=True, slots=True)
class RawJql(Predicate):
    """A raw JQL string (escape hatch for power users)."""

    jql: str


# =============================================================================
# Builder
# =============================================================================


class FieldBuilder:
    """Builder for field-based predicates."""

    def __init__(self, ref: FieldRef):
        self._ref = ref

    def _compare(self, operator: Operator, value: Any = None) -> Comparison:
        return Comparison(self._ref, operator, value)

    def equals(self, value: Any) -> Comparison:
        """Field equals value. On multi-valued fields: the set contains value."""
        return self._compare(Operator.EQ, value)

    def not_equals(self, value: Any) -> Comparison:
        return self._compare(Operator.NE, value)

    def contains(self, value: str) -> Comparison:
        """Text search (`~`)."""
        return self._compare(Operator.CONTAINS, value)

    def not_contains(self, value: str) -> Comparison:
        return self._compare(Operator.NOT_CONTAINS, value)

    def greater_than(self, value: Any) -> Comparison:
        return self._compare(Operator.GT, value)

    def greater_than_or_equal(self, value: Any) -> Comparison:
        return self._compare(Operator.GE, value)

    def less_than(self, value: Any) -> Comparison:
        return self._compare(Operator.LT, value)

    def less_than_or_equal(self, value: Any) -> Comparison:
        return self._compare(Operator.LE, value)

    def is_empty(self) -> Comparison:
        return self._compare(Operator.IS_EMPTY)

    def is_not_empty(self) -> Comparison:
        return self._compare(Operator.IS_NOT_EMPTY)

    def in_list(self, values: list[Any] | tuple[Any, ...]) -> Comparison:
        """Field value is one of `values` (JQL `in`)."""
        if not values:
            raise ValueError("in_list() requires at least one value")
        return self._compare(Operator.IN, tuple(values))

    def not_in_list(self, values: list[Any] | tuple[Any, ...]) -> Comparison:
        if not values:
            raise ValueError("not_in_list() requires at least one value")
        return self._compare(Operator.NOT_IN, tuple(values))

    def contains_all(self, *values: Any) -> MembershipAll:
        """Multi-valued field contains every one of `values`."""
        if not values:
            raise ValueError("contains_all() requires at least one value")
        return MembershipAll(self._ref, tuple(values))


class Q:
    """
    Factory for building predicates.

    Example:
        Q.field("summary").contains("crash")
        Q.field("fix_versions").equals("2.0") & Q.field("fix_versions").equals("3.0")
        Q.custom("Story Points").greater_than(3)
        ~Q.field("status").equals("Closed")
    """

    @staticmethod
    def field(name: str) -> FieldBuilder:
        """Start a predicate on a system field; unknown names fall back to custom fields."""
        return FieldBuilder(FieldRef(name))

    @staticmethod
    def custom(name: str) -> FieldBuilder:
        """Start a predicate on a custom field by display name."""
        return FieldBuilder(FieldRef(name, custom=True))

    @staticmethod
    def raw(jql: str) -> RawJql:
        """
        Create a raw JQL predicate (escape hatch).

        The string is passed to the server without modification.
        """
        return RawJql(jql)

    @staticmethod
    def and_(*predicates: Predicate) -> Predicate:
        if not predicates:
            raise ValueError("and_() requires at least one predicate")
        result = predicates[0]
        for predicate in predicates[1:]:
            result = result & predicate
        return result

    @staticmethod
    def or_(*predicates: Predicate) -> Predicate:
        if not predicates:
            raise ValueError("or_() requires at least one predicate")
        result = predicates[0]
        for predicate in predicates[1:]:
            result = result | predicate
        return result


# =============================================================================
# Literals
# =============================================================================


def escape_string(value: str) -> str:
    """
    Escape a string value for use inside a double-quoted JQL literal.

    Handles:
    - Backslashes (must be doubled)
    - Double quotes (must be escaped)
    - Newlines, tabs and carriage returns (escaped as literals)
    - NUL bytes (removed)
    """
    # Order matters: escape backslashes first
    result = value.replace("\\", "\\\\")
    result = result.replace('"', '\\"')
    result = result.replace("\x00", "")
    result = result.replace("\n", "\\n")
    result = result.replace("\t", "\\t")
    result = result.replace("\r", "\\r")
    return result


def _quote(text: str) -> str:
    return f'"{escape_string(text)}"'


def _format_temporal(value: date, field_name: str) -> str:
    # datetime is a subclass of date
    if isinstance(value, datetime):
        if value.tzinfo is None or value.utcoffset() is None:
            raise UnsupportedQueryError(
                f"Naive datetime {value.isoformat()} for field {field_name!r} is ambiguous; "
                "pass a timezone-aware datetime"
            )
        return _quote(value.astimezone(timezone.utc).strftime("%Y/%m/%d %H:%M"))
    return _quote(value.strftime("%Y/%m/%d"))


def format_literal(value: Any, kind: FieldKind, field_name: str) -> str:
    """Render a Python value as a JQL literal for a field of `kind`."""
    if isinstance(value, RawToken):
        return value.token
    if value is None:
        raise UnsupportedQueryError(
            f"None is not a valid literal for {field_name!r}; use is_empty()/is_not_empty()"
        )
    if isinstance(value, bool):
        raise UnsupportedQueryError(f"Boolean literal for {field_name!r} is not supported by JQL")

    if kind in (FieldKind.DATE, FieldKind.DATETIME):
        if isinstance(value, date):
            return _format_temporal(value, field_name)
        raise UnsupportedQueryError(
            f"Field {field_name!r} requires a date or datetime, got {type(value).__name__}"
        )
    if kind is FieldKind.NUMBER:
        if isinstance(value, (int, float)):
            return str(value)
        raise UnsupportedQueryError(
            f"Field {field_name!r} requires a number, got {type(value).__name__}"
        )
    if isinstance(value, date):
        if kind is FieldKind.ANY:
            return _format_temporal(value, field_name)
        raise UnsupportedQueryError(f"Field {field_name!r} does not accept date values")
    if isinstance(value, NamedValue):
        return _quote(value.name)
    if isinstance(value, (str, int, float)):
        return _quote(str(value))
    raise UnsupportedQueryError(
        f"Unsupported literal type {type(value).__name__} for field {field_name!r}"
    )


# =============================================================================
# Translator
# =============================================================================


@dataclass(frozen=True, slots=True)
class _ResolvedField:
    display: str
    jql: str
    kind: FieldKind


class JqlTranslator:
    """
    Compiles a `Predicate` into a JQL string.

    Translation is pure: custom-field names are resolved against the supplied
    `FieldSchema`, which the caller loads beforehand.

    Conjunctions are flattened into `a AND b AND c`. Equality on a
    multi-valued field (versions, components, labels) is a membership test, so
    several equality clauses on the same field mean "contains all of these";
    repeated identical membership clauses are emitted once.
    """

    def __init__(self, schema: FieldSchema | None = None):
        self._schema = schema if schema is not None else EMPTY_SCHEMA

    def translate(self, expr: Predicate) -> str:
        """
        Raises:
            UnsupportedQueryError: the predicate cannot be expressed in JQL
        """
        if isinstance(expr, RawJql):
            return expr.jql.strip()
        return self._expression(expr)

    # -------------------------------------------------------------------------
    # Structure
    # -------------------------------------------------------------------------

    def _expression(self, expr: Predicate) -> str:
        if isinstance(expr, Or):
            return self._disjunction(expr)
        return self._conjunction(expr)

    def _conjunction(self, expr: Predicate) -> str:
        clauses: list[str] = []
        seen_membership: set[str] = set()
        for conjunct in _flatten(expr, And):
            if isinstance(conjunct, Or):
                clauses.append(f"({self._disjunction(conjunct)})")
                continue
            for clause, is_membership in self._clauses(conjunct):
                if is_membership:
                    if clause in seen_membership:
                        continue
                    seen_membership.add(clause)
                clauses.append(clause)
        return " AND ".join(clauses)

    def _disjunction(self, expr: Predicate) -> str:
        parts: list[str] = []
        for disjunct in _flatten(expr, Or):
            text = self._conjunction(disjunct)
            if isinstance(disjunct, (And, MembershipAll)) and " AND " in text:
                text = f"({text})"
            parts.append(text)
        return " OR ".join(parts)

    def _clauses(self, expr: Predicate) -> Iterator[tuple[str, bool]]:
        """Yield `(clause, is_membership)` pairs for a non-And, non-Or node."""
        if isinstance(expr, Comparison):
            yield self._comparison(expr)
        elif isinstance(expr, MembershipAll):
            yield from self._membership_all(expr)
        elif isinstance(expr, Not):
            yield f"NOT ({self._expression(expr.expr)})", False
        elif isinstance(expr, RawJql):
            yield f"({expr.jql.strip()})", False
        else:
            raise UnsupportedQueryError(f"Unsupported predicate node: {type(expr).__name__}")

    # -------------------------------------------------------------------------
    # Leaves
    # -------------------------------------------------------------------------

    def _resolve(self, ref: FieldRef) -> _ResolvedField:
        if not ref.custom:
            system_field = lookup_system_field(ref.name)
            if system_field is not None:
                return _ResolvedField(ref.name, system_field.jql_name, system_field.kind)
        try:
            field_id = self._schema.resolve(ref.name)
        except UnknownFieldError as e:
            raise UnsupportedQueryError(
                f"Unknown field {ref.name!r}: not a system field and not a known custom field"
            ) from e
        number = custom_field_number(field_id)
        jql_name = f"cf[{number}]" if number is not None else _quote(ref.name)
        return _ResolvedField(ref.name, jql_name, self._schema.kind_for(field_id))

    def _comparison(self, node: Comparison) -> tuple[str, bool]:
        target = self._resolve(node.field)
        operator = node.operator
        if operator not in ALLOWED_OPERATORS[target.kind]:
            raise UnsupportedQueryError(
                f"Operator {operator.value!r} is not supported for field {target.display!r} "
                f"({target.kind.value})"
            )
        if operator in EMPTINESS_OPERATORS:
            return f"{target.jql} {operator.value}", False
        if operator in LIST_OPERATORS:
            values = node.value if isinstance(node.value, (tuple, list)) else (node.value,)
            if not values:
                raise UnsupportedQueryError(f"Empty value list for field {target.display!r}")
            rendered = ", ".join(format_literal(v, target.kind, target.display) for v in values)
            return f"{target.jql} {operator.value} ({rendered})", False
        if target.kind is FieldKind.TEXT:
            # JQL only matches free-text fields with ~ / !~
            operator = {Operator.EQ: Operator.CONTAINS, Operator.NE: Operator.NOT_CONTAINS}.get(
                operator, operator
            )
        literal = format_literal(node.value, target.kind, target.display)
        is_membership = operator is Operator.EQ and target.kind.is_multi_valued
        return f"{target.jql} {operator.value} {literal}", is_membership

    def _membership_all(self, node: MembershipAll) -> Iterator[tuple[str, bool]]:
        target = self._resolve(node.field)
        if not target.kind.is_multi_valued:
            raise UnsupportedQueryError(
                f"contains_all() requires a multi-valued field; {target.display!r} is "
                f"{target.kind.value}"
            )
        if not node.values:
            raise UnsupportedQueryError(f"Empty value list for field {target.display!r}")
        for value in node.values:
            literal = format_literal(value, target.kind, target.display)
            yield f"{target.jql} = {literal}", True


def _flatten(expr: Predicate, node_type: type[And] | type[Or]) -> Iterator[Predicate]:
    if isinstance(expr, node_type):
        yield from _flatten(expr.left, node_type)
        yield from _flatten(expr.right, node_type)
    else:
        yield expr


def field_refs(expr: Predicate) -> Iterator[FieldRef]:
    """Every field referenced by `expr`, in tree order."""
    if isinstance(expr, (Comparison, MembershipAll)):
        yield expr.field
    elif isinstance(expr, (And, Or)):
        yield from field_refs(expr.left)
        yield from field_refs(expr.right)
    elif isinstance(expr, Not):
        yield from field_refs(expr.expr)


def requires_schema(expr: Predicate) -> bool:
    """True when translating `expr` has to look a field up by custom-field name."""
    return any(ref.custom or lookup_system_field(ref.name) is None for ref in field_refs(expr))


def translate(expr: Predicate, schema: FieldSchema | None = None) -> str:
    """Translate a predicate to JQL using `schema` for custom-field names."""
    return JqlTranslator(schema).translate(expr)


# Shorthand alias for convenience
F = Q
