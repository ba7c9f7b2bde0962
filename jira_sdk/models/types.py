"""
Type system for the Jira SDK.

ID types, the JQL operator set and the catalog of system fields the SDK knows
how to query, map and diff.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NewType

# =============================================================================
# ID types
# =============================================================================

IssueId = NewType("IssueId", str)
IssueKey = NewType("IssueKey", str)
FieldId = NewType("FieldId", str)
ProjectKey = NewType("ProjectKey", str)

DEFAULT_API_VERSION = "2"
CUSTOM_FIELD_PREFIX = "customfield_"


def custom_field_number(field_id: str) -> str | None:
    """Return the numeric part of a `customfield_NNNNN` id, or None for system ids."""
    if not field_id.startswith(CUSTOM_FIELD_PREFIX):
        return None
    number = field_id[len(CUSTOM_FIELD_PREFIX) :]
    return number if number.isdigit() else None


# =============================================================================
# Operators
# =============================================================================


class Operator(Enum):
    """JQL comparison operators."""

    EQ = "="
    NE = "!="
    GT = ">"
    GE = ">="
    LT = "<"
    LE = "<="
    CONTAINS = "~"
    NOT_CONTAINS = "!~"
    IN = "in"
    NOT_IN = "not in"
    IS_EMPTY = "is EMPTY"
    IS_NOT_EMPTY = "is not EMPTY"


ORDERING_OPERATORS = frozenset({Operator.GT, Operator.GE, Operator.LT, Operator.LE})
LIST_OPERATORS = frozenset({Operator.IN, Operator.NOT_IN})
EMPTINESS_OPERATORS = frozenset({Operator.IS_EMPTY, Operator.IS_NOT_EMPTY})


class FieldKind(Enum):
    """How a field is queried, compared and serialized."""

    KEY = "key"
    TEXT = "text"  # free text, JQL only matches it with ~
    EXACT = "exact"  # single named value (project, type, priority, ...)
    USER = "user"
    NUMBER = "number"
    DATE = "date"
    DATETIME = "datetime"
    RELATION = "relation"  # set of named values (versions, components)
    LABELS = "labels"
    MULTI = "multi"  # custom array field
    ANY = "any"  # custom field of unknown/opaque schema

    @property
    def is_multi_valued(self) -> bool:
        return self in (FieldKind.RELATION, FieldKind.LABELS, FieldKind.MULTI)


_EMPTY_CHECKS = EMPTINESS_OPERATORS

ALLOWED_OPERATORS: dict[FieldKind, frozenset[Operator]] = {
    FieldKind.KEY: frozenset({Operator.EQ, Operator.NE, *LIST_OPERATORS, *ORDERING_OPERATORS}),
    FieldKind.TEXT: frozenset(
        {Operator.EQ, Operator.NE, Operator.CONTAINS, Operator.NOT_CONTAINS, *_EMPTY_CHECKS}
    ),
    FieldKind.EXACT: frozenset({Operator.EQ, Operator.NE, *LIST_OPERATORS, *_EMPTY_CHECKS}),
    FieldKind.USER: frozenset({Operator.EQ, Operator.NE, *LIST_OPERATORS, *_EMPTY_CHECKS}),
    FieldKind.NUMBER: frozenset(
        {Operator.EQ, Operator.NE, *LIST_OPERATORS, *ORDERING_OPERATORS, *_EMPTY_CHECKS}
    ),
    FieldKind.DATE: frozenset({Operator.EQ, Operator.NE, *ORDERING_OPERATORS, *_EMPTY_CHECKS}),
    FieldKind.DATETIME: frozenset(
        {Operator.EQ, Operator.NE, *ORDERING_OPERATORS, *_EMPTY_CHECKS}
    ),
    FieldKind.RELATION: frozenset({Operator.EQ, Operator.NE, *LIST_OPERATORS, *_EMPTY_CHECKS}),
    FieldKind.LABELS: frozenset({Operator.EQ, Operator.NE, *LIST_OPERATORS, *_EMPTY_CHECKS}),
    FieldKind.MULTI: frozenset({Operator.EQ, Operator.NE, *LIST_OPERATORS, *_EMPTY_CHECKS}),
    FieldKind.ANY: frozenset(
        {
            Operator.EQ,
            Operator.NE,
            Operator.CONTAINS,
            Operator.NOT_CONTAINS,
            *LIST_OPERATORS,
            *_EMPTY_CHECKS,
        }
    ),
}


# =============================================================================
# System field catalog
# =============================================================================


@dataclass(frozen=True, slots=True)
class SystemField:
    """
    A built-in Jira field.

    Attributes:
        attr: Attribute name on `Issue`
        wire_id: Key under the issue's `fields` object
        jql_name: Name used in JQL clauses
        kind: Query/comparison semantics
        writable: Whether the field may appear in an update payload
        create_only: Writable on create but never on update
    """

    attr: str
    wire_id: str
    jql_name: str
    kind: FieldKind
    writable: bool = True
    create_only: bool = False


SYSTEM_FIELDS: tuple[SystemField, ...] = (
    SystemField("key", "key", "key", FieldKind.KEY, writable=False),
    SystemField("project", "project", "project", FieldKind.EXACT, create_only=True),
    SystemField("issue_type", "issuetype", "issuetype", FieldKind.EXACT),
    SystemField("summary", "summary", "summary", FieldKind.TEXT),
    SystemField("description", "description", "description", FieldKind.TEXT),
    SystemField("environment", "environment", "environment", FieldKind.TEXT),
    SystemField("assignee", "assignee", "assignee", FieldKind.USER),
    SystemField("reporter", "reporter", "reporter", FieldKind.USER),
    SystemField("priority", "priority", "priority", FieldKind.EXACT),
    SystemField("status", "status", "status", FieldKind.EXACT, writable=False),
    SystemField("resolution", "resolution", "resolution", FieldKind.EXACT, writable=False),
    SystemField("due_date", "duedate", "due", FieldKind.DATE),
    SystemField("created", "created", "created", FieldKind.DATETIME, writable=False),
    SystemField("updated", "updated", "updated", FieldKind.DATETIME, writable=False),
    SystemField("affects_versions", "versions", "affectedVersion", FieldKind.RELATION),
    SystemField("fix_versions", "fixVersions", "fixVersion", FieldKind.RELATION),
    SystemField("components", "components", "component", FieldKind.RELATION),
    SystemField("labels", "labels", "labels", FieldKind.LABELS),
)

RELATION_FIELDS: tuple[SystemField, ...] = tuple(
    f for f in SYSTEM_FIELDS if f.kind is FieldKind.RELATION
)

_SYSTEM_FIELD_LOOKUP: dict[str, SystemField] = {}
for _field in SYSTEM_FIELDS:
    for _alias in (_field.attr, _field.wire_id, _field.jql_name):
        _SYSTEM_FIELD_LOOKUP.setdefault(_alias.lower(), _field)
# Common JQL aliases
_SYSTEM_FIELD_LOOKUP.setdefault("type", _SYSTEM_FIELD_LOOKUP["issuetype"])
_SYSTEM_FIELD_LOOKUP.setdefault("duedate", _SYSTEM_FIELD_LOOKUP["due_date"])
_SYSTEM_FIELD_LOOKUP.setdefault("version", _SYSTEM_FIELD_LOOKUP["affects_versions"])
del _field, _alias


def lookup_system_field(name: str) -> SystemField | None:
    """Find a system field by attribute name, wire id or JQL name (case-insensitive)."""
    return _SYSTEM_FIELD_LOOKUP.get(name.lower())


# Fields requested from the search endpoint in addition to custom fields.
SEARCH_FIELDS: tuple[str, ...] = tuple(f.wire_id for f in SYSTEM_FIELDS if f.attr != "key")
