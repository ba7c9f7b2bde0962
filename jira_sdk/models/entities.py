"""
Core entity models: issues, their snapshots and field metadata.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Iterator, Mapping, MutableSet
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from types import MappingProxyType
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    GetCoreSchemaHandler,
    PrivateAttr,
    field_validator,
)
from pydantic_core import core_schema

from .types import SYSTEM_FIELDS, FieldId, FieldKind, IssueId, IssueKey, SystemField


class JiraModel(BaseModel):
    """Base model for all Jira SDK models."""

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        validate_assignment=True,
    )


def parse_datetime(value: str) -> datetime:
    """
    Parse a Jira timestamp into a UTC-aware datetime.

    Jira emits offsets without a colon (`2011-10-10T10:00:00.000+0000`), which
    `datetime.fromisoformat` only accepts on newer interpreters.
    """
    for fmt in ("%Y-%m-%dT%H:%M:%S.%f%z", "%Y-%m-%dT%H:%M:%S%z"):
        try:
            parsed = datetime.strptime(value, fmt)
            break
        except ValueError:
            continue
    else:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# =============================================================================
# Relation values
# =============================================================================


@dataclass(frozen=True, slots=True)
class NamedValue:
    """A related entity (version, component) identified by name; `id` is informational."""

    name: str
    id: str | None = field(default=None, compare=False)


class NamedValueSet(MutableSet[NamedValue]):
    """
    Insertion-ordered set of named values, compared by name.

    Accepts plain names wherever a `NamedValue` is expected:

        issue.fix_versions.add("2.0")
        "2.0" in issue.fix_versions
    """

    __slots__ = ("_items",)

    def __init__(self, values: Iterable[NamedValue | str] = ()) -> None:
        self._items: dict[str, NamedValue] = {}
        for value in values:
            self.add(value)

    @staticmethod
    def _coerce(value: NamedValue | str) -> NamedValue:
        if isinstance(value, NamedValue):
            return value
        if isinstance(value, str):
            return NamedValue(value)
        raise TypeError(f"Expected NamedValue or str, got {type(value).__name__}")

    def __contains__(self, value: object) -> bool:
        if isinstance(value, NamedValue):
            return value.name in self._items
        if isinstance(value, str):
            return value in self._items
        return False

    def __iter__(self) -> Iterator[NamedValue]:
        return iter(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def add(self, value: NamedValue | str) -> None:
        item = self._coerce(value)
        # Keep the first-seen entry so server-provided ids survive re-adds by name.
        self._items.setdefault(item.name, item)

    def discard(self, value: NamedValue | str) -> None:
        self._items.pop(self._coerce(value).name, None)

    def names(self) -> frozenset[str]:
        return frozenset(self._items)

    def __repr__(self) -> str:
        return f"NamedValueSet({list(self._items)!r})"

    @classmethod
    def __get_pydantic_core_schema__(
        cls, _source_type: Any, _handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_before_validator_function(
            _coerce_named_set,
            core_schema.is_instance_schema(cls),
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda value: [item.name for item in value]
            ),
        )


def _coerce_named_set(value: Any) -> Any:
    if value is None or isinstance(value, NamedValueSet):
        return value
    if isinstance(value, (str, NamedValue)):
        return NamedValueSet([value])
    if isinstance(value, Iterable):
        items: list[NamedValue | str] = []
        for item in value:
            if isinstance(item, Mapping):
                raw_id = item.get("id")
                items.append(
                    NamedValue(str(item["name"]), None if raw_id is None else str(raw_id))
                )
            else:
                items.append(item)
        return NamedValueSet(items)
    return value


# =============================================================================
# Snapshot
# =============================================================================


def freeze_field_value(kind: FieldKind, value: Any) -> Any:
    """Normalize a field value into its immutable, comparable form."""
    if value is None:
        return None
    if kind is FieldKind.RELATION:
        named = value if isinstance(value, NamedValueSet) else NamedValueSet(value)
        return named.names()
    if kind is FieldKind.LABELS:
        return tuple(value)
    if kind is FieldKind.DATETIME and isinstance(value, datetime):
        return to_utc(value)
    return value


@dataclass(frozen=True, slots=True)
class IssueSnapshot:
    """
    Last value-set known to match the server for one issue.

    `fields` is keyed by system field wire id, `custom_fields` by display name.
    Snapshots are replaced wholesale, never edited.
    """

    fields: Mapping[str, Any]
    custom_fields: Mapping[str, Any]

    @classmethod
    def capture(cls, issue: Issue) -> IssueSnapshot:
        captured: dict[str, Any] = {}
        for system_field in SYSTEM_FIELDS:
            captured[system_field.wire_id] = freeze_field_value(
                system_field.kind, getattr(issue, system_field.attr)
            )
        return cls(
            fields=MappingProxyType(captured),
            custom_fields=MappingProxyType(copy.deepcopy(dict(issue.custom_fields))),
        )

    def get(self, system_field: SystemField) -> Any:
        return self.fields.get(system_field.wire_id)

    def with_fields(self, **fields: Any) -> IssueSnapshot:
        """Copy of this snapshot with some system fields (by wire id) replaced."""
        return IssueSnapshot(
            fields=MappingProxyType({**self.fields, **fields}),
            custom_fields=self.custom_fields,
        )


# =============================================================================
# Issue
# =============================================================================


class Issue(JiraModel):
    """
    A Jira issue: current in-memory state plus the snapshot it was loaded with.

    Custom fields are keyed by display name and can be accessed by indexing:

        issue["Custom Text Field"] = "My new value"

    Relation fields are `None` when the server omitted them, and an empty
    `NamedValueSet` when present but empty.
    """

    id: IssueId | None = None
    key: IssueKey | None = None
    project: str | None = None
    issue_type: str | None = Field(None, alias="type")
    summary: str | None = None
    description: str | None = None
    environment: str | None = None
    assignee: str | None = None
    reporter: str | None = None
    priority: str | None = None
    status: str | None = None
    resolution: str | None = None
    due_date: date | None = None
    created: datetime | None = None
    updated: datetime | None = None
    affects_versions: NamedValueSet | None = Field(default_factory=NamedValueSet)
    fix_versions: NamedValueSet | None = Field(default_factory=NamedValueSet)
    components: NamedValueSet | None = Field(default_factory=NamedValueSet)
    labels: list[str] | None = Field(default_factory=list)
    custom_fields: dict[str, Any] = Field(default_factory=dict)

    _snapshot: IssueSnapshot | None = PrivateAttr(default=None)

    @field_validator("created", "updated", mode="before")
    @classmethod
    def _validate_timestamp(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_datetime(value)
        if isinstance(value, datetime):
            return to_utc(value)
        return value

    def __getitem__(self, name: str) -> Any:
        return self.custom_fields.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.custom_fields[name] = value

    @property
    def snapshot(self) -> IssueSnapshot | None:
        """Server state this issue was loaded with (None for unsaved issues)."""
        return self._snapshot

    @property
    def is_new(self) -> bool:
        return self._snapshot is None

    def add_labels(self, *labels: str) -> None:
        """Append labels; labels already present are ignored."""
        current = self.labels if self.labels is not None else []
        for label in labels:
            if label not in current:
                current.append(label)
        self.labels = current

    def mark_synchronized(self) -> None:
        """Capture the current state as the server-confirmed snapshot."""
        self._snapshot = IssueSnapshot.capture(self)

    def mark_created(self, issue_id: IssueId, key: IssueKey) -> None:
        """
        Record the id and key the server assigned, snapshotting the state that was sent.

        A later save then diffs against this state instead of creating again.
        """
        self.id = issue_id
        self.key = key
        self.mark_synchronized()

    def confirm_labels(self, *labels: str) -> None:
        """Record labels as stored on the server without touching other pending changes."""
        self.add_labels(*labels)
        if self._snapshot is None:
            return
        saved = list(self._snapshot.fields.get("labels") or ())
        saved.extend(label for label in labels if label not in saved)
        self._snapshot = self._snapshot.with_fields(labels=tuple(saved))

    def adopt(self, server_issue: Issue) -> None:
        """Replace this issue's state and snapshot with a server representation."""
        self.__dict__.update(
            {name: getattr(server_issue, name) for name in type(self).model_fields}
        )
        self._snapshot = server_issue._snapshot


# =============================================================================
# Field metadata
# =============================================================================


class FieldTypeInfo(JiraModel):
    type: str | None = None
    items: str | None = None
    system: str | None = None
    custom: str | None = None
    custom_id: int | None = Field(None, alias="customId")


# Custom field types (last segment of `schema.custom`) written as `{"value": ...}`.
_OPTION_FIELD_TYPES = frozenset({"select", "radiobuttons", "multiselect", "multicheckboxes"})


class FieldMetadata(JiraModel):
    """Entry of `GET /field`."""

    id: FieldId
    name: str
    custom: bool = False
    navigable: bool | None = None
    searchable: bool | None = None
    clause_names: list[str] = Field(default_factory=list, alias="clauseNames")
    schema_: FieldTypeInfo | None = Field(None, alias="schema")

    @property
    def takes_options(self) -> bool:
        custom_type = self.schema_.custom if self.schema_ is not None else None
        return custom_type is not None and custom_type.rsplit(":", 1)[-1] in _OPTION_FIELD_TYPES

    @property
    def kind(self) -> FieldKind:
        schema_type = self.schema_.type if self.schema_ is not None else None
        if schema_type == "number":
            return FieldKind.NUMBER
        if schema_type == "date":
            return FieldKind.DATE
        if schema_type == "datetime":
            return FieldKind.DATETIME
        if schema_type == "array":
            return FieldKind.MULTI
        if schema_type == "user":
            return FieldKind.USER
        return FieldKind.ANY
