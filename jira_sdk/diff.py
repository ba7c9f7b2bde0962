"""
Field-level change tracking.

`compute_changes` compares an issue against the snapshot it was loaded with
and returns the minimal `ChangeSet` to send:

- scalar fields are included only when their value changed;
- relation fields (versions, components) are resent in full whenever the set
  of names differs, since the API replaces them as a unit;
- labels are append-only: new labels become `add` operations, removed labels
  are not sent;
- custom fields are included when changed, keyed by their resolved field id.

An issue without a snapshot has never been saved, so its whole populated
state becomes the create payload.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from .models.entities import Issue, IssueSnapshot, NamedValueSet, freeze_field_value
from .models.types import SYSTEM_FIELDS, FieldKind, SystemField
from .schema import FieldSchema

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ChangeSet:
    """
    Field id → new value, plus labels to append.

    Values are domain values (`NamedValueSet`, `date`, ...); the mapper turns
    them into wire values.
    """

    fields: dict[str, Any] = field(default_factory=dict)
    label_additions: list[str] = field(default_factory=list)
    is_create: bool = False

    def __bool__(self) -> bool:
        return bool(self.fields or self.label_additions)

    def __contains__(self, field_id: object) -> bool:
        return field_id in self.fields

    def __iter__(self) -> Iterator[str]:
        return iter(self.fields)

    @property
    def field_ids(self) -> frozenset[str]:
        ids = set(self.fields)
        if self.label_additions:
            ids.add("labels")
        return frozenset(ids)


def _is_populated(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (NamedValueSet, list, tuple, set, frozenset, dict)):
        return len(value) > 0
    return True


def _create_changes(issue: Issue, schema: FieldSchema) -> ChangeSet:
    changes = ChangeSet(is_create=True)
    for system_field in SYSTEM_FIELDS:
        if not system_field.writable:
            continue
        value = getattr(issue, system_field.attr)
        if _is_populated(value):
            changes.fields[system_field.wire_id] = value
    for name, value in issue.custom_fields.items():
        if value is None:
            continue
        changes.fields[schema.resolve(name)] = value
    return changes


def _relation_changed(system_field: SystemField, issue: Issue, snapshot: IssueSnapshot) -> bool:
    current = freeze_field_value(system_field.kind, getattr(issue, system_field.attr))
    previous = snapshot.get(system_field)
    return (current or frozenset()) != (previous or frozenset())


def _label_additions(issue: Issue, snapshot: IssueSnapshot, labels_field: SystemField) -> list[str]:
    previous = tuple(snapshot.get(labels_field) or ())
    current = issue.labels or []
    additions: list[str] = []
    for label in current:
        if label not in previous and label not in additions:
            additions.append(label)
    removed = [label for label in previous if label not in current]
    if removed:
        logger.warning(
            "Ignoring removal of labels %s on %s: labels can only be added",
            removed,
            issue.key or "new issue",
        )
    return additions


def compute_changes(
    snapshot: IssueSnapshot | None, issue: Issue, schema: FieldSchema
) -> ChangeSet:
    """
    Diff `issue` against `snapshot`.

    Raises:
        UnknownFieldError: a changed custom field name cannot be resolved
    """
    if snapshot is None:
        return _create_changes(issue, schema)

    changes = ChangeSet()
    for system_field in SYSTEM_FIELDS:
        if not system_field.writable or system_field.create_only:
            continue
        if system_field.kind is FieldKind.LABELS:
            changes.label_additions = _label_additions(issue, snapshot, system_field)
            continue
        if system_field.kind is FieldKind.RELATION:
            if _relation_changed(system_field, issue, snapshot):
                current = getattr(issue, system_field.attr)
                changes.fields[system_field.wire_id] = (
                    current if current is not None else NamedValueSet()
                )
            continue
        value = getattr(issue, system_field.attr)
        if freeze_field_value(system_field.kind, value) != snapshot.get(system_field):
            changes.fields[system_field.wire_id] = value

    previous_custom = snapshot.custom_fields
    for name, value in issue.custom_fields.items():
        if name in previous_custom:
            if previous_custom[name] == value:
                continue
        elif value is None:
            continue
        changes.fields[schema.resolve(name)] = value
    return changes
