"""
Conversion between Jira's wire representation and `Issue`.

Reading flattens the nested `fields` object (`{"project": {"key": "TST"}}`
becomes `issue.project == "TST"`) and keys custom fields by display name.
Writing turns a `ChangeSet` back into the `{"fields": ..., "update": ...}`
body accepted by `POST /issue` and `PUT /issue/{key}`.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from .diff import ChangeSet
from .models.entities import Issue, NamedValue, NamedValueSet, to_utc
from .models.types import (
    SYSTEM_FIELDS,
    FieldKind,
    SystemField,
    custom_field_number,
    lookup_system_field,
)
from .schema import EMPTY_SCHEMA, FieldSchema

_JIRA_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S.000%z"


def _named_attribute(value: Any, *keys: str) -> Any:
    """Pick the first present attribute of a nested wire object."""
    if not isinstance(value, Mapping):
        return value
    for key in keys:
        candidate = value.get(key)
        if candidate is not None:
            return str(candidate) if isinstance(candidate, int) else candidate
    return None


def _parse_date(value: Any) -> Any:
    if isinstance(value, str) and value:
        return date.fromisoformat(value[:10])
    return value


class IssueMapper:
    """Maps issue records to `Issue` and change sets to request bodies."""

    def __init__(self, schema: FieldSchema = EMPTY_SCHEMA, *, user_key: str = "name"):
        self._schema = schema
        self._user_key = user_key

    @property
    def schema(self) -> FieldSchema:
        return self._schema

    # -------------------------------------------------------------------------
    # Wire -> Issue
    # -------------------------------------------------------------------------

    def _system_from_wire(self, system_field: SystemField, value: Any) -> Any:
        if value is None:
            return None
        if system_field.attr == "project":
            return _named_attribute(value, "key", "id")
        if system_field.attr == "issue_type":
            return _named_attribute(value, "id", "name")
        if system_field.kind is FieldKind.USER:
            return _named_attribute(value, self._user_key, "name", "accountId", "key")
        if system_field.kind is FieldKind.EXACT:
            return _named_attribute(value, "name", "id")
        if system_field.kind is FieldKind.DATE:
            return _parse_date(value)
        # Relation arrays and timestamps are coerced by the model's validators.
        return value

    def from_wire(self, record: Mapping[str, Any]) -> Issue:
        """
        Build an `Issue` from one record of `GET /issue/{key}` or `/search`.

        Fields the server omitted become `None`. Custom fields missing from
        the schema keep their raw `customfield_NNNNN` id as key. The returned
        issue's snapshot matches its state, so it has no pending changes.
        """
        wire_fields: Mapping[str, Any] = record.get("fields") or {}
        data: dict[str, Any] = {"id": record.get("id"), "key": record.get("key")}
        for system_field in SYSTEM_FIELDS:
            if system_field.attr == "key":
                continue
            data[system_field.attr] = self._system_from_wire(
                system_field, wire_fields.get(system_field.wire_id)
            )

        custom: dict[str, Any] = {}
        for field_id, value in wire_fields.items():
            if value is None or custom_field_number(field_id) is None:
                continue
            custom[self._schema.name_for(field_id) or field_id] = value
        data["custom_fields"] = custom

        issue = Issue.model_validate(data)
        issue.mark_synchronized()
        return issue

    # -------------------------------------------------------------------------
    # ChangeSet -> wire
    # -------------------------------------------------------------------------

    def _user_to_wire(self, value: Any) -> Any:
        return None if value is None else {self._user_key: value}

    def _system_to_wire(self, system_field: SystemField, value: Any) -> Any:
        if system_field.attr == "project":
            return {"key": value}
        if system_field.attr in ("issue_type", "priority"):
            if value is None:
                return None
            return {"id": value} if str(value).isdigit() else {"name": value}
        if system_field.kind is FieldKind.USER:
            return self._user_to_wire(value)
        if system_field.kind is FieldKind.DATE:
            return value.isoformat() if isinstance(value, date) else value
        if system_field.kind is FieldKind.RELATION:
            return [{"name": item.name} for item in NamedValueSet(value or ())]
        if system_field.kind is FieldKind.LABELS:
            return list(value or [])
        return value

    def _custom_to_wire(self, field_id: str, value: Any) -> Any:
        meta = self._schema.metadata(field_id)
        if meta is not None and meta.takes_options:
            if isinstance(value, str):
                value = NamedValue(value)
            elif isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
                value = NamedValueSet(value)
        elif meta is not None and meta.kind is FieldKind.USER and isinstance(value, str):
            return self._user_to_wire(value)
        if isinstance(value, datetime):
            return to_utc(value).strftime(_JIRA_DATETIME_FORMAT)
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, NamedValue):
            return {"value": value.name}
        if isinstance(value, NamedValueSet):
            return [{"value": item.name} for item in value]
        return value

    def to_wire(self, changes: ChangeSet) -> dict[str, Any]:
        """Render a change set as a create/edit request body."""
        fields: dict[str, Any] = {}
        for field_id, value in changes.fields.items():
            system_field = (
                None if custom_field_number(field_id) is not None else lookup_system_field(field_id)
            )
            if system_field is not None:
                fields[system_field.wire_id] = self._system_to_wire(system_field, value)
            else:
                fields[field_id] = self._custom_to_wire(field_id, value)

        body: dict[str, Any] = {"fields": fields}
        if changes.label_additions:
            if changes.is_create:
                labels = fields.setdefault("labels", [])
                labels.extend(label for label in changes.label_additions if label not in labels)
            else:
                body["update"] = {"labels": [{"add": label} for label in changes.label_additions]}
        return body
