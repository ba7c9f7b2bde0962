"""
Custom-field schema resolution.

Jira identifies custom fields by opaque ids (`customfield_10000`) while users
know them by display name ("Custom Text Field"). `FieldSchema` is the
immutable name/id mapping built from `GET /field`; the resolvers load it once
per client and share it read-only afterwards.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .cancellation import CancellationToken
from .exceptions import UnknownFieldError
from .models.entities import FieldMetadata
from .models.types import FieldId, FieldKind

if TYPE_CHECKING:
    from .clients.http import AsyncHTTPClient, HTTPClient

logger = logging.getLogger(__name__)


class FieldSchema:
    """Immutable display-name → field-id mapping for custom fields."""

    __slots__ = ("_by_id", "_by_name", "_by_folded_name")

    def __init__(self, fields: Iterable[FieldMetadata] = ()) -> None:
        by_id: dict[str, FieldMetadata] = {}
        by_name: dict[str, FieldId] = {}
        folded: dict[str, FieldId] = {}
        for meta in fields:
            if not meta.custom:
                continue
            by_id[meta.id] = meta
            if meta.name in by_name:
                logger.warning(
                    "Duplicate custom field name %r (%s, %s); keeping %s",
                    meta.name,
                    by_name[meta.name],
                    meta.id,
                    by_name[meta.name],
                )
                continue
            by_name[meta.name] = meta.id
            folded.setdefault(meta.name.casefold(), meta.id)
        self._by_id: Mapping[str, FieldMetadata] = MappingProxyType(by_id)
        self._by_name: Mapping[str, FieldId] = MappingProxyType(by_name)
        self._by_folded_name: Mapping[str, FieldId] = MappingProxyType(folded)

    @classmethod
    def from_wire(cls, data: Any) -> FieldSchema:
        """Build from the raw `GET /field` response (a JSON array)."""
        items = data if isinstance(data, list) else []
        return cls(FieldMetadata.model_validate(item) for item in items)

    def resolve(self, name: str) -> FieldId:
        """
        Resolve a custom-field display name to its id.

        Exact names win; otherwise the match is case-insensitive, as in JQL. A
        known `customfield_NNNNN` id resolves to itself.

        Raises:
            UnknownFieldError: no custom field has this name
        """
        field_id = self._by_name.get(name)
        if field_id is None:
            field_id = self._by_folded_name.get(name.casefold())
        if field_id is None and name in self._by_id:
            field_id = FieldId(name)
        if field_id is None:
            raise UnknownFieldError(name)
        return field_id

    def name_for(self, field_id: str) -> str | None:
        meta = self._by_id.get(field_id)
        return meta.name if meta is not None else None

    def metadata(self, field_id: str) -> FieldMetadata | None:
        return self._by_id.get(field_id)

    def kind_for(self, field_id: str) -> FieldKind:
        meta = self._by_id.get(field_id)
        return meta.kind if meta is not None else FieldKind.ANY

    @property
    def field_ids(self) -> tuple[FieldId, ...]:
        return tuple(FieldId(field_id) for field_id in self._by_id)

    def __iter__(self) -> Iterator[FieldMetadata]:
        return iter(self._by_id.values())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and (
            name in self._by_name or name.casefold() in self._by_folded_name
        )

    def __len__(self) -> int:
        return len(self._by_id)

    def __repr__(self) -> str:
        return f"FieldSchema({dict(self._by_name)!r})"


EMPTY_SCHEMA = FieldSchema()


class SchemaResolver:
    """
    Lazily loads and caches the custom-field schema (blocking client).

    Concurrent first use from several threads results in a single
    `GET /field` request.
    """

    def __init__(self, client: HTTPClient):
        self._client = client
        self._schema: FieldSchema | None = None
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._schema is not None

    def schema(self, *, cancellation: CancellationToken | None = None) -> FieldSchema:
        schema = self._schema
        if schema is not None:
            return schema
        with self._lock:
            if self._schema is None:
                data = self._client.get("field", cancellation=cancellation)
                self._schema = FieldSchema.from_wire(data)
                logger.debug("Loaded %d custom fields", len(self._schema))
            return self._schema

    def resolve(self, name: str) -> FieldId:
        return self.schema().resolve(name)


class AsyncSchemaResolver:
    """Async counterpart of `SchemaResolver`; concurrent first use coalesces on a lock."""

    def __init__(self, client: AsyncHTTPClient):
        self._client = client
        self._schema: FieldSchema | None = None
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._schema is not None

    async def schema(self, *, cancellation: CancellationToken | None = None) -> FieldSchema:
        schema = self._schema
        if schema is not None:
            return schema
        async with self._lock:
            if self._schema is None:
                data = await self._client.get("field", cancellation=cancellation)
                self._schema = FieldSchema.from_wire(data)
                logger.debug("Loaded %d custom fields", len(self._schema))
            return self._schema

    async def resolve(self, name: str) -> FieldId:
        return (await self.schema()).resolve(name)
