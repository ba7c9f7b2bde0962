"""
Remote issue links (links from an issue to an external URL).
"""

from __future__ import annotations

import builtins
from typing import TYPE_CHECKING, Any

from ..models.secondary import RemoteLink

if TYPE_CHECKING:
    from ..clients.http import AsyncHTTPClient, HTTPClient


def _link_body(url: str, title: str, summary: str | None) -> dict[str, Any]:
    link_object: dict[str, Any] = {"url": url, "title": title}
    if summary is not None:
        link_object["summary"] = summary
    return {"object": link_object}


def _created_link(data: Any, body: dict[str, Any]) -> RemoteLink:
    # The create response only carries the new link's id and self URL.
    return RemoteLink.model_validate({**(data or {}), **body})


def _links_from(data: Any) -> builtins.list[RemoteLink]:
    items = data if isinstance(data, list) else []
    return [RemoteLink.model_validate(item) for item in items]


class RemoteLinkService:
    def __init__(self, client: HTTPClient):
        self._client = client

    def create(
        self, issue_key: str, url: str, title: str, summary: str | None = None
    ) -> RemoteLink:
        """Link `issue_key` to an external URL."""
        body = _link_body(url, title, summary)
        data = self._client.post(f"issue/{issue_key}/remotelink", json=body)
        return _created_link(data, body)

    def list(self, issue_key: str) -> builtins.list[RemoteLink]:
        return _links_from(self._client.get(f"issue/{issue_key}/remotelink"))


class AsyncRemoteLinkService:
    def __init__(self, client: AsyncHTTPClient):
        self._client = client

    async def create(
        self, issue_key: str, url: str, title: str, summary: str | None = None
    ) -> RemoteLink:
        body = _link_body(url, title, summary)
        data = await self._client.post(f"issue/{issue_key}/remotelink", json=body)
        return _created_link(data, body)

    async def list(self, issue_key: str) -> builtins.list[RemoteLink]:
        return _links_from(await self._client.get(f"issue/{issue_key}/remotelink"))
