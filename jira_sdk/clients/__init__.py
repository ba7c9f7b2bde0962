"""HTTP transport layer."""

from __future__ import annotations

from .http import AsyncHTTPClient, ClientConfig, HTTPClient

__all__ = ["AsyncHTTPClient", "ClientConfig", "HTTPClient"]
