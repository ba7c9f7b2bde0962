"""
Client policies (cross-cutting behavioral controls).

Policies are enforced centrally by the request pipeline, so a denied write
never reaches the transport.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class WritePolicy(Enum):
    """Whether the client may create, update or delete Jira data."""

    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True, slots=True)
class Policies:
    """Policy bundle applied to every request made by a client."""

    write: WritePolicy = WritePolicy.ALLOW

    @classmethod
    def read_only(cls) -> Policies:
        return cls(write=WritePolicy.DENY)

    @property
    def allows_writes(self) -> bool:
        return self.write is WritePolicy.ALLOW
