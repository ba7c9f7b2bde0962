"""
API service classes.
"""

from .issues import AsyncIssueService, IssueService
from .metadata import AsyncMetadataService, MetadataService
from .remote_links import AsyncRemoteLinkService, RemoteLinkService

__all__ = [
    "IssueService",
    "AsyncIssueService",
    "MetadataService",
    "AsyncMetadataService",
    "RemoteLinkService",
    "AsyncRemoteLinkService",
]
