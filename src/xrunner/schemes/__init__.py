"""
Scheme discovery and caching for the xrunner package.

This module provides:
- Modification-time signatures for projects and workspaces
- A bounded, signature-keyed scheme cache persisted in a key-value store
- Project, scheme and destination discovery through the build tool
"""

from .cache import SchemeCacheEntry, SchemeCacheStore
from .listing import (
    SchemeLister,
    discover_projects,
    parse_destinations,
    parse_scheme_list,
)
from .signature import (
    compute_signature,
    project_signature,
    referenced_projects,
    resolve_location,
    workspace_signature,
)

__all__ = [
    "SchemeCacheEntry",
    "SchemeCacheStore",
    "SchemeLister",
    "discover_projects",
    "parse_destinations",
    "parse_scheme_list",
    "compute_signature",
    "project_signature",
    "referenced_projects",
    "resolve_location",
    "workspace_signature",
]
