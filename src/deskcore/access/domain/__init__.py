"""
Access Domain Layer
===================

Domain layer for the access (authorization) module.

Contains:
- Entities: PermissionGrant, UserContext
- Value Objects & Services: AuthorizationEngine, GrantEntry

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from deskcore.access.domain.entities import PermissionGrant, UserContext
from deskcore.access.domain.value_objects import (
    ALL_DEPARTMENTS,
    AuthorizationEngine,
    GrantEntry,
    expand_grant_entries,
)

__all__ = [
    # Entities
    "PermissionGrant",
    "UserContext",
    # Value Objects & Services
    "ALL_DEPARTMENTS",
    "AuthorizationEngine",
    "GrantEntry",
    "expand_grant_entries",
]
