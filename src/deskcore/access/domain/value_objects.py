"""
Access Value Objects
=====================

The authorization engine and the bulk-replacement entry shape.

AuthorizationEngine is the one implementation of the capability check. Route
guards, the advisory permission map served to the UI and every service-level
gate call into it with the same grant snapshot shape.
"""

from typing import Dict, Iterable, List, Literal, Set, Union
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from deskcore.access.domain.entities import PermissionGrant, UserContext
from deskcore.config import PermissionKey, Role

ALL_DEPARTMENTS = "ALL"


class AuthorizationEngine:
    """
    Pure functions for capability checks.

    Stateless, total and free of I/O: every non-match is a denial, never an
    error.
    """

    @staticmethod
    def has_permission(
        ctx: UserContext,
        key: PermissionKey,
        grants: Iterable[PermissionGrant]
    ) -> bool:
        """
        Resolve whether the context holds the capability.

        Granted iff the role is a superuser, or some grant for (role, key) is
        global, or scoped to the context's department.
        """
        if ctx.role.is_superuser:
            return True

        matching = [g for g in grants if g.applies_to(ctx.role, key)]
        if not matching:
            return False

        if any(g.is_global for g in matching):
            return True

        if ctx.department_id is not None:
            return any(g.department_id == ctx.department_id for g in matching)

        return False

    @staticmethod
    def has_permission_named(
        ctx: UserContext,
        key: Union[str, PermissionKey, None],
        grants: Iterable[PermissionGrant]
    ) -> bool:
        """Same check for a raw key from the outside; unknown keys deny."""
        parsed = PermissionKey.parse(key)
        if parsed is None:
            return False
        return AuthorizationEngine.has_permission(ctx, parsed, grants)

    @staticmethod
    def effective_permissions(
        ctx: UserContext,
        grants: Iterable[PermissionGrant]
    ) -> Dict[PermissionKey, bool]:
        """Advisory map of every capability for UI gating."""
        snapshot = list(grants)
        return {
            key: AuthorizationEngine.has_permission(ctx, key, snapshot)
            for key in PermissionKey
        }


class GrantEntry(BaseModel):
    """
    One line of a bulk grant replacement.

    departments is either a list of department IDs (one scoped grant each)
    or the literal "ALL" (a single global grant).
    """
    role: Role = Field(..., description="Role receiving the grant")
    permission: PermissionKey = Field(..., description="Capability granted")
    departments: Union[Literal["ALL"], List[UUID]] = Field(
        default=ALL_DEPARTMENTS,
        description='Department IDs, or "ALL" for a global grant'
    )

    @field_validator("departments")
    @classmethod
    def validate_departments(cls, v):
        """An empty department list would grant nothing; reject it."""
        if isinstance(v, list) and not v:
            raise ValueError('departments must be "ALL" or a non-empty list of department IDs')
        return v

    def expand(self) -> List[PermissionGrant]:
        if self.departments == ALL_DEPARTMENTS:
            return [PermissionGrant(self.role, self.permission, None)]
        return [
            PermissionGrant(self.role, self.permission, department_id)
            for department_id in dict.fromkeys(self.departments)
        ]


def expand_grant_entries(entries: Iterable[GrantEntry]) -> List[PermissionGrant]:
    """
    Expand replacement entries into grant rows.

    Duplicate rows collapse, and a global grant for (role, key) drops any
    department-scoped rows for the same pair since they add nothing.
    """
    expanded: Dict[PermissionGrant, None] = {}
    for entry in entries:
        for grant in entry.expand():
            expanded[grant] = None

    global_pairs: Set[tuple] = {
        (g.role, g.permission) for g in expanded if g.is_global
    }
    return [
        g for g in expanded
        if g.is_global or (g.role, g.permission) not in global_pairs
    ]
