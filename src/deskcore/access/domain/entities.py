"""
Access Domain Entities
=======================

Pure Python value types for authorization.

Both are frozen: a grant snapshot or a user context is read at the start of a
request and passed explicitly, never mutated afterwards.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from deskcore.config import PermissionKey, Role


@dataclass(frozen=True)
class PermissionGrant:
    """
    A (role, permission, department) row authorizing a role for a capability.

    department_id None means the grant is global for the role; otherwise it
    is scoped to that one department.
    """

    role: Role
    permission: PermissionKey
    department_id: Optional[UUID] = None

    @property
    def is_global(self) -> bool:
        return self.department_id is None

    def applies_to(self, role: Role, permission: PermissionKey) -> bool:
        return self.role == role and self.permission == permission

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "role": self.role.value,
            "permission": self.permission.value,
            "department_id": str(self.department_id) if self.department_id else None,
        }


@dataclass(frozen=True)
class UserContext:
    """Snapshot of the acting principal at evaluation time."""

    user_id: UUID
    role: Role
    department_id: Optional[UUID] = None

    @property
    def is_superuser(self) -> bool:
        return self.role.is_superuser
