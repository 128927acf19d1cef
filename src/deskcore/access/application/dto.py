"""
Access Application DTOs
========================

Pydantic models for the access API: permission checks, the advisory
permission map and bulk grant replacement.
"""

from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from deskcore.access.domain import GrantEntry, PermissionGrant
from deskcore.config import Role


# ========== Request DTOs ==========

class GrantReplacementRequest(BaseModel):
    """Request model for bulk grant replacement."""
    roles: List[Role] = Field(
        default_factory=list,
        description="Roles to reset even if no entry names them"
    )
    grants: List[GrantEntry] = Field(
        default_factory=list,
        description="New grants for the affected roles"
    )


# ========== Response DTOs ==========

class GrantResponse(BaseModel):
    """One permission grant row."""
    role: str
    permission: str
    department_id: Optional[UUID] = None

    @classmethod
    def from_domain(cls, grant: PermissionGrant) -> "GrantResponse":
        return cls(**grant.to_dict())


class GrantListResponse(BaseModel):
    grants: List[GrantResponse]
    total_count: int


class GrantReplacementResponse(BaseModel):
    """Outcome of a bulk grant replacement."""
    roles: List[str] = Field(..., description="Roles whose grants were replaced")
    deleted: int = Field(..., description="Grant rows removed")
    inserted: int = Field(..., description="Grant rows inserted")


class PermissionCheckResponse(BaseModel):
    """Outcome of a single capability check."""
    permission: str
    granted: bool


class PermissionMapResponse(BaseModel):
    """
    Advisory permission map for UI gating.

    The server re-checks on every mutation; this map is never proof of
    authorization.
    """
    user_id: UUID
    role: str
    department_id: Optional[UUID] = None
    is_superuser: bool
    permissions: Dict[str, bool]
