"""
Access Controllers (API Routes)
================================

FastAPI routes for permission checks and grant administration.

Controllers are thin - they delegate to application services.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from deskcore.access.application import (
    AccessService,
    GrantAdministrationService,
    GrantListResponse,
    GrantReplacementRequest,
    GrantReplacementResponse,
    GrantResponse,
    PermissionCheckResponse,
    PermissionMapResponse,
)
from deskcore.access.domain import UserContext
from deskcore.access.infrastructure import SQLAlchemyGrantRepository
from deskcore.access.interfaces.dependencies import get_access_service, get_user_context
from deskcore.config import Role
from deskcore.core import ValidationException
from deskcore.infrastructure.database import get_session
from deskcore.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/access", tags=["Access"])


# ========== Example payloads for Swagger ==========

GRANT_REPLACEMENT_EXAMPLE = {
    "roles": ["agent"],
    "grants": [
        {"role": "agent", "permission": "create_tickets", "departments": "ALL"},
        {
            "role": "department_head",
            "permission": "access_crm_tickets",
            "departments": ["3f1c6b2e-8a0d-4f7e-9a51-6d2f0c7b9e11"]
        }
    ]
}


# ========== Dependencies ==========

async def get_grant_admin_service(
    session: AsyncSession = Depends(get_session),
    access: AccessService = Depends(get_access_service)
) -> GrantAdministrationService:
    """Get grant administration service instance."""
    return GrantAdministrationService(SQLAlchemyGrantRepository(session), access)


# ========== Route Handlers ==========

@router.get(
    "/permissions",
    response_model=PermissionMapResponse,
    summary="Advisory permission map for the caller",
    description="""
    Every permission key with whether the caller holds it.

    For UI gating only. Mutations are re-authorized on the server regardless
    of what this map says.
    """
)
async def get_my_permissions(
    ctx: UserContext = Depends(get_user_context),
    access: AccessService = Depends(get_access_service)
):
    permissions = await access.effective_permissions(ctx)
    return PermissionMapResponse(
        user_id=ctx.user_id,
        role=ctx.role.value,
        department_id=ctx.department_id,
        is_superuser=ctx.is_superuser,
        permissions={key.value: granted for key, granted in permissions.items()},
    )


@router.get(
    "/check",
    response_model=PermissionCheckResponse,
    summary="Check one permission for the caller",
    description="Unknown permission keys are reported as not granted."
)
async def check_permission(
    permission: str = Query(..., description="Permission key"),
    ctx: UserContext = Depends(get_user_context),
    access: AccessService = Depends(get_access_service)
):
    granted = await access.check_named(ctx, permission)
    return PermissionCheckResponse(permission=permission, granted=granted)


@router.get(
    "/grants",
    response_model=GrantListResponse,
    summary="List permission grants",
    description="Requires `manage_roles`."
)
async def list_grants(
    role: Optional[str] = Query(None, description="Filter by role"),
    ctx: UserContext = Depends(get_user_context),
    service: GrantAdministrationService = Depends(get_grant_admin_service)
):
    role_filter = None
    if role is not None:
        role_filter = Role.parse(role)
        if role_filter is None:
            raise ValidationException(f"Unknown role: {role}")

    grants = await service.list_grants(ctx, role_filter)
    return GrantListResponse(
        grants=[GrantResponse.from_domain(grant) for grant in grants],
        total_count=len(grants),
    )


@router.put(
    "/grants",
    response_model=GrantReplacementResponse,
    summary="Replace permission grants for a set of roles",
    description="""
    Deletes every grant held by the affected roles, then inserts the new set.

    Affected roles are those listed in `roles` plus every role appearing in
    `grants`. `departments: "ALL"` creates one global grant; a list creates
    one grant per department.

    Requires `manage_roles`. If the insert fails after the delete the request
    fails with a lockout error naming the affected roles.
    """,
    responses={
        200: {"description": "Grants replaced"},
        403: {"description": "Caller lacks manage_roles"},
        500: {"description": "Replacement failed; affected roles may hold no grants"},
    },
    openapi_extra={
        "requestBody": {"content": {"application/json": {"example": GRANT_REPLACEMENT_EXAMPLE}}}
    }
)
async def replace_grants(
    request: GrantReplacementRequest,
    ctx: UserContext = Depends(get_user_context),
    service: GrantAdministrationService = Depends(get_grant_admin_service)
):
    result = await service.replace_grants(ctx, request.grants, request.roles)
    return GrantReplacementResponse(**result)


# Export router for inclusion in main app
access_router = router
