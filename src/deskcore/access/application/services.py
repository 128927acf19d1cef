"""
Access Application Services
============================

Application services orchestrate the authorization engine and the grant
store.

Following SOLID principles:
- Single Responsibility: AccessService answers "may this user do X",
  GrantAdministrationService changes who may do what
- Dependency Inversion: Depend on abstractions (repositories), not concrete implementations
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from deskcore.access.domain import (
    AuthorizationEngine,
    GrantEntry,
    PermissionGrant,
    UserContext,
    expand_grant_entries,
)
from deskcore.config import PermissionKey, Role
from deskcore.core import (
    AuthenticationException,
    AuthorizationException,
    PermissionLockoutException,
)
from deskcore.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IGrantRepository(ABC):
    """Interface for the permission grant table."""

    @abstractmethod
    async def list_grants(self, role: Optional[Role] = None) -> List[PermissionGrant]:
        """List grants, optionally for one role."""

    @abstractmethod
    async def delete_for_roles(self, roles: Iterable[Role]) -> int:
        """Delete every grant held by the given roles. Returns rows removed."""

    @abstractmethod
    async def insert_grants(self, grants: List[PermissionGrant]) -> None:
        """Insert grant rows."""

    @abstractmethod
    async def count(self) -> int:
        """Number of grant rows."""


class IProfileRepository(ABC):
    """Interface for user profile lookups."""

    @abstractmethod
    async def get_active(self, user_id: UUID) -> Optional[Any]:
        """Get a profile that has not been deactivated."""


class IGrantDefaultsProvider(ABC):
    """Interface for the default role/permission matrix."""

    @abstractmethod
    def get_defaults(self) -> List[GrantEntry]:
        """Get default grant entries."""


# ========== Application Services ==========

class AccessService:
    """
    Resolves user contexts and evaluates capabilities against the grant store.

    This is the authoritative server-side gate: mutation handlers call
    authorize() before doing anything privileged, whatever the UI decided.
    """

    def __init__(
        self,
        grant_repository: IGrantRepository,
        profile_repository: Optional[IProfileRepository] = None
    ):
        self._grant_repo = grant_repository
        self._profile_repo = profile_repository

    async def resolve_context(self, user_id: Optional[UUID]) -> UserContext:
        """
        Build the context snapshot for the acting user.

        Raises:
            AuthenticationException: no user, or the profile is unknown/deactivated
            AuthorizationException: the profile carries no recognised role
        """
        if user_id is None:
            raise AuthenticationException("You are not authenticated.")
        if self._profile_repo is None:
            raise ValueError("Profile repository not configured")

        profile = await self._profile_repo.get_active(user_id)
        if profile is None:
            raise AuthenticationException("You are not authenticated.")

        role = Role.parse(getattr(profile, "role", None))
        if role is None:
            logger.warning(
                "Profile has no recognised role",
                extra={"user_id": str(user_id), "role": getattr(profile, "role", None)}
            )
            raise AuthorizationException("Your account has no role assigned.")

        return UserContext(
            user_id=user_id,
            role=role,
            department_id=getattr(profile, "department_id", None),
        )

    async def snapshot_for(self, ctx: UserContext) -> List[PermissionGrant]:
        """Grant snapshot relevant to the context (empty for superusers)."""
        if ctx.is_superuser:
            return []
        return await self._grant_repo.list_grants(ctx.role)

    async def check(self, ctx: UserContext, key: PermissionKey) -> bool:
        grants = await self.snapshot_for(ctx)
        return AuthorizationEngine.has_permission(ctx, key, grants)

    async def check_named(self, ctx: UserContext, key: Optional[str]) -> bool:
        """Check a raw key from a request; unrecognised keys deny."""
        grants = await self.snapshot_for(ctx)
        return AuthorizationEngine.has_permission_named(ctx, key, grants)

    async def authorize(self, ctx: UserContext, key: PermissionKey) -> None:
        """
        Raise unless the context holds the capability.

        Raises:
            AuthorizationException: capability not granted
        """
        if not await self.check(ctx, key):
            logger.info(
                "Permission denied",
                extra={
                    "user_id": str(ctx.user_id),
                    "role": ctx.role.value,
                    "permission": key.value,
                }
            )
            raise AuthorizationException(permission=key.value)

    async def effective_permissions(self, ctx: UserContext) -> Dict[PermissionKey, bool]:
        grants = await self.snapshot_for(ctx)
        return AuthorizationEngine.effective_permissions(ctx, grants)


class GrantAdministrationService:
    """
    Replaces and lists permission grants.

    Replacement is delete-then-insert per affected role. A failure between the
    two steps is fatal and reported, never swallowed.
    """

    def __init__(
        self,
        grant_repository: IGrantRepository,
        access_service: AccessService,
        defaults_provider: Optional[IGrantDefaultsProvider] = None
    ):
        self._grant_repo = grant_repository
        self._access = access_service
        self._defaults = defaults_provider

    async def list_grants(
        self,
        ctx: UserContext,
        role: Optional[Role] = None
    ) -> List[PermissionGrant]:
        await self._access.authorize(ctx, PermissionKey.MANAGE_ROLES)
        return await self._grant_repo.list_grants(role)

    async def replace_grants(
        self,
        ctx: UserContext,
        entries: List[GrantEntry],
        roles: Optional[Iterable[Role]] = None
    ) -> Dict[str, Any]:
        """
        Replace all grants of the affected roles with the expanded entries.

        Affected roles are those named in `roles` plus every role appearing in
        `entries`; a role listed only in `roles` ends with no grants.

        Raises:
            AuthorizationException: caller lacks manage_roles
            PermissionLockoutException: insert failed after the delete
        """
        await self._access.authorize(ctx, PermissionKey.MANAGE_ROLES)
        return await self._replace(entries, roles, changed_by=ctx.user_id)

    async def _replace(
        self,
        entries: List[GrantEntry],
        roles: Optional[Iterable[Role]],
        changed_by: Optional[UUID] = None
    ) -> Dict[str, Any]:
        affected = set(roles or []) | {entry.role for entry in entries}
        grants = expand_grant_entries(entries)

        if not affected:
            return {"roles": [], "deleted": 0, "inserted": 0}

        role_names = sorted(role.value for role in affected)

        deleted = await self._grant_repo.delete_for_roles(affected)
        try:
            await self._grant_repo.insert_grants(grants)
        except Exception as e:
            logger.critical(
                "Grant insert failed after delete; roles may be locked out",
                extra={"roles": role_names, "deleted": deleted, "error": str(e)}
            )
            raise PermissionLockoutException(role_names, str(e)) from e

        logger.info(
            "Permission grants replaced",
            extra={
                "roles": role_names,
                "deleted": deleted,
                "inserted": len(grants),
                "changed_by": str(changed_by) if changed_by else None,
            }
        )
        return {"roles": role_names, "deleted": deleted, "inserted": len(grants)}

    async def seed_defaults(self) -> int:
        """
        Load the default matrix into an empty grant table.

        Returns:
            Number of grant rows inserted (0 when the table already has rows)
        """
        if self._defaults is None:
            return 0
        if await self._grant_repo.count() > 0:
            return 0

        entries = self._defaults.get_defaults()
        result = await self._replace(entries, roles=None)
        logger.info("Default grants seeded", extra={"inserted": result["inserted"]})
        return result["inserted"]
