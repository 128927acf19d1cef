"""
Access Infrastructure Repositories
===================================

Concrete implementations of the access repository interfaces using
SQLAlchemy, plus the YAML provider for the default permission matrix.
"""

from pathlib import Path
from typing import Any, Iterable, List, Optional
from uuid import UUID

import yaml
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from deskcore.access.application import (
    IGrantDefaultsProvider,
    IGrantRepository,
    IProfileRepository,
)
from deskcore.access.domain import GrantEntry, PermissionGrant
from deskcore.access.infrastructure.models import ProfileModel, RolePermissionModel
from deskcore.config import PermissionKey, Role
from deskcore.core import ConfigurationException, RepositoryException
from deskcore.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class SQLAlchemyGrantRepository(IGrantRepository):
    """
    SQLAlchemy implementation of the grant store.

    Deletes and inserts run in the caller's session, so a replacement that
    fails halfway is undone by the request-level rollback.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_grants(self, role: Optional[Role] = None) -> List[PermissionGrant]:
        stmt = select(RolePermissionModel).order_by(
            RolePermissionModel.role,
            RolePermissionModel.permission,
            RolePermissionModel.id,
        )
        if role is not None:
            stmt = stmt.where(RolePermissionModel.role == role.value)

        result = await self._session.execute(stmt)

        grants = []
        for model in result.scalars().all():
            grant = self._to_domain(model)
            if grant is not None:
                grants.append(grant)
        return grants

    async def delete_for_roles(self, roles: Iterable[Role]) -> int:
        role_values = sorted(role.value for role in roles)
        if not role_values:
            return 0

        stmt = delete(RolePermissionModel).where(RolePermissionModel.role.in_(role_values))
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise RepositoryException(
                f"Failed to delete grants for roles {', '.join(role_values)}: {e}"
            ) from e
        return result.rowcount or 0

    async def insert_grants(self, grants: List[PermissionGrant]) -> None:
        if not grants:
            return

        self._session.add_all([
            RolePermissionModel(
                role=grant.role.value,
                permission=grant.permission.value,
                department_id=grant.department_id,
            )
            for grant in grants
        ])
        try:
            await self._session.flush()
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to insert grants: {e}") from e

    async def count(self) -> int:
        result = await self._session.execute(select(func.count(RolePermissionModel.id)))
        return result.scalar_one()

    @staticmethod
    def _to_domain(model: RolePermissionModel) -> Optional[PermissionGrant]:
        role = Role.parse(model.role)
        permission = PermissionKey.parse(model.permission)
        if role is None or permission is None:
            # Unrecognised rows grant nothing
            logger.warning(
                "Skipping grant row with unknown role or permission",
                extra={"grant_id": model.id, "role": model.role, "permission": model.permission}
            )
            return None
        return PermissionGrant(role=role, permission=permission, department_id=model.department_id)


class SQLAlchemyProfileRepository(IProfileRepository):
    """SQLAlchemy implementation of profile lookups."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_active(self, user_id: UUID) -> Optional[Any]:
        stmt = select(ProfileModel).where(
            ProfileModel.id == user_id,
            ProfileModel.deleted_at.is_(None),
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()


class YAMLGrantDefaultsProvider(IGrantDefaultsProvider):
    """
    Default role/permission matrix loaded from YAML.

    Expected shape:

        defaults:
          agent:
            create_tickets: ALL
            view_all_tickets_in_department: [<department uuid>, ...]
    """

    def __init__(self, config_path: str | Path):
        self._config_path = Path(config_path)
        self._entries: Optional[List[GrantEntry]] = None

    def _load(self) -> List[GrantEntry]:
        if not self._config_path.exists():
            logger.info(
                "Default grant file not found; nothing to seed",
                extra={"path": str(self._config_path)}
            )
            return []

        with open(self._config_path, "r") as f:
            data = yaml.safe_load(f) or {}

        entries = []
        for role_name, permissions in (data.get("defaults") or {}).items():
            for permission_name, departments in (permissions or {}).items():
                try:
                    entries.append(GrantEntry(
                        role=role_name,
                        permission=permission_name,
                        departments=departments,
                    ))
                except ValueError as e:
                    raise ConfigurationException(
                        f"Invalid default grant {role_name}.{permission_name} "
                        f"in {self._config_path}: {e}"
                    ) from e
        return entries

    def get_defaults(self) -> List[GrantEntry]:
        if self._entries is None:
            self._entries = self._load()
        return self._entries
