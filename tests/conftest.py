"""Shared fixtures: a file-backed SQLite database and an HTTP client bound to the app."""

from dataclasses import dataclass
from typing import Dict
from uuid import UUID, uuid4

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from deskcore.access.infrastructure.models import ProfileModel, RolePermissionModel
from deskcore.config import PermissionKey, Priority, Role
from deskcore.infrastructure.database import (
    close_database,
    create_tables,
    drop_tables,
    get_session_context,
    init_database,
)
from deskcore.main import create_app
from deskcore.routing.infrastructure.models import DepartmentModel, SlaPolicyModel


@dataclass(frozen=True)
class SeededDesk:
    it: UUID
    finance: UUID
    users: Dict[str, UUID]
    it_high_policy: UUID
    high_fallback_policy: UUID

    def headers(self, name: str) -> Dict[str, str]:
        return {"X-User-Id": str(self.users[name])}


@pytest_asyncio.fixture
async def database(tmp_path):
    init_database(f"sqlite+aiosqlite:///{tmp_path / 'deskcore.db'}")
    await create_tables()
    yield
    await drop_tables()
    await close_database()


@pytest_asyncio.fixture
async def seeded(database) -> SeededDesk:
    it, finance = uuid4(), uuid4()
    users = {
        "ceo": (Role.CEO, None),
        "admin": (Role.ADMIN, None),
        "it_head": (Role.DEPARTMENT_HEAD, it),
        "finance_head": (Role.DEPARTMENT_HEAD, finance),
        "it_agent": (Role.AGENT, it),
        "finance_agent": (Role.AGENT, finance),
    }
    user_ids = {name: uuid4() for name in users}
    it_high, high_fallback = uuid4(), uuid4()

    async with get_session_context() as session:
        session.add_all([
            DepartmentModel(id=it, name="IT"),
            DepartmentModel(id=finance, name="Finance"),
        ])
        session.add_all([
            ProfileModel(id=user_ids[name], full_name=name, role=role.value, department_id=department)
            for name, (role, department) in users.items()
        ])
        session.add(ProfileModel(id=uuid4(), full_name="no role", role="intern"))
        session.add_all([
            RolePermissionModel(role=Role.ADMIN.value, permission=PermissionKey.MANAGE_ROLES.value),
            RolePermissionModel(role=Role.AGENT.value, permission=PermissionKey.CREATE_TICKETS.value),
            RolePermissionModel(
                role=Role.AGENT.value,
                permission=PermissionKey.EDIT_TICKET_PROPERTIES.value,
                department_id=it,
            ),
            RolePermissionModel(role=Role.DEPARTMENT_HEAD.value, permission=PermissionKey.ASSIGN_TICKETS.value),
            RolePermissionModel(role=Role.DEPARTMENT_HEAD.value, permission=PermissionKey.CREATE_TICKETS.value),
            RolePermissionModel(role=Role.DEPARTMENT_HEAD.value, permission=PermissionKey.CHANGE_TICKET_STATUS.value),
            RolePermissionModel(role=Role.DEPARTMENT_HEAD.value, permission=PermissionKey.DELETE_TICKETS.value),
        ])
        session.add_all([
            SlaPolicyModel(
                id=it_high, name="IT high", priority=Priority.HIGH.value, department_id=it,
                response_time_minutes=15, resolution_time_minutes=120,
            ),
            SlaPolicyModel(
                id=high_fallback, name="High", priority=Priority.HIGH.value,
                response_time_minutes=60, resolution_time_minutes=480,
            ),
        ])

    return SeededDesk(
        it=it,
        finance=finance,
        users=user_ids,
        it_high_policy=it_high,
        high_fallback_policy=high_fallback,
    )


@pytest_asyncio.fixture
async def client(database):
    app = create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
