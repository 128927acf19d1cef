"""
Routing Infrastructure Repositories
====================================

Concrete implementations of the routing repository interfaces using SQLAlchemy.
"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from deskcore.access.infrastructure.models import ProfileModel
from deskcore.access.infrastructure.repositories import SQLAlchemyProfileRepository
from deskcore.config import Priority, Role, TicketStatus
from deskcore.core import (
    ConflictException,
    RepositoryException,
    TicketPersistenceException,
)
from deskcore.routing.application import (
    IDepartmentRepository,
    IProfileDirectory,
    ISlaPolicyRepository,
    ITicketRepository,
)
from deskcore.routing.domain import Department, SlaPolicy, Ticket
from deskcore.routing.infrastructure.models import (
    DepartmentModel,
    SlaPolicyModel,
    TicketDepartmentModel,
    TicketModel,
)


class SQLAlchemyProfileDirectory(SQLAlchemyProfileRepository, IProfileDirectory):
    """Profile lookups for routing; get_active comes from the access repository."""

    async def find_department_heads(self, department_id: UUID) -> List[UUID]:
        stmt = (
            select(ProfileModel.id)
            .where(
                ProfileModel.role == Role.DEPARTMENT_HEAD.value,
                ProfileModel.department_id == department_id,
                ProfileModel.deleted_at.is_(None),
            )
            .order_by(ProfileModel.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


class SQLAlchemySlaPolicyRepository(ISlaPolicyRepository):
    """SQLAlchemy implementation of SLA policy repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def find_candidates(
        self,
        priority: Priority,
        department_id: Optional[UUID]
    ) -> List[SlaPolicy]:
        department_clause = SlaPolicyModel.department_id.is_(None)
        if department_id is not None:
            department_clause = or_(
                SlaPolicyModel.department_id == department_id,
                department_clause,
            )

        stmt = select(SlaPolicyModel).where(
            SlaPolicyModel.priority == priority.value,
            SlaPolicyModel.is_active.is_(True),
            department_clause,
        )
        result = await self._session.execute(stmt)
        return [self._to_domain(m) for m in result.scalars().all()]

    async def list(self) -> List[SlaPolicy]:
        stmt = select(SlaPolicyModel).order_by(SlaPolicyModel.priority, SlaPolicyModel.name)
        result = await self._session.execute(stmt)
        return [self._to_domain(m) for m in result.scalars().all()]

    async def get(self, policy_id: UUID) -> Optional[SlaPolicy]:
        model = await self._session.get(SlaPolicyModel, policy_id)
        return self._to_domain(model) if model else None

    async def find_exact(
        self,
        priority: Priority,
        department_id: Optional[UUID]
    ) -> Optional[SlaPolicy]:
        if department_id is None:
            department_clause = SlaPolicyModel.department_id.is_(None)
        else:
            department_clause = SlaPolicyModel.department_id == department_id

        stmt = (
            select(SlaPolicyModel)
            .where(SlaPolicyModel.priority == priority.value, department_clause)
            .order_by(SlaPolicyModel.id)
            .limit(1)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def save(self, policy: SlaPolicy) -> SlaPolicy:
        model = await self._session.get(SlaPolicyModel, policy.id)
        if model is None:
            model = SlaPolicyModel(id=policy.id)
            self._session.add(model)

        model.name = policy.name
        model.description = policy.description
        model.priority = policy.priority.value
        model.department_id = policy.department_id
        model.response_time_minutes = policy.response_time_minutes
        model.resolution_time_minutes = policy.resolution_time_minutes
        model.is_active = policy.is_active
        model.updated_at = datetime.now(timezone.utc)

        try:
            await self._session.flush()
        except IntegrityError as e:
            raise ConflictException(
                "A policy for this priority and department combination already exists."
            ) from e
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to save SLA policy: {e}") from e

        return self._to_domain(model)

    async def delete(self, policy_id: UUID) -> bool:
        model = await self._session.get(SlaPolicyModel, policy_id)
        if model is None:
            return False
        await self._session.delete(model)
        await self._session.flush()
        return True

    @staticmethod
    def _to_domain(model: SlaPolicyModel) -> SlaPolicy:
        return SlaPolicy(
            id=model.id,
            name=model.name,
            description=model.description,
            priority=Priority(model.priority),
            department_id=model.department_id,
            response_time_minutes=model.response_time_minutes,
            resolution_time_minutes=model.resolution_time_minutes,
            is_active=model.is_active,
        )


class SQLAlchemyDepartmentRepository(IDepartmentRepository):
    """SQLAlchemy implementation of department repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list(self) -> List[Department]:
        result = await self._session.execute(select(DepartmentModel).order_by(DepartmentModel.name))
        return [Department(id=m.id, name=m.name) for m in result.scalars().all()]

    async def get_by_name(self, name: str) -> Optional[Department]:
        result = await self._session.execute(
            select(DepartmentModel).where(DepartmentModel.name == name)
        )
        model = result.scalar_one_or_none()
        return Department(id=model.id, name=model.name) if model else None

    async def create(self, department: Department) -> Department:
        self._session.add(DepartmentModel(id=department.id, name=department.name))
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise ConflictException(f"A department named '{department.name}' already exists.") from e
        return department


class SQLAlchemyTicketRepository(ITicketRepository):
    """
    SQLAlchemy implementation of ticket repository.

    Department links are stored in their own table with an explicit position
    so the primary department survives a round trip.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, ticket_id: UUID) -> Optional[Ticket]:
        model = await self._session.get(TicketModel, ticket_id)
        if model is None:
            return None
        department_ids = await self._department_ids(ticket_id)
        return self._to_domain(model, department_ids)

    async def create(self, ticket: Ticket) -> Ticket:
        model = TicketModel(id=ticket.id, created_at=ticket.created_at)
        self._apply(model, ticket)
        self._session.add(model)

        try:
            # Parent row first so the links can reference it
            await self._session.flush()
            self._add_links(ticket.id, ticket.department_ids)
            await self._session.flush()
        except SQLAlchemyError as e:
            raise TicketPersistenceException("create", str(e)) from e

        return ticket

    async def update(self, ticket: Ticket) -> Ticket:
        model = await self._session.get(TicketModel, ticket.id)
        if model is None:
            raise TicketPersistenceException("update", "ticket no longer exists")

        self._apply(model, ticket)
        try:
            await self._session.execute(
                delete(TicketDepartmentModel).where(TicketDepartmentModel.ticket_id == ticket.id)
            )
            self._add_links(ticket.id, ticket.department_ids)
            await self._session.flush()
        except SQLAlchemyError as e:
            raise TicketPersistenceException("update", str(e)) from e

        return ticket

    async def delete(self, ticket_id: UUID) -> bool:
        model = await self._session.get(TicketModel, ticket_id)
        if model is None:
            return False

        try:
            await self._session.execute(
                delete(TicketDepartmentModel).where(TicketDepartmentModel.ticket_id == ticket_id)
            )
            await self._session.delete(model)
            await self._session.flush()
        except SQLAlchemyError as e:
            raise TicketPersistenceException("delete", str(e)) from e

        return True

    async def _department_ids(self, ticket_id: UUID) -> List[UUID]:
        stmt = (
            select(TicketDepartmentModel.department_id)
            .where(TicketDepartmentModel.ticket_id == ticket_id)
            .order_by(TicketDepartmentModel.position)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    def _add_links(self, ticket_id: UUID, department_ids: Sequence[UUID]) -> None:
        self._session.add_all([
            TicketDepartmentModel(ticket_id=ticket_id, department_id=department_id, position=position)
            for position, department_id in enumerate(department_ids)
        ])

    @staticmethod
    def _apply(model: TicketModel, ticket: Ticket) -> None:
        model.title = ticket.title
        model.description = ticket.description
        model.category = ticket.category
        model.priority = ticket.priority.value
        model.status = ticket.status.value
        model.created_by = ticket.created_by
        model.assigned_to = ticket.assigned_to
        model.sla_policy_id = ticket.sla_policy_id
        model.updated_at = ticket.updated_at

    @staticmethod
    def _to_domain(model: TicketModel, department_ids: List[UUID]) -> Ticket:
        return Ticket(
            id=model.id,
            title=model.title,
            description=model.description,
            category=model.category,
            priority=Priority(model.priority),
            status=TicketStatus(model.status),
            created_by=model.created_by,
            department_ids=department_ids,
            assigned_to=model.assigned_to,
            sla_policy_id=model.sla_policy_id,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
