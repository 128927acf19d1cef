"""
Routing Application Services
=============================

Application services orchestrate routing decisions and coordinate between
domain rules and repositories.

Following SOLID principles:
- Single Responsibility: each resolver answers one question, the planner
  composes them, the ticket service owns the mutation flow
- Dependency Inversion: Depend on abstractions (repositories), not concrete implementations
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence
from uuid import UUID, uuid4

from deskcore.access.application import AccessService
from deskcore.access.domain import UserContext
from deskcore.config import PermissionKey, Priority, Role, TicketStatus
from deskcore.core import (
    AuthorizationException,
    ConflictException,
    ResourceNotFoundException,
    ValidationException,
)
from deskcore.routing.application.dto import (
    DepartmentCreateDTO,
    SlaPolicyWriteDTO,
    TicketCreateDTO,
    TicketUpdateDTO,
)
from deskcore.routing.domain import (
    AssignmentChanged,
    AssignmentPlan,
    Department,
    RequestedAssignee,
    RoutingRules,
    SlaPolicy,
    Ticket,
)
from deskcore.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IProfileDirectory(ABC):
    """Interface for the profile lookups routing needs."""

    @abstractmethod
    async def find_department_heads(self, department_id: UUID) -> List[UUID]:
        """IDs of active department heads of the department."""

    @abstractmethod
    async def get_active(self, user_id: UUID) -> Optional[Any]:
        """Get an active profile (role, department_id)."""


class ISlaPolicyRepository(ABC):
    """Interface for SLA policy data access."""

    @abstractmethod
    async def find_candidates(
        self,
        priority: Priority,
        department_id: Optional[UUID]
    ) -> List[SlaPolicy]:
        """Policies for the priority that are department-specific or fallback."""

    @abstractmethod
    async def list(self) -> List[SlaPolicy]:
        """List all policies."""

    @abstractmethod
    async def get(self, policy_id: UUID) -> Optional[SlaPolicy]:
        """Get policy by ID."""

    @abstractmethod
    async def find_exact(
        self,
        priority: Priority,
        department_id: Optional[UUID]
    ) -> Optional[SlaPolicy]:
        """Get the policy keyed exactly by (priority, department)."""

    @abstractmethod
    async def save(self, policy: SlaPolicy) -> SlaPolicy:
        """Create or update a policy."""

    @abstractmethod
    async def delete(self, policy_id: UUID) -> bool:
        """Delete a policy. Returns False when it did not exist."""


class IDepartmentRepository(ABC):
    """Interface for department data access."""

    @abstractmethod
    async def list(self) -> List[Department]:
        """List departments ordered by name."""

    @abstractmethod
    async def get_by_name(self, name: str) -> Optional[Department]:
        """Get department by name."""

    @abstractmethod
    async def create(self, department: Department) -> Department:
        """Create department."""


class ITicketRepository(ABC):
    """Interface for ticket persistence."""

    @abstractmethod
    async def get(self, ticket_id: UUID) -> Optional[Ticket]:
        """Get ticket by ID."""

    @abstractmethod
    async def create(self, ticket: Ticket) -> Ticket:
        """Persist a new ticket with its department links."""

    @abstractmethod
    async def update(self, ticket: Ticket) -> Ticket:
        """Persist changes to an existing ticket."""

    @abstractmethod
    async def delete(self, ticket_id: UUID) -> bool:
        """Delete a ticket and its department links. Returns False when it did not exist."""


class IAssignmentSignalSink(ABC):
    """Interface for the collaborator consuming assignment-changed signals."""

    @abstractmethod
    async def emit(self, signal: AssignmentChanged) -> None:
        """Hand over a signal."""


# ========== Resolvers ==========

class DepartmentHeadResolver:
    """
    Finds the head of a department for auto-assignment.

    Never raises: a missing head, or a failing lookup, resolves to None so
    the ticket mutation goes ahead unassigned.
    """

    def __init__(self, profile_directory: IProfileDirectory):
        self._profiles = profile_directory

    async def resolve_head(self, department_id: Optional[UUID]) -> Optional[UUID]:
        if department_id is None:
            return None

        try:
            candidate_ids = await self._profiles.find_department_heads(department_id)
        except Exception as e:
            logger.warning(
                "Department head lookup failed; leaving ticket unassigned",
                extra={"department_id": str(department_id), "error": str(e)}
            )
            return None

        head_id, count = RoutingRules.pick_department_head(candidate_ids)
        if count > 1:
            logger.warning(
                "Department has more than one head; picking lowest id",
                extra={
                    "department_id": str(department_id),
                    "candidates": count,
                    "chosen": str(head_id),
                }
            )
        elif head_id is None:
            logger.info(
                "Department has no head",
                extra={"department_id": str(department_id)}
            )
        return head_id


class SlaPolicyResolver:
    """
    Picks the SLA policy for a priority and primary department.

    A department-specific policy beats the fallback; no match, or a failing
    lookup, resolves to None.
    """

    def __init__(self, policy_repository: ISlaPolicyRepository):
        self._policies = policy_repository

    async def resolve_policy(
        self,
        priority: Priority,
        primary_department_id: Optional[UUID] = None
    ) -> Optional[UUID]:
        try:
            candidates = await self._policies.find_candidates(priority, primary_department_id)
        except Exception as e:
            logger.warning(
                "SLA policy lookup failed; ticket carries no SLA policy",
                extra={
                    "priority": priority.value,
                    "department_id": str(primary_department_id) if primary_department_id else None,
                    "error": str(e),
                }
            )
            return None

        policy, same_tier = RoutingRules.pick_sla_policy(candidates, priority, primary_department_id)
        if policy is not None and same_tier > 1:
            logger.warning(
                "Several SLA policies share one priority/department; picking smallest id",
                extra={
                    "priority": priority.value,
                    "department_id": str(policy.department_id) if policy.department_id else None,
                    "candidates": same_tier,
                    "chosen": str(policy.id),
                }
            )
        return policy.id if policy else None


# ========== Planner ==========

class TicketAssignmentPlanner:
    """
    Composes the resolvers into the {assigned_to, sla_policy_id} decision.

    Idempotent: identical inputs against an unchanged snapshot give an
    identical plan, so edit flows can re-run it unconditionally.
    """

    def __init__(
        self,
        head_resolver: DepartmentHeadResolver,
        sla_resolver: SlaPolicyResolver
    ):
        self._heads = head_resolver
        self._sla = sla_resolver

    async def plan(
        self,
        priority: Priority,
        department_ids: Sequence[UUID],
        requested_assignee: RequestedAssignee
    ) -> AssignmentPlan:
        primary = department_ids[0] if department_ids else None

        if requested_assignee.is_explicit:
            assigned_to = requested_assignee.user_id
        elif requested_assignee.auto and primary is not None:
            assigned_to = await self._heads.resolve_head(primary)
        else:
            assigned_to = None

        sla_policy_id = await self._sla.resolve_policy(priority, primary)

        return AssignmentPlan(assigned_to=assigned_to, sla_policy_id=sla_policy_id)

    @staticmethod
    def assignment_changed(
        ticket_id: UUID,
        previous_assignee: Optional[UUID],
        plan: AssignmentPlan,
        changed_by: Optional[UUID] = None
    ) -> Optional[AssignmentChanged]:
        """Signal when the planned assignee differs from the previous one."""
        if plan.assigned_to == previous_assignee:
            return None
        return AssignmentChanged(
            ticket_id=ticket_id,
            previous_assignee=previous_assignee,
            new_assignee=plan.assigned_to,
            changed_by=changed_by,
        )


# ========== Ticket Mutations ==========

class TicketRoutingService:
    """
    Ticket create/update/reassign/status/delete flows.

    Each flow authorizes on the server, plans, persists, then signals an
    assignment change. Persistence failures propagate as
    TicketPersistenceException.
    """

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        planner: TicketAssignmentPlanner,
        access_service: AccessService,
        signal_sink: IAssignmentSignalSink,
        profile_directory: IProfileDirectory
    ):
        self._tickets = ticket_repository
        self._planner = planner
        self._access = access_service
        self._signals = signal_sink
        self._profiles = profile_directory

    async def preview_plan(
        self,
        ctx: UserContext,
        priority: Priority,
        department_ids: Sequence[UUID],
        assigned_to: Optional[str]
    ) -> AssignmentPlan:
        await self._access.authorize(ctx, PermissionKey.CREATE_TICKETS)
        return await self._planner.plan(priority, department_ids, _parse_assignee(assigned_to))

    async def get_ticket(self, ctx: UserContext, ticket_id: UUID) -> Ticket:
        return await self._require_ticket(ticket_id)

    async def create_ticket(self, ctx: UserContext, request: TicketCreateDTO) -> Ticket:
        await self._access.authorize(ctx, PermissionKey.CREATE_TICKETS)

        department_ids = _dedupe(request.department_ids)
        requested = _parse_assignee(request.assigned_to)
        if requested.is_explicit:
            await self._require_assignee(requested.user_id)

        plan = await self._planner.plan(request.priority, department_ids, requested)

        ticket = Ticket(
            id=uuid4(),
            title=request.title,
            description=request.description,
            category=request.category,
            priority=request.priority,
            status=request.status,
            created_by=ctx.user_id,
            department_ids=department_ids,
        )
        ticket.apply_plan(plan)

        ticket = await self._tickets.create(ticket)

        logger.info(
            "Ticket created",
            extra={
                "ticket_id": str(ticket.id),
                "priority": ticket.priority.value,
                **plan.to_dict(),
            }
        )

        await self._signal(ticket.id, None, plan, ctx.user_id)
        return ticket

    async def update_ticket(
        self,
        ctx: UserContext,
        ticket_id: UUID,
        request: TicketUpdateDTO
    ) -> Ticket:
        await self._access.authorize(ctx, PermissionKey.EDIT_TICKET_PROPERTIES)

        ticket = await self._require_ticket(ticket_id)
        previous_assignee = ticket.assigned_to

        if request.title is not None:
            ticket.title = request.title
        if request.description is not None:
            ticket.description = request.description
        if request.category is not None:
            ticket.category = request.category
        if request.priority is not None:
            ticket.priority = request.priority
        if request.department_ids is not None:
            ticket.department_ids = _dedupe(request.department_ids)

        # An omitted assignee keeps the current one
        if "assigned_to" in request.model_fields_set:
            requested = _parse_assignee(request.assigned_to)
            if not requested.auto and requested.user_id != previous_assignee:
                await self._authorize_handoff(ctx, requested.user_id)
        else:
            requested = RequestedAssignee(user_id=previous_assignee)

        plan = await self._planner.plan(ticket.priority, ticket.department_ids, requested)
        ticket.apply_plan(plan)

        ticket = await self._tickets.update(ticket)

        logger.info(
            "Ticket updated",
            extra={"ticket_id": str(ticket.id), **plan.to_dict()}
        )

        await self._signal(ticket.id, previous_assignee, plan, ctx.user_id)
        return ticket

    async def reassign_ticket(
        self,
        ctx: UserContext,
        ticket_id: UUID,
        assignee_id: Optional[UUID]
    ) -> Ticket:
        """
        Hand a ticket to a user, or unassign it.

        A department head may only assign within their own department or to
        another department head.
        """
        await self._access.authorize(ctx, PermissionKey.ASSIGN_TICKETS)

        ticket = await self._require_ticket(ticket_id)
        previous_assignee = ticket.assigned_to

        await self._authorize_handoff(ctx, assignee_id)

        plan = AssignmentPlan(assigned_to=assignee_id, sla_policy_id=ticket.sla_policy_id)
        ticket.apply_plan(plan)
        ticket = await self._tickets.update(ticket)

        await self._signal(ticket.id, previous_assignee, plan, ctx.user_id)
        return ticket

    async def change_status(
        self,
        ctx: UserContext,
        ticket_id: UUID,
        new_status: TicketStatus
    ) -> Ticket:
        """Move a ticket to another status. Its creator may always do this."""
        ticket = await self._require_ticket(ticket_id)
        await self._authorize_creator_or(ctx, ticket, PermissionKey.CHANGE_TICKET_STATUS)

        previous_status = ticket.status
        ticket.status = new_status
        ticket.updated_at = datetime.now(timezone.utc)
        ticket = await self._tickets.update(ticket)

        logger.info(
            "Ticket status changed",
            extra={
                "ticket_id": str(ticket.id),
                "from_status": previous_status.value,
                "to_status": new_status.value,
                "changed_by": str(ctx.user_id),
            }
        )
        return ticket

    async def delete_ticket(self, ctx: UserContext, ticket_id: UUID) -> None:
        """Delete a ticket. Its creator may always do this."""
        ticket = await self._require_ticket(ticket_id)
        await self._authorize_creator_or(ctx, ticket, PermissionKey.DELETE_TICKETS)

        if not await self._tickets.delete(ticket_id):
            raise ResourceNotFoundException("Ticket", str(ticket_id))

        logger.info(
            "Ticket deleted",
            extra={"ticket_id": str(ticket_id), "deleted_by": str(ctx.user_id)}
        )

    async def _authorize_handoff(self, ctx: UserContext, assignee_id: Optional[UUID]) -> None:
        """
        Gate handing a ticket to someone else, or to nobody.

        Raises:
            AuthorizationException: caller lacks assign_tickets, or is a
                department head assigning outside their reach
            ResourceNotFoundException: the assignee is not an active user
        """
        await self._access.authorize(ctx, PermissionKey.ASSIGN_TICKETS)
        if assignee_id is None:
            return

        assignee = await self._require_assignee(assignee_id)
        if ctx.role == Role.DEPARTMENT_HEAD:
            same_department = (
                ctx.department_id is not None
                and getattr(assignee, "department_id", None) == ctx.department_id
            )
            assignee_is_head = Role.parse(getattr(assignee, "role", None)) == Role.DEPARTMENT_HEAD
            if not (same_department or assignee_is_head):
                raise AuthorizationException(
                    "You can only assign tickets to users in your department "
                    "or to other department heads.",
                    permission=PermissionKey.ASSIGN_TICKETS.value
                )

    async def _authorize_creator_or(
        self,
        ctx: UserContext,
        ticket: Ticket,
        key: PermissionKey
    ) -> None:
        if ticket.created_by == ctx.user_id:
            return
        await self._access.authorize(ctx, key)

    async def _require_assignee(self, user_id: UUID) -> Any:
        assignee = await self._profiles.get_active(user_id)
        if assignee is None:
            raise ResourceNotFoundException("User", str(user_id))
        return assignee

    async def _require_ticket(self, ticket_id: UUID) -> Ticket:
        ticket = await self._tickets.get(ticket_id)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", str(ticket_id))
        return ticket

    async def _signal(
        self,
        ticket_id: UUID,
        previous_assignee: Optional[UUID],
        plan: AssignmentPlan,
        changed_by: UUID
    ) -> None:
        signal = self._planner.assignment_changed(ticket_id, previous_assignee, plan, changed_by)
        if signal is not None:
            await self._signals.emit(signal)


# ========== Reference Data ==========

class SlaPolicyService:
    """Maintains SLA policies; writes require manage_sla_policies."""

    def __init__(
        self,
        policy_repository: ISlaPolicyRepository,
        access_service: AccessService
    ):
        self._policies = policy_repository
        self._access = access_service

    async def list_policies(self) -> List[SlaPolicy]:
        return await self._policies.list()

    async def create_policy(self, ctx: UserContext, request: SlaPolicyWriteDTO) -> SlaPolicy:
        await self._access.authorize(ctx, PermissionKey.MANAGE_SLA_POLICIES)
        await self._ensure_unique(request.priority, request.department_id)

        policy = SlaPolicy(id=uuid4(), **request.model_dump())
        policy = await self._policies.save(policy)
        logger.info("SLA policy created", extra={"sla_policy_id": str(policy.id)})
        return policy

    async def update_policy(
        self,
        ctx: UserContext,
        policy_id: UUID,
        request: SlaPolicyWriteDTO
    ) -> SlaPolicy:
        await self._access.authorize(ctx, PermissionKey.MANAGE_SLA_POLICIES)
        if await self._policies.get(policy_id) is None:
            raise ResourceNotFoundException("SLA policy", str(policy_id))
        await self._ensure_unique(request.priority, request.department_id, exclude_id=policy_id)

        policy = SlaPolicy(id=policy_id, **request.model_dump())
        policy = await self._policies.save(policy)
        logger.info("SLA policy updated", extra={"sla_policy_id": str(policy.id)})
        return policy

    async def delete_policy(self, ctx: UserContext, policy_id: UUID) -> None:
        await self._access.authorize(ctx, PermissionKey.MANAGE_SLA_POLICIES)
        if not await self._policies.delete(policy_id):
            raise ResourceNotFoundException("SLA policy", str(policy_id))
        logger.info("SLA policy deleted", extra={"sla_policy_id": str(policy_id)})

    async def _ensure_unique(
        self,
        priority: Priority,
        department_id: Optional[UUID],
        exclude_id: Optional[UUID] = None
    ) -> None:
        existing = await self._policies.find_exact(priority, department_id)
        if existing is not None and existing.id != exclude_id:
            raise ConflictException(
                "A policy for this priority and department combination already exists.",
                {"sla_policy_id": str(existing.id)}
            )


class DepartmentService:
    """Lists and creates departments."""

    def __init__(
        self,
        department_repository: IDepartmentRepository,
        access_service: AccessService
    ):
        self._departments = department_repository
        self._access = access_service

    async def list_departments(self) -> List[Department]:
        return await self._departments.list()

    async def create_department(self, ctx: UserContext, request: DepartmentCreateDTO) -> Department:
        await self._access.authorize(ctx, PermissionKey.MANAGE_DEPARTMENTS)

        name = request.name.strip()
        if await self._departments.get_by_name(name) is not None:
            raise ConflictException(f"A department named '{name}' already exists.")

        department = await self._departments.create(Department(id=uuid4(), name=name))
        logger.info("Department created", extra={"department_id": str(department.id)})
        return department


# ========== Helpers ==========

def _parse_assignee(value: Optional[str]) -> RequestedAssignee:
    try:
        return RequestedAssignee.parse(value)
    except ValueError:
        raise ValidationException(
            f"assigned_to must be 'auto-assign', a user id, or empty; got {value!r}"
        ) from None


def _dedupe(department_ids: Sequence[UUID]) -> List[UUID]:
    """Drop repeated departments, keeping assignment order."""
    return list(dict.fromkeys(department_ids))
