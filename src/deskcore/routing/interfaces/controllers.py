"""
Routing Controllers (API Routes)
=================================

FastAPI routes for tickets, departments and SLA policies.

Controllers are thin - they delegate to application services.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from deskcore.access.application import AccessService
from deskcore.access.domain import UserContext
from deskcore.access.interfaces.dependencies import get_access_service, get_user_context
from deskcore.infrastructure.database import get_session
from deskcore.routing.application import (
    AssignmentPlanRequest,
    AssignmentPlanResponse,
    DepartmentCreateDTO,
    DepartmentHeadResolver,
    DepartmentResponse,
    DepartmentService,
    SlaPolicyResolver,
    SlaPolicyResponse,
    SlaPolicyService,
    SlaPolicyWriteDTO,
    TicketAssigneeUpdateDTO,
    TicketAssignmentPlanner,
    TicketCreateDTO,
    TicketResponse,
    TicketRoutingService,
    TicketStatusUpdateDTO,
    TicketUpdateDTO,
)
from deskcore.routing.infrastructure import (
    NotificationOutboxSink,
    SQLAlchemyDepartmentRepository,
    SQLAlchemyProfileDirectory,
    SQLAlchemySlaPolicyRepository,
    SQLAlchemyTicketRepository,
)
from deskcore.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

tickets_router = APIRouter(prefix="/tickets", tags=["Tickets"])
departments_router = APIRouter(prefix="/departments", tags=["Departments"])
sla_policies_router = APIRouter(prefix="/sla-policies", tags=["SLA Policies"])


# ========== Example payloads for Swagger ==========

TICKET_CREATE_EXAMPLE = {
    "title": "VPN drops every few minutes",
    "description": "Since this morning the VPN disconnects roughly every five minutes.",
    "category": "network",
    "priority": "high",
    "department_ids": ["3f1c6b2e-8a0d-4f7e-9a51-6d2f0c7b9e11"],
    "assigned_to": "auto-assign"
}

SLA_POLICY_EXAMPLE = {
    "name": "IT high priority",
    "description": "Faster targets for the IT department",
    "priority": "high",
    "department_id": "3f1c6b2e-8a0d-4f7e-9a51-6d2f0c7b9e11",
    "response_time_minutes": 30,
    "resolution_time_minutes": 480,
    "is_active": True
}


# ========== Dependencies ==========

def build_planner(session: AsyncSession) -> TicketAssignmentPlanner:
    """Wire the resolvers against the request session."""
    return TicketAssignmentPlanner(
        DepartmentHeadResolver(SQLAlchemyProfileDirectory(session)),
        SlaPolicyResolver(SQLAlchemySlaPolicyRepository(session)),
    )


async def get_ticket_service(
    session: AsyncSession = Depends(get_session),
    access: AccessService = Depends(get_access_service)
) -> TicketRoutingService:
    """Get ticket routing service instance."""
    return TicketRoutingService(
        ticket_repository=SQLAlchemyTicketRepository(session),
        planner=build_planner(session),
        access_service=access,
        signal_sink=NotificationOutboxSink(session),
        profile_directory=SQLAlchemyProfileDirectory(session),
    )


async def get_sla_policy_service(
    session: AsyncSession = Depends(get_session),
    access: AccessService = Depends(get_access_service)
) -> SlaPolicyService:
    """Get SLA policy service instance."""
    return SlaPolicyService(SQLAlchemySlaPolicyRepository(session), access)


async def get_department_service(
    session: AsyncSession = Depends(get_session),
    access: AccessService = Depends(get_access_service)
) -> DepartmentService:
    """Get department service instance."""
    return DepartmentService(SQLAlchemyDepartmentRepository(session), access)


# ========== Tickets ==========

@tickets_router.post(
    "/plan",
    response_model=AssignmentPlanResponse,
    summary="Preview the routing decision",
    description="""
    Runs the assignment planner without writing anything.

    `assigned_to` is `"auto-assign"`, a user id, or omitted. Requires
    `create_tickets`.
    """
)
async def preview_plan(
    request: AssignmentPlanRequest,
    ctx: UserContext = Depends(get_user_context),
    service: TicketRoutingService = Depends(get_ticket_service)
):
    plan = await service.preview_plan(ctx, request.priority, request.department_ids, request.assigned_to)
    return AssignmentPlanResponse.from_domain(plan)


@tickets_router.post(
    "",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a ticket",
    description="""
    Creates a ticket and stores its routing decision.

    **Assignment**: `"auto-assign"` picks the head of the first department,
    a user id assigns explicitly, omitted leaves the ticket unassigned.

    **SLA**: the active policy for the ticket's priority and first department
    wins over the priority's fallback policy.

    Requires `create_tickets`.
    """,
    openapi_extra={
        "requestBody": {"content": {"application/json": {"example": TICKET_CREATE_EXAMPLE}}}
    }
)
async def create_ticket(
    request: TicketCreateDTO,
    ctx: UserContext = Depends(get_user_context),
    service: TicketRoutingService = Depends(get_ticket_service)
):
    ticket = await service.create_ticket(ctx, request)
    return TicketResponse.from_domain(ticket)


@tickets_router.get(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Get a ticket"
)
async def get_ticket(
    ticket_id: UUID,
    ctx: UserContext = Depends(get_user_context),
    service: TicketRoutingService = Depends(get_ticket_service)
):
    ticket = await service.get_ticket(ctx, ticket_id)
    return TicketResponse.from_domain(ticket)


@tickets_router.put(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Edit a ticket",
    description="""
    Applies the given fields and re-runs the planner.

    Omitting `assigned_to` keeps the current assignee; `null` or `""`
    unassigns. Requires `edit_ticket_properties`; handing the ticket to
    someone else or to nobody also requires `assign_tickets`. Status is
    changed through `PATCH /tickets/{id}/status`.
    """
)
async def update_ticket(
    ticket_id: UUID,
    request: TicketUpdateDTO,
    ctx: UserContext = Depends(get_user_context),
    service: TicketRoutingService = Depends(get_ticket_service)
):
    ticket = await service.update_ticket(ctx, ticket_id, request)
    return TicketResponse.from_domain(ticket)


@tickets_router.patch(
    "/{ticket_id}/assignee",
    response_model=TicketResponse,
    summary="Reassign a ticket",
    description="""
    Hands the ticket to a user, or unassigns it with `null`.

    Requires `assign_tickets`. Department heads may only assign within their
    own department or to other department heads.
    """
)
async def reassign_ticket(
    ticket_id: UUID,
    request: TicketAssigneeUpdateDTO,
    ctx: UserContext = Depends(get_user_context),
    service: TicketRoutingService = Depends(get_ticket_service)
):
    ticket = await service.reassign_ticket(ctx, ticket_id, request.assigned_to)
    return TicketResponse.from_domain(ticket)


@tickets_router.patch(
    "/{ticket_id}/status",
    response_model=TicketResponse,
    summary="Change a ticket's status",
    description="""
    The ticket's creator may always change its status; anyone else needs
    `change_ticket_status`.
    """
)
async def change_ticket_status(
    ticket_id: UUID,
    request: TicketStatusUpdateDTO,
    ctx: UserContext = Depends(get_user_context),
    service: TicketRoutingService = Depends(get_ticket_service)
):
    ticket = await service.change_status(ctx, ticket_id, request.status)
    return TicketResponse.from_domain(ticket)


@tickets_router.delete(
    "/{ticket_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a ticket",
    description="""
    The ticket's creator may always delete it; anyone else needs
    `delete_tickets`.
    """,
    responses={404: {"description": "Unknown ticket"}}
)
async def delete_ticket(
    ticket_id: UUID,
    ctx: UserContext = Depends(get_user_context),
    service: TicketRoutingService = Depends(get_ticket_service)
):
    await service.delete_ticket(ctx, ticket_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ========== Departments ==========

@departments_router.get(
    "",
    response_model=List[DepartmentResponse],
    summary="List departments"
)
async def list_departments(
    ctx: UserContext = Depends(get_user_context),
    service: DepartmentService = Depends(get_department_service)
):
    departments = await service.list_departments()
    return [DepartmentResponse.from_domain(d) for d in departments]


@departments_router.post(
    "",
    response_model=DepartmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a department",
    description="Requires `manage_departments`. Names are unique."
)
async def create_department(
    request: DepartmentCreateDTO,
    ctx: UserContext = Depends(get_user_context),
    service: DepartmentService = Depends(get_department_service)
):
    department = await service.create_department(ctx, request)
    return DepartmentResponse.from_domain(department)


# ========== SLA Policies ==========

@sla_policies_router.get(
    "",
    response_model=List[SlaPolicyResponse],
    summary="List SLA policies"
)
async def list_sla_policies(
    ctx: UserContext = Depends(get_user_context),
    service: SlaPolicyService = Depends(get_sla_policy_service)
):
    policies = await service.list_policies()
    return [SlaPolicyResponse.from_domain(p) for p in policies]


@sla_policies_router.post(
    "",
    response_model=SlaPolicyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an SLA policy",
    description="""
    One policy per (priority, department); a null department is the
    priority's fallback. Requires `manage_sla_policies`.
    """,
    responses={409: {"description": "A policy for this priority and department exists"}},
    openapi_extra={
        "requestBody": {"content": {"application/json": {"example": SLA_POLICY_EXAMPLE}}}
    }
)
async def create_sla_policy(
    request: SlaPolicyWriteDTO,
    ctx: UserContext = Depends(get_user_context),
    service: SlaPolicyService = Depends(get_sla_policy_service)
):
    policy = await service.create_policy(ctx, request)
    return SlaPolicyResponse.from_domain(policy)


@sla_policies_router.put(
    "/{policy_id}",
    response_model=SlaPolicyResponse,
    summary="Replace an SLA policy",
    responses={404: {"description": "Unknown policy"}, 409: {"description": "Duplicate"}}
)
async def update_sla_policy(
    policy_id: UUID,
    request: SlaPolicyWriteDTO,
    ctx: UserContext = Depends(get_user_context),
    service: SlaPolicyService = Depends(get_sla_policy_service)
):
    policy = await service.update_policy(ctx, policy_id, request)
    return SlaPolicyResponse.from_domain(policy)


@sla_policies_router.delete(
    "/{policy_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an SLA policy",
    responses={404: {"description": "Unknown policy"}}
)
async def delete_sla_policy(
    policy_id: UUID,
    ctx: UserContext = Depends(get_user_context),
    service: SlaPolicyService = Depends(get_sla_policy_service)
):
    await service.delete_policy(ctx, policy_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
