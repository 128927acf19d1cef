"""
Routing Application DTOs
=========================

Data Transfer Objects for the routing API layer.

These Pydantic models handle serialization/deserialization and validation
for API requests and responses.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from deskcore.config import AUTO_ASSIGN, Priority, TicketStatus
from deskcore.routing.domain import (
    AssignmentPlan,
    Department,
    RequestedAssignee,
    SlaPolicy,
    Ticket,
)


def _validate_assignee(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    try:
        RequestedAssignee.parse(v)
    except ValueError:
        raise ValueError(f"must be '{AUTO_ASSIGN}', a user id, or empty") from None
    return v


# ========== Request DTOs ==========

class TicketCreateDTO(BaseModel):
    """DTO for creating a ticket."""
    title: str = Field(..., min_length=1, description="Ticket title")
    description: str = Field(..., min_length=10, description="Ticket description")
    category: str = Field(..., min_length=1, description="Ticket category")
    priority: Priority = Field(..., description="Ticket priority")
    status: TicketStatus = Field(default=TicketStatus.OPEN, description="Ticket status")
    department_ids: List[UUID] = Field(
        default_factory=list,
        description="Departments in assignment order; the first is primary"
    )
    assigned_to: Optional[str] = Field(
        default=None,
        description=f"'{AUTO_ASSIGN}', a user id, or empty for unassigned"
    )

    @field_validator("assigned_to")
    @classmethod
    def validate_assigned_to(cls, v: Optional[str]) -> Optional[str]:
        """Accept only the auto-assign sentinel, a user id, or empty."""
        return _validate_assignee(v)


class TicketUpdateDTO(BaseModel):
    """
    DTO for editing a ticket.

    Omitted fields keep their value. Omitting assigned_to keeps the current
    assignee; sending null or "" unassigns. Status moves through its own
    endpoint.
    """
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=10)
    category: Optional[str] = Field(None, min_length=1)
    priority: Optional[Priority] = None
    department_ids: Optional[List[UUID]] = None
    assigned_to: Optional[str] = None

    @field_validator("assigned_to")
    @classmethod
    def validate_assigned_to(cls, v: Optional[str]) -> Optional[str]:
        """Accept only the auto-assign sentinel, a user id, or empty."""
        return _validate_assignee(v)


class TicketAssigneeUpdateDTO(BaseModel):
    """DTO for handing a ticket to a user (null unassigns)."""
    assigned_to: Optional[UUID] = None


class TicketStatusUpdateDTO(BaseModel):
    """DTO for moving a ticket to another status."""
    status: TicketStatus


class AssignmentPlanRequest(BaseModel):
    """Inputs of the planner, for previewing routing before submitting."""
    priority: Priority
    department_ids: List[UUID] = Field(default_factory=list)
    assigned_to: Optional[str] = None

    @field_validator("assigned_to")
    @classmethod
    def validate_assigned_to(cls, v: Optional[str]) -> Optional[str]:
        """Accept only the auto-assign sentinel, a user id, or empty."""
        return _validate_assignee(v)


class SlaPolicyWriteDTO(BaseModel):
    """DTO for creating or replacing an SLA policy."""
    name: str = Field(..., min_length=3, description="Policy name")
    description: Optional[str] = None
    priority: Priority
    department_id: Optional[UUID] = Field(
        default=None,
        description="Department the policy applies to; null for the priority's fallback"
    )
    response_time_minutes: int = Field(..., ge=1)
    resolution_time_minutes: int = Field(..., ge=1)
    is_active: bool = True


class DepartmentCreateDTO(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


# ========== Response DTOs ==========

class AssignmentPlanResponse(BaseModel):
    """Planner output."""
    assigned_to: Optional[UUID] = None
    sla_policy_id: Optional[UUID] = None

    @classmethod
    def from_domain(cls, plan: AssignmentPlan) -> "AssignmentPlanResponse":
        return cls(assigned_to=plan.assigned_to, sla_policy_id=plan.sla_policy_id)


class TicketResponse(BaseModel):
    """Response model for a ticket."""
    id: UUID
    title: str
    description: str
    category: str
    priority: Priority
    status: TicketStatus
    created_by: UUID
    department_ids: List[UUID]
    assigned_to: Optional[UUID] = None
    sla_policy_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, ticket: Ticket) -> "TicketResponse":
        return cls(
            id=ticket.id,
            title=ticket.title,
            description=ticket.description,
            category=ticket.category,
            priority=ticket.priority,
            status=ticket.status,
            created_by=ticket.created_by,
            department_ids=list(ticket.department_ids),
            assigned_to=ticket.assigned_to,
            sla_policy_id=ticket.sla_policy_id,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
        )


class SlaPolicyResponse(BaseModel):
    """Response model for an SLA policy."""
    id: UUID
    name: str
    description: Optional[str] = None
    priority: Priority
    department_id: Optional[UUID] = None
    response_time_minutes: int
    resolution_time_minutes: int
    is_active: bool

    @classmethod
    def from_domain(cls, policy: SlaPolicy) -> "SlaPolicyResponse":
        return cls(
            id=policy.id,
            name=policy.name,
            description=policy.description,
            priority=policy.priority,
            department_id=policy.department_id,
            response_time_minutes=policy.response_time_minutes,
            resolution_time_minutes=policy.resolution_time_minutes,
            is_active=policy.is_active,
        )


class DepartmentResponse(BaseModel):
    id: UUID
    name: str

    @classmethod
    def from_domain(cls, department: Department) -> "DepartmentResponse":
        return cls(id=department.id, name=department.name)
