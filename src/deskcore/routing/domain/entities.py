"""
Routing Domain Entities
========================

Pure Python domain entities for ticket routing.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from deskcore.config import Priority, TicketStatus


@dataclass(frozen=True)
class Department:
    """A department tickets are routed to."""

    id: UUID
    name: str


@dataclass(frozen=True)
class SlaPolicy:
    """
    Response/resolution targets for a priority, optionally per department.

    department_id None is the fallback default for the priority.
    """

    id: UUID
    name: str
    priority: Priority
    response_time_minutes: int
    resolution_time_minutes: int
    department_id: Optional[UUID] = None
    description: Optional[str] = None
    is_active: bool = True

    @property
    def is_fallback(self) -> bool:
        return self.department_id is None


@dataclass(frozen=True)
class AssignmentPlan:
    """Routing decision persisted with the ticket."""

    assigned_to: Optional[UUID] = None
    sla_policy_id: Optional[UUID] = None

    def to_dict(self) -> dict:
        return {
            "assigned_to": str(self.assigned_to) if self.assigned_to else None,
            "sla_policy_id": str(self.sla_policy_id) if self.sla_policy_id else None,
        }


@dataclass(frozen=True)
class AssignmentChanged:
    """
    Signal for the notification collaborator: a ticket changed hands.

    Produced by the routing core; delivery belongs elsewhere.
    """

    ticket_id: UUID
    previous_assignee: Optional[UUID]
    new_assignee: Optional[UUID]
    changed_by: Optional[UUID] = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class Ticket:
    """
    Internal ticket, reduced to the fields routing reads and writes.

    department_ids keeps assignment order; the first entry is the primary
    department.
    """

    id: UUID
    title: str
    description: str
    category: str
    priority: Priority
    status: TicketStatus
    created_by: UUID
    department_ids: List[UUID] = field(default_factory=list)
    assigned_to: Optional[UUID] = None
    sla_policy_id: Optional[UUID] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def apply_plan(self, plan: AssignmentPlan) -> None:
        self.assigned_to = plan.assigned_to
        self.sla_policy_id = plan.sla_policy_id
        self.updated_at = datetime.now(timezone.utc)
