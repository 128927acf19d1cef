"""
Routing Domain Layer
====================

Domain layer for the ticket routing module.

Contains:
- Entities: Department, SlaPolicy, Ticket, AssignmentPlan, AssignmentChanged
- Value Objects: RequestedAssignee
- Domain Services: RoutingRules (pure selection logic)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from deskcore.routing.domain.entities import (
    AssignmentChanged,
    AssignmentPlan,
    Department,
    SlaPolicy,
    Ticket,
)
from deskcore.routing.domain.value_objects import RequestedAssignee, RoutingRules

__all__ = [
    # Entities
    "AssignmentChanged",
    "AssignmentPlan",
    "Department",
    "SlaPolicy",
    "Ticket",
    # Value Objects & Services
    "RequestedAssignee",
    "RoutingRules",
]
