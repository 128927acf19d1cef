"""
Routing Application Layer
==========================

Application layer for the ticket routing module.

Contains:
- Services: resolvers, the assignment planner, ticket mutation flows and
  reference data maintenance
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from deskcore.routing.application.dto import (
    AssignmentPlanRequest,
    AssignmentPlanResponse,
    DepartmentCreateDTO,
    DepartmentResponse,
    SlaPolicyResponse,
    SlaPolicyWriteDTO,
    TicketAssigneeUpdateDTO,
    TicketCreateDTO,
    TicketResponse,
    TicketStatusUpdateDTO,
    TicketUpdateDTO,
)
from deskcore.routing.application.services import (
    DepartmentHeadResolver,
    DepartmentService,
    IAssignmentSignalSink,
    IDepartmentRepository,
    IProfileDirectory,
    ISlaPolicyRepository,
    ITicketRepository,
    SlaPolicyResolver,
    SlaPolicyService,
    TicketAssignmentPlanner,
    TicketRoutingService,
)

__all__ = [
    # DTOs
    "AssignmentPlanRequest",
    "AssignmentPlanResponse",
    "DepartmentCreateDTO",
    "DepartmentResponse",
    "SlaPolicyResponse",
    "SlaPolicyWriteDTO",
    "TicketAssigneeUpdateDTO",
    "TicketCreateDTO",
    "TicketResponse",
    "TicketStatusUpdateDTO",
    "TicketUpdateDTO",
    # Services
    "DepartmentHeadResolver",
    "DepartmentService",
    "SlaPolicyResolver",
    "SlaPolicyService",
    "TicketAssignmentPlanner",
    "TicketRoutingService",
    # Repository Interfaces
    "IAssignmentSignalSink",
    "IDepartmentRepository",
    "IProfileDirectory",
    "ISlaPolicyRepository",
    "ITicketRepository",
]
