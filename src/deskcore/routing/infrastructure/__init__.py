"""
Routing Infrastructure Layer
=============================

Infrastructure implementations for the routing module:
- Models: SQLAlchemy ORM models (departments, sla_policies, tickets, notifications)
- Repositories: data access implementations
- External: assignment signal sinks
"""

from deskcore.routing.infrastructure.models import (
    DepartmentModel,
    NotificationModel,
    SlaPolicyModel,
    TicketDepartmentModel,
    TicketModel,
)
from deskcore.routing.infrastructure.repositories import (
    SQLAlchemyDepartmentRepository,
    SQLAlchemyProfileDirectory,
    SQLAlchemySlaPolicyRepository,
    SQLAlchemyTicketRepository,
)
from deskcore.routing.infrastructure.external import NotificationOutboxSink

__all__ = [
    # Models
    "DepartmentModel",
    "NotificationModel",
    "SlaPolicyModel",
    "TicketDepartmentModel",
    "TicketModel",
    # Repositories
    "SQLAlchemyDepartmentRepository",
    "SQLAlchemyProfileDirectory",
    "SQLAlchemySlaPolicyRepository",
    "SQLAlchemyTicketRepository",
    # External
    "NotificationOutboxSink",
]
