"""
Routing Interfaces Layer
=========================

API controllers (FastAPI routes) for tickets, departments and SLA policies.
"""

from deskcore.routing.interfaces.controllers import (
    departments_router,
    sla_policies_router,
    tickets_router,
)

__all__ = ["departments_router", "sla_policies_router", "tickets_router"]
