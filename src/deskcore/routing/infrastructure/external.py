"""
Routing External Integrations
==============================

Consumers of assignment-changed signals.

The routing core only produces signals; these sinks hand them to the
notification layer.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from deskcore.routing.application import IAssignmentSignalSink
from deskcore.routing.domain import AssignmentChanged
from deskcore.routing.infrastructure.models import NotificationModel
from deskcore.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

TICKET_ASSIGNED = "ticket_assigned"


class NotificationOutboxSink(IAssignmentSignalSink):
    """
    Writes a notification row for the new assignee.

    The row joins the request's session and commits together with the ticket
    change; it is never written for a change that rolls back.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def emit(self, signal: AssignmentChanged) -> None:
        logger.info(
            "Ticket assignment changed",
            extra={
                "ticket_id": str(signal.ticket_id),
                "previous_assignee": str(signal.previous_assignee) if signal.previous_assignee else None,
                "new_assignee": str(signal.new_assignee) if signal.new_assignee else None,
                "changed_by": str(signal.changed_by) if signal.changed_by else None,
            }
        )

        # Unassignment has nobody to notify
        if signal.new_assignee is None:
            return

        self._session.add(NotificationModel(
            user_id=signal.new_assignee,
            type=TICKET_ASSIGNED,
            ticket_id=signal.ticket_id,
            message=f"Ticket {signal.ticket_id} has been assigned to you.",
            created_at=signal.occurred_at,
        ))
