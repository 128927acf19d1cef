"""
Routing Infrastructure Models
==============================

SQLAlchemy ORM models for the routing module.

These are the database representations of our domain entities.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from deskcore.config import Priority, TicketStatus
from deskcore.infrastructure.database import Base


class DepartmentModel(Base):
    """
    Database model for Department entity.

    Maps to the 'departments' table.
    """
    __tablename__ = "departments"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )


class SlaPolicyModel(Base):
    """
    Database model for SlaPolicy entity.

    Maps to the 'sla_policies' table. A null department_id is the fallback
    policy for the priority.
    """
    __tablename__ = "sla_policies"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    priority: Mapped[Priority] = mapped_column(String(50), nullable=False)
    department_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("departments.id", ondelete="CASCADE"), nullable=True, index=True
    )

    # Targets
    response_time_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    resolution_time_minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    # Databases treat NULLs as distinct here; fallback uniqueness is enforced by the service
    __table_args__ = (
        UniqueConstraint("priority", "department_id", name="uq_sla_policies_priority_department"),
    )


class TicketModel(Base):
    """
    Database model for Ticket entity.

    Maps to the 'internal_tickets' table.
    """
    __tablename__ = "internal_tickets"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    priority: Mapped[Priority] = mapped_column(String(50), nullable=False, default=Priority.MEDIUM)
    status: Mapped[TicketStatus] = mapped_column(String(50), nullable=False, default=TicketStatus.OPEN)

    created_by: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)

    # Routing decision
    assigned_to: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True, index=True)
    sla_policy_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("sla_policies.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )


class TicketDepartmentModel(Base):
    """
    Database model for a ticket's department link.

    Maps to the 'internal_ticket_departments' table. position keeps the
    assignment order; position 0 is the primary department.
    """
    __tablename__ = "internal_ticket_departments"

    ticket_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("internal_tickets.id", ondelete="CASCADE"), primary_key=True
    )
    department_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("departments.id", ondelete="CASCADE"), primary_key=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class NotificationModel(Base):
    """
    Database model for an in-app notification.

    Maps to the 'notifications' table. Rows are written by the routing core
    and delivered by whatever reads the table.
    """
    __tablename__ = "notifications"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    ticket_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("internal_tickets.id", ondelete="CASCADE"), nullable=True
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
