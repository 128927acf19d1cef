"""
Configuration Module
====================

Application settings and closed vocabularies (roles, permission keys,
priorities) shared by every bounded context.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="deskcore", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/helpdesk",
        description="Relational datastore connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)
    create_tables_on_startup: bool = Field(
        default=True,
        description="Create tables at startup (development only, use migrations in production)"
    )

    # ========== Permissions ==========
    grant_defaults_path: Path = Field(
        default=Path("role_permissions.yaml"),
        description="Path to the default role/permission matrix (YAML)"
    )
    seed_default_grants: bool = Field(
        default=True,
        description="Seed the grant table from grant_defaults_path when it is empty"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:9002"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

# Request value asking the planner to pick the department head.
AUTO_ASSIGN = "auto-assign"


class _ClosedVocabulary(str, Enum):
    """String enum whose unknown values parse to None instead of raising."""

    @classmethod
    def parse(cls, value: Optional[str]):
        if value is None:
            return None
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class Role(_ClosedVocabulary):
    """Class of principal a profile belongs to."""
    SYSTEM_ADMIN = "system_admin"
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    CEO = "ceo"
    MANAGER = "manager"
    DEPARTMENT_HEAD = "department_head"
    AGENT = "agent"
    USER = "user"

    @property
    def is_superuser(self) -> bool:
        return self in SUPERUSER_ROLES


SUPERUSER_ROLES = frozenset({Role.SYSTEM_ADMIN, Role.SUPER_ADMIN, Role.CEO})


class PermissionKey(_ClosedVocabulary):
    """Capability gating a feature or action."""
    VIEW_ANALYTICS = "view_analytics"
    ACCESS_KNOWLEDGE_BASE = "access_knowledge_base"
    MANAGE_KNOWLEDGE_BASE = "manage_knowledge_base"
    CREATE_TICKETS = "create_tickets"
    VIEW_ALL_TICKETS_IN_DEPARTMENT = "view_all_tickets_in_department"
    CHANGE_TICKET_STATUS = "change_ticket_status"
    DELETE_TICKETS = "delete_tickets"
    EDIT_TICKET_PROPERTIES = "edit_ticket_properties"
    ASSIGN_TICKETS = "assign_tickets"
    MANAGE_ALL_USERS = "manage_all_users"
    MANAGE_USERS_IN_DEPARTMENT = "manage_users_in_department"
    ACCESS_ADMIN_PANEL = "access_admin_panel"
    MANAGE_DEPARTMENTS = "manage_departments"
    MANAGE_TEMPLATES = "manage_templates"
    MANAGE_SLA_POLICIES = "manage_sla_policies"
    MANAGE_CHAT_SETTINGS = "manage_chat_settings"
    MANAGE_ROLES = "manage_roles"
    ACCESS_CRM_TICKETS = "access_crm_tickets"
    ACCESS_LIVE_CHAT = "access_live_chat"
    VIEW_TASK_BOARD = "view_task_board"
    DELETE_USERS = "delete_users"


class Priority(_ClosedVocabulary):
    """Ticket priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TicketStatus(_ClosedVocabulary):
    """Ticket lifecycle statuses."""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"
