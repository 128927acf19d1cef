"""
Access Infrastructure Layer
============================

Infrastructure implementations for the access module:
- Models: SQLAlchemy ORM models (profiles, role_permissions)
- Repositories: grant store, profile lookups, default matrix provider
"""

from deskcore.access.infrastructure.models import ProfileModel, RolePermissionModel
from deskcore.access.infrastructure.repositories import (
    SQLAlchemyGrantRepository,
    SQLAlchemyProfileRepository,
    YAMLGrantDefaultsProvider,
)

__all__ = [
    "ProfileModel",
    "RolePermissionModel",
    "SQLAlchemyGrantRepository",
    "SQLAlchemyProfileRepository",
    "YAMLGrantDefaultsProvider",
]
