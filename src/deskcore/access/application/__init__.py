"""
Access Application Layer
=========================

Contains:
- Services: AccessService (capability checks), GrantAdministrationService
- DTOs: Data transfer objects for API serialization
- Repository interfaces implemented by the infrastructure layer
"""

from deskcore.access.application.dto import (
    GrantListResponse,
    GrantReplacementRequest,
    GrantReplacementResponse,
    GrantResponse,
    PermissionCheckResponse,
    PermissionMapResponse,
)
from deskcore.access.application.services import (
    AccessService,
    GrantAdministrationService,
    IGrantDefaultsProvider,
    IGrantRepository,
    IProfileRepository,
)

__all__ = [
    # DTOs
    "GrantListResponse",
    "GrantReplacementRequest",
    "GrantReplacementResponse",
    "GrantResponse",
    "PermissionCheckResponse",
    "PermissionMapResponse",
    # Services
    "AccessService",
    "GrantAdministrationService",
    # Repository Interfaces
    "IGrantDefaultsProvider",
    "IGrantRepository",
    "IProfileRepository",
]
