"""
Access Interfaces Layer
=======================

Interface adapters for the access module:
- Controllers: FastAPI route handlers
- Dependencies: caller context resolution
"""

from deskcore.access.interfaces.controllers import access_router
from deskcore.access.interfaces.dependencies import get_access_service, get_user_context

__all__ = [
    "access_router",
    "get_access_service",
    "get_user_context",
]
