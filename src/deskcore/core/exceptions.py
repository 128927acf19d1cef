"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries. Each carries the HTTP status the
API layer answers with.
"""

from typing import Iterable, Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""

    status_code = 400


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""

    status_code = 422


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    status_code = 404

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConflictException(ApplicationException):
    """Exception when a write collides with an existing record."""

    status_code = 409


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class AuthenticationException(ApplicationException):
    """The caller could not be identified."""

    status_code = 401


class AuthorizationException(DomainException):
    """The caller is identified but lacks the capability."""

    status_code = 403

    def __init__(
        self,
        message: str = "You do not have permission to perform this action.",
        permission: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.permission = permission
        if permission and details is None:
            details = {"permission": permission}
        super().__init__(message, details)


class TicketPersistenceException(RepositoryException):
    """The final ticket write failed; fatal to the request."""

    def __init__(self, operation: str, reason: str, details: Optional[dict] = None):
        self.operation = operation
        super().__init__(f"Failed to {operation} ticket: {reason}", details)


class PermissionLockoutException(RepositoryException):
    """
    Raised when bulk grant replacement fails after the old grants were deleted.

    The affected roles may hold zero permissions until the replacement is
    retried, so this is always reported to the caller.
    """

    def __init__(self, roles: Iterable[str], reason: str, details: Optional[dict] = None):
        self.roles = sorted(roles)
        super().__init__(
            f"Permission update failed after existing grants for roles "
            f"{', '.join(self.roles)} were removed: {reason}. "
            "These roles may have no permissions until the update is retried.",
            details or {"roles": self.roles}
        )
