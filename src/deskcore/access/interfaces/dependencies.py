"""
Access Dependencies
====================

FastAPI dependencies that resolve the caller's context.

Authorization itself happens in the application services, which re-read the
grant snapshot on every privileged call.
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from deskcore.access.application import AccessService
from deskcore.access.domain import UserContext
from deskcore.access.infrastructure import (
    SQLAlchemyGrantRepository,
    SQLAlchemyProfileRepository,
)
from deskcore.core import AuthenticationException
from deskcore.infrastructure.database import get_session


async def get_access_service(
    session: AsyncSession = Depends(get_session)
) -> AccessService:
    """Get access service instance."""
    return AccessService(
        SQLAlchemyGrantRepository(session),
        SQLAlchemyProfileRepository(session),
    )


async def get_user_context(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    access: AccessService = Depends(get_access_service)
) -> UserContext:
    """Resolve the acting user from the identity header."""
    user_id = None
    if x_user_id:
        try:
            user_id = UUID(x_user_id)
        except ValueError:
            raise AuthenticationException("Malformed user identifier.") from None
    return await access.resolve_context(user_id)

