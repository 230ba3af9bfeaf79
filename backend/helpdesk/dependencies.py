"""Reusable FastAPI dependencies."""
from __future__ import annotations

from collections.abc import AsyncGenerator

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from .config import Settings, get_settings
from .database import get_session
from .enums import RoleName
from .mailer import Mailer
from .models import User
from .repository import UnitOfWork
from .security import decode_access_token
from .services import (
    AttachmentsService,
    IdentitiesService,
    MessagesService,
    TicketsService,
    UsersService,
)

# Use simple Bearer auth instead of OAuth2 password flow
bearer_scheme = HTTPBearer(auto_error=False)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that yields an AsyncSession."""
    async for session in get_session():
        yield session


def get_unit_of_work(session: AsyncSession = Depends(get_db_session)) -> UnitOfWork:
    """One unit of work per request, shared by every service of that request."""
    return UnitOfWork(session)


def get_mailer(settings: Settings = Depends(get_settings)) -> Mailer:
    return Mailer(settings)


def get_identities_service(
    unit_of_work: UnitOfWork = Depends(get_unit_of_work),
    settings: Settings = Depends(get_settings),
) -> IdentitiesService:
    return IdentitiesService(unit_of_work, settings)


def get_users_service(
    unit_of_work: UnitOfWork = Depends(get_unit_of_work),
    identities: IdentitiesService = Depends(get_identities_service),
    mailer: Mailer = Depends(get_mailer),
    settings: Settings = Depends(get_settings),
) -> UsersService:
    return UsersService(unit_of_work, identities, mailer, settings)


def get_tickets_service(
    unit_of_work: UnitOfWork = Depends(get_unit_of_work),
    settings: Settings = Depends(get_settings),
) -> TicketsService:
    return TicketsService(unit_of_work, settings)


def get_messages_service(
    unit_of_work: UnitOfWork = Depends(get_unit_of_work),
    settings: Settings = Depends(get_settings),
) -> MessagesService:
    return MessagesService(unit_of_work, settings)


def get_attachments_service(
    unit_of_work: UnitOfWork = Depends(get_unit_of_work),
    settings: Settings = Depends(get_settings),
) -> AttachmentsService:
    return AttachmentsService(unit_of_work, settings)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    unit_of_work: UnitOfWork = Depends(get_unit_of_work),
) -> User:
    """
    Return the authenticated user from a session token
    taken from the Authorization: Bearer <token> header.

    Tokens issued before the user's last password change are rejected.
    """

    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    try:
        token_data = decode_access_token(credentials.credentials)
    except jwt.PyJWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from exc

    user = await unit_of_work.users.get(token_data.user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Inactive or missing user",
        )
    if user.security_stamp != token_data.stamp:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session is no longer valid",
        )

    return user


def require_role(user: User, *roles: RoleName) -> None:
    """Ensure the current user holds one of `roles`."""

    if user.role not in {role.value for role in roles}:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient role",
        )
