"""FastAPI dependency functions for resolving the calling principal."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.session import get_db
from src.modules.identity.auth import AuthenticatedUser, get_current_user
from src.modules.identity.resolver import RoleResolver
from src.modules.identity.roles import Principal


async def get_principal(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Principal:
    """Resolve the authenticated user's roles for the current request."""
    return await RoleResolver(db).resolve(user.id)
