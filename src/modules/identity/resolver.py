"""Resolve an authenticated user id to a Principal with its current roles."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.exceptions import UnauthorizedException
from src.models.enums import UserRole
from src.models.reseller_member import ResellerMember
from src.models.user import User
from src.modules.identity.roles import Owner, Principal, Role, Staff, role_from_membership

logger = logging.getLogger(__name__)


class RoleResolver:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve(self, user_id: uuid.UUID) -> Principal:
        """Load the user and its memberships; raise if the user does not exist."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            logger.warning("Token subject %s does not match any user", user_id)
            raise UnauthorizedException("Unknown user")

        roles: list[Role] = []
        if user.role == UserRole.OWNER:
            roles.append(Owner())
        elif user.role == UserRole.STAFF:
            roles.append(Staff())
        else:
            memberships = await self.db.execute(
                select(ResellerMember).where(ResellerMember.user_id == user.id)
            )
            for membership in memberships.scalars().all():
                role = role_from_membership(membership)
                if role is not None:
                    roles.append(role)

        return Principal(user_id=user.id, primary_role=user.role, roles=tuple(roles))
