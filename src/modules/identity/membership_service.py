"""Membership lifecycle service — sign-up, invite, accept, promote, suspend, block."""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.base import utcnow
from src.exceptions import (
    BusinessRuleException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
)
from src.models.enums import MemberRole, MemberStatus, StaffStatus, UserRole
from src.models.reseller_member import ResellerMember
from src.models.staff_member import StaffMember
from src.models.team import Team
from src.models.user import User
from src.modules.audit.constants import (
    ACTION_MEMBER_BLOCKED,
    ACTION_MEMBER_INVITED,
    ACTION_MEMBER_JOINED,
    ACTION_MEMBER_ROLE_CHANGED,
    ACTION_MEMBER_SUSPENDED,
    ACTION_MEMBER_UNBLOCKED,
    ENTITY_MEMBERSHIP,
)
from src.modules.audit.service import AuditService
from src.modules.identity.roles import Principal
from src.modules.identity.team_names import generate_team_name

logger = logging.getLogger(__name__)

_MAX_SLUG_ATTEMPTS = 5


class MembershipService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _get_user_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def get_team(self, team_id: uuid.UUID) -> Team:
        result = await self.db.execute(select(Team).where(Team.id == team_id))
        team = result.scalar_one_or_none()
        if team is None:
            raise NotFoundException(f"Team {team_id} not found")
        return team

    async def get_membership(self, membership_id: uuid.UUID) -> ResellerMember:
        result = await self.db.execute(
            select(ResellerMember).where(ResellerMember.id == membership_id)
        )
        membership = result.scalar_one_or_none()
        if membership is None:
            raise NotFoundException(f"Membership {membership_id} not found")
        return membership

    # ------------------------------------------------------------------
    # Account provisioning
    # ------------------------------------------------------------------

    async def _create_user(self, email: str, name: str | None, role: UserRole) -> User:
        if await self._get_user_by_email(email) is not None:
            raise ConflictException(f"User with email '{email}' already exists")
        user = User(email=email.lower(), name=name, role=role)
        self.db.add(user)
        await self.db.flush()
        return user

    async def _create_team(self) -> Team:
        for _ in range(_MAX_SLUG_ATTEMPTS):
            name, slug = generate_team_name()
            taken = await self.db.execute(select(Team.id).where(Team.slug == slug))
            if taken.scalar_one_or_none() is None:
                break
        else:
            slug = f"{slug}-{uuid.uuid4().hex[:6]}"
        team = Team(name=name.title(), slug=slug)
        self.db.add(team)
        await self.db.flush()
        return team

    async def register_reseller(
        self, email: str, name: str | None = None
    ) -> tuple[User, Team, ResellerMember]:
        """Self sign-up: a reseller gets a fresh team and a default membership."""
        user = await self._create_user(email, name, UserRole.RESELLER)
        team = await self._create_team()
        membership = ResellerMember(
            team_id=team.id,
            user_id=user.id,
            role=MemberRole.MEMBER,
            status=MemberStatus.DEFAULT_MEMBER,
            is_active=True,
            is_blocked=False,
        )
        self.db.add(membership)
        await self.db.flush()
        logger.info("Registered reseller %s with team %s", user.id, team.id)
        return user, team, membership

    async def register_owner(self, email: str, name: str | None = None) -> User:
        """Provision an owner account (seeding and administration scripts)."""
        user = await self._create_user(email, name, UserRole.OWNER)
        logger.info("Registered owner %s", user.id)
        return user

    async def register_staff(
        self, principal: Principal, email: str, name: str | None = None
    ) -> tuple[User, StaffMember]:
        if not principal.is_owner:
            raise ForbiddenException("Only owners can create staff accounts")
        user = await self._create_user(email, name, UserRole.STAFF)
        staff = StaffMember(user_id=user.id, status=StaffStatus.OFFLINE, is_active=True)
        self.db.add(staff)
        await self.db.flush()
        logger.info("Registered staff %s", user.id)
        return user, staff

    async def set_staff_active(
        self, principal: Principal, staff_user_id: uuid.UUID, is_active: bool
    ) -> StaffMember:
        if not principal.is_owner:
            raise ForbiddenException("Only owners can manage staff accounts")
        result = await self.db.execute(
            select(StaffMember).where(StaffMember.user_id == staff_user_id)
        )
        staff = result.scalar_one_or_none()
        if staff is None:
            raise NotFoundException(f"Staff member {staff_user_id} not found")
        staff.is_active = is_active
        await self.db.flush()
        return staff

    async def list_staff(self, principal: Principal) -> list[tuple[User, StaffMember]]:
        if not principal.is_owner:
            raise ForbiddenException("Only owners can list staff")
        result = await self.db.execute(
            select(User, StaffMember)
            .join(StaffMember, StaffMember.user_id == User.id)
            .order_by(User.email.asc())
        )
        return [(user, staff) for user, staff in result.all()]

    # ------------------------------------------------------------------
    # Invitations
    # ------------------------------------------------------------------

    async def invite_member(
        self,
        principal: Principal,
        team_id: uuid.UUID,
        email: str,
        role: MemberRole = MemberRole.MEMBER,
    ) -> ResellerMember:
        """Create a pending invitation; the invitee's account is created if needed."""
        team = await self.get_team(team_id)
        if not principal.is_owner and not principal.is_team_admin(team.id):
            raise ForbiddenException("Only owners or team admins can invite members")

        user = await self._get_user_by_email(email)
        if user is None:
            user = await self._create_user(email, None, UserRole.RESELLER)
        elif user.role != UserRole.RESELLER:
            raise BusinessRuleException("Only reseller accounts can join a team")

        existing = await self.db.execute(
            select(ResellerMember.id).where(
                ResellerMember.team_id == team.id,
                ResellerMember.user_id == user.id,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictException(f"User '{email}' already has a membership in this team")

        membership = ResellerMember(
            team_id=team.id,
            user_id=user.id,
            role=role,
            status=MemberStatus.PENDING_INVITATION,
            is_active=False,
            is_blocked=False,
        )
        self.db.add(membership)
        await self.db.flush()

        await self.audit.record(
            actor_user_id=principal.user_id,
            entity=ENTITY_MEMBERSHIP,
            entity_id=membership.id,
            action=ACTION_MEMBER_INVITED,
            metadata={"team_id": str(team.id), "email": user.email, "role": role.value},
        )
        logger.info("Invited %s to team %s as %s", user.id, team.id, role.value)
        return membership

    async def accept_invitation(
        self, principal: Principal, membership_id: uuid.UUID
    ) -> ResellerMember:
        """Join the inviting team.  Every other membership of the user is deactivated."""
        membership = await self.get_membership(membership_id)
        if membership.user_id != principal.user_id:
            raise ForbiddenException("This invitation belongs to another user")
        if membership.status != MemberStatus.PENDING_INVITATION:
            raise BusinessRuleException("Invitation is no longer pending")
        if membership.is_blocked:
            raise BusinessRuleException("Membership is blocked")

        others = await self.db.execute(
            select(ResellerMember).where(
                ResellerMember.user_id == principal.user_id,
                ResellerMember.id != membership.id,
                ResellerMember.is_active.is_(True),
            )
        )
        for other in others.scalars().all():
            other.is_active = False
        # Deactivations must reach the database before the activation
        await self.db.flush()

        membership.status = MemberStatus.ACTIVE_MEMBER
        membership.is_active = True
        await self.db.flush()

        await self.audit.record(
            actor_user_id=principal.user_id,
            entity=ENTITY_MEMBERSHIP,
            entity_id=membership.id,
            action=ACTION_MEMBER_JOINED,
            metadata={"team_id": str(membership.team_id)},
        )
        logger.info("User %s joined team %s", principal.user_id, membership.team_id)
        return membership

    # ------------------------------------------------------------------
    # Owner administration
    # ------------------------------------------------------------------

    async def set_member_role(
        self, principal: Principal, membership_id: uuid.UUID, role: MemberRole
    ) -> ResellerMember:
        """Promote or demote an active member; approves default members."""
        if not principal.is_owner:
            raise ForbiddenException("Only owners can change member roles")
        membership = await self.get_membership(membership_id)
        if not membership.is_active or membership.is_blocked:
            raise BusinessRuleException("Only active, unblocked memberships can change role")

        now = utcnow()
        membership.role = role
        membership.status = MemberStatus.ACTIVE_MEMBER
        membership.approved_by_user_id = principal.user_id
        membership.approved_at = now
        await self.db.flush()

        await self.audit.record(
            actor_user_id=principal.user_id,
            entity=ENTITY_MEMBERSHIP,
            entity_id=membership.id,
            action=ACTION_MEMBER_ROLE_CHANGED,
            metadata={"team_id": str(membership.team_id), "role": role.value},
            created_at=now,
        )
        return membership

    async def promote_member(
        self, principal: Principal, membership_id: uuid.UUID
    ) -> ResellerMember:
        return await self.set_member_role(principal, membership_id, MemberRole.ADMIN)

    async def demote_member(
        self, principal: Principal, membership_id: uuid.UUID
    ) -> ResellerMember:
        return await self.set_member_role(principal, membership_id, MemberRole.MEMBER)

    async def suspend_member(
        self, principal: Principal, membership_id: uuid.UUID
    ) -> ResellerMember:
        if not principal.is_owner:
            raise ForbiddenException("Only owners can suspend members")
        membership = await self.get_membership(membership_id)
        membership.status = MemberStatus.SUSPENDED_MEMBER
        membership.is_active = False
        await self.db.flush()

        await self.audit.record(
            actor_user_id=principal.user_id,
            entity=ENTITY_MEMBERSHIP,
            entity_id=membership.id,
            action=ACTION_MEMBER_SUSPENDED,
            metadata={"team_id": str(membership.team_id)},
        )
        return membership

    async def set_member_blocked(
        self, principal: Principal, membership_id: uuid.UUID, is_blocked: bool
    ) -> ResellerMember:
        if not principal.is_owner:
            raise ForbiddenException("Only owners can block members")
        membership = await self.get_membership(membership_id)
        membership.is_blocked = is_blocked
        await self.db.flush()

        await self.audit.record(
            actor_user_id=principal.user_id,
            entity=ENTITY_MEMBERSHIP,
            entity_id=membership.id,
            action=ACTION_MEMBER_BLOCKED if is_blocked else ACTION_MEMBER_UNBLOCKED,
            metadata={"team_id": str(membership.team_id)},
        )
        return membership

    async def block_member(self, principal: Principal, membership_id: uuid.UUID) -> ResellerMember:
        return await self.set_member_blocked(principal, membership_id, True)

    async def unblock_member(
        self, principal: Principal, membership_id: uuid.UUID
    ) -> ResellerMember:
        return await self.set_member_blocked(principal, membership_id, False)

    async def list_team_members(
        self, principal: Principal, team_id: uuid.UUID
    ) -> list[ResellerMember]:
        team = await self.get_team(team_id)
        if not principal.is_owner and not principal.is_team_admin(team.id):
            raise ForbiddenException("Only owners or team admins can list team members")
        result = await self.db.execute(
            select(ResellerMember)
            .where(ResellerMember.team_id == team.id)
            .order_by(ResellerMember.created_at.asc())
        )
        return list(result.scalars().all())

    async def list_my_memberships(self, principal: Principal) -> list[ResellerMember]:
        result = await self.db.execute(
            select(ResellerMember)
            .where(ResellerMember.user_id == principal.user_id)
            .order_by(ResellerMember.created_at.asc())
        )
        return list(result.scalars().all())
