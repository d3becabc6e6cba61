"""Identity API router — caller roles, teams, memberships and staff accounts."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.session import get_db
from src.exceptions import ForbiddenException
from src.models.enums import MemberRole
from src.models.user import User
from src.modules.identity.dependencies import get_principal
from src.modules.identity.membership_service import MembershipService
from src.modules.identity.roles import Principal
from src.modules.identity.schemas import (
    InviteMemberRequest,
    MemberBlockUpdate,
    MembershipResponse,
    MemberRoleUpdate,
    ResellerSignup,
    RoleResponse,
    SignupResponse,
    StaffActiveUpdate,
    StaffCreate,
    StaffResponse,
    TeamResponse,
    UserResponse,
)

router = APIRouter(tags=["identity"])


# ---------------------------------------------------------------------------
# Sign-up
# ---------------------------------------------------------------------------


@router.post("/signup", response_model=SignupResponse, status_code=201)
async def signup_reseller(body: ResellerSignup, db: AsyncSession = Depends(get_db)):
    """Self sign-up: creates a reseller account with its own team."""
    user, team, membership = await MembershipService(db).register_reseller(body.email, body.name)
    return SignupResponse(
        user=UserResponse.model_validate(user),
        team=TeamResponse.model_validate(team),
        membership=MembershipResponse.model_validate(membership),
    )


# ---------------------------------------------------------------------------
# Caller
# ---------------------------------------------------------------------------


@router.get("/me/roles", response_model=RoleResponse)
async def get_my_roles(principal: Principal = Depends(get_principal)):
    """Resolved roles of the calling user."""
    team_ids = principal.team_ids()
    return RoleResponse(
        user_id=principal.user_id,
        primary_role=principal.primary_role,
        is_owner=principal.is_owner,
        is_staff=principal.is_staff,
        admin_team_ids=[t for t in team_ids if principal.is_team_admin(t)],
        member_team_ids=team_ids,
    )


@router.get("/me/memberships", response_model=list[MembershipResponse])
async def list_my_memberships(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    svc = MembershipService(db)
    return [MembershipResponse.model_validate(m) for m in await svc.list_my_memberships(principal)]


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------


@router.get("/teams/{team_id}", response_model=TeamResponse)
async def get_team(
    team_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    if not principal.is_owner and not principal.is_team_member(team_id):
        raise ForbiddenException("You are not a member of this team")
    team = await MembershipService(db).get_team(team_id)
    return TeamResponse.model_validate(team)


@router.get("/teams/{team_id}/members", response_model=list[MembershipResponse])
async def list_team_members(
    team_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    members = await MembershipService(db).list_team_members(principal, team_id)
    return [MembershipResponse.model_validate(m) for m in members]


@router.post("/teams/{team_id}/invitations", response_model=MembershipResponse, status_code=201)
async def invite_member(
    team_id: uuid.UUID,
    body: InviteMemberRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Invite a reseller to the team (owner or team admin)."""
    membership = await MembershipService(db).invite_member(
        principal, team_id, body.email, body.role
    )
    return MembershipResponse.model_validate(membership)


# ---------------------------------------------------------------------------
# Memberships
# ---------------------------------------------------------------------------


@router.post("/memberships/{membership_id}/accept", response_model=MembershipResponse)
async def accept_invitation(
    membership_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    membership = await MembershipService(db).accept_invitation(principal, membership_id)
    return MembershipResponse.model_validate(membership)


@router.put("/memberships/{membership_id}/role", response_model=MembershipResponse)
async def set_member_role(
    membership_id: uuid.UUID,
    body: MemberRoleUpdate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    svc = MembershipService(db)
    if body.role == MemberRole.ADMIN:
        membership = await svc.promote_member(principal, membership_id)
    else:
        membership = await svc.demote_member(principal, membership_id)
    return MembershipResponse.model_validate(membership)


@router.post("/memberships/{membership_id}/suspend", response_model=MembershipResponse)
async def suspend_member(
    membership_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    membership = await MembershipService(db).suspend_member(principal, membership_id)
    return MembershipResponse.model_validate(membership)


@router.put("/memberships/{membership_id}/blocked", response_model=MembershipResponse)
async def set_member_blocked(
    membership_id: uuid.UUID,
    body: MemberBlockUpdate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    svc = MembershipService(db)
    if body.is_blocked:
        membership = await svc.block_member(principal, membership_id)
    else:
        membership = await svc.unblock_member(principal, membership_id)
    return MembershipResponse.model_validate(membership)


# ---------------------------------------------------------------------------
# Staff
# ---------------------------------------------------------------------------


@router.get("/staff", response_model=list[StaffResponse])
async def list_staff(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    rows = await MembershipService(db).list_staff(principal)
    return [
        StaffResponse(
            user=UserResponse.model_validate(user), status=staff.status, is_active=staff.is_active
        )
        for user, staff in rows
    ]


@router.post("/staff", response_model=StaffResponse, status_code=201)
async def create_staff(
    body: StaffCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    user, staff = await MembershipService(db).register_staff(principal, body.email, body.name)
    return StaffResponse(
        user=UserResponse.model_validate(user), status=staff.status, is_active=staff.is_active
    )


@router.put("/staff/{user_id}/active", response_model=StaffResponse)
async def set_staff_active(
    user_id: uuid.UUID,
    body: StaffActiveUpdate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    svc = MembershipService(db)
    staff = await svc.set_staff_active(principal, user_id, body.is_active)
    user = await db.get_one(User, user_id)
    return StaffResponse(
        user=UserResponse.model_validate(user), status=staff.status, is_active=staff.is_active
    )
