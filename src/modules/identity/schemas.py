"""Pydantic v2 schemas for teams, memberships and staff."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import MemberRole, MemberStatus, StaffStatus, UserRole

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class InviteMemberRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    role: MemberRole = MemberRole.MEMBER


class MemberRoleUpdate(BaseModel):
    role: MemberRole


class MemberBlockUpdate(BaseModel):
    is_blocked: bool


class StaffCreate(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    name: str | None = Field(None, max_length=200)


class ResellerSignup(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    name: str | None = Field(None, max_length=200)


class StaffActiveUpdate(BaseModel):
    is_active: bool


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    name: str | None = None
    role: UserRole


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    slug: str
    created_at: datetime


class MembershipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    team_id: uuid.UUID
    user_id: uuid.UUID
    role: MemberRole
    status: MemberStatus
    is_active: bool
    is_blocked: bool
    approved_by_user_id: uuid.UUID | None = None
    approved_at: datetime | None = None
    created_at: datetime


class StaffResponse(BaseModel):
    user: UserResponse
    status: StaffStatus
    is_active: bool


class RoleResponse(BaseModel):
    """Resolved roles of the calling user."""

    user_id: uuid.UUID
    primary_role: UserRole
    is_owner: bool
    is_staff: bool
    admin_team_ids: list[uuid.UUID]
    member_team_ids: list[uuid.UUID]


class SignupResponse(BaseModel):
    user: UserResponse
    team: TeamResponse
    membership: MembershipResponse
