"""Resolved caller roles.

A user carries one primary role (owner, staff or reseller).  Resellers
additionally resolve to a per-team role derived from their membership
record.  ``Role`` is a closed union; every authorization helper in this
package dispatches over all of its variants.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import assert_never

from src.models.enums import MemberRole, MemberStatus, UserRole
from src.models.reseller_member import ResellerMember as Membership


@dataclass(frozen=True)
class Owner:
    pass


@dataclass(frozen=True)
class Staff:
    pass


@dataclass(frozen=True)
class ResellerAdmin:
    team_id: uuid.UUID


@dataclass(frozen=True)
class ResellerMember:
    team_id: uuid.UUID


@dataclass(frozen=True)
class ResellerDefault:
    team_id: uuid.UUID


Role = Owner | Staff | ResellerAdmin | ResellerMember | ResellerDefault


def role_from_membership(membership: Membership) -> Role | None:
    """Map a membership row to a reseller role, or None when it grants nothing.

    Only active, non-blocked memberships count.  Pending invitations and
    suspended memberships never resolve to a role.
    """
    if not membership.is_active or membership.is_blocked:
        return None
    if membership.status == MemberStatus.DEFAULT_MEMBER:
        return ResellerDefault(team_id=membership.team_id)
    if membership.status != MemberStatus.ACTIVE_MEMBER:
        return None
    if membership.role == MemberRole.ADMIN:
        return ResellerAdmin(team_id=membership.team_id)
    return ResellerMember(team_id=membership.team_id)


@dataclass(frozen=True)
class Principal:
    """An authenticated caller together with every role it currently holds."""

    user_id: uuid.UUID
    primary_role: UserRole
    roles: tuple[Role, ...] = field(default_factory=tuple)

    @property
    def is_owner(self) -> bool:
        return any(isinstance(r, Owner) for r in self.roles)

    @property
    def is_staff(self) -> bool:
        return any(isinstance(r, Staff) for r in self.roles)

    def is_team_admin(self, team_id: uuid.UUID) -> bool:
        return any(_admin_of(r, team_id) for r in self.roles)

    def is_team_member(self, team_id: uuid.UUID) -> bool:
        """Any reseller role in the team, including default members."""
        return any(team_of(r) == team_id for r in self.roles)

    def team_ids(self) -> list[uuid.UUID]:
        return [t for t in (team_of(r) for r in self.roles) if t is not None]


def team_of(role: Role) -> uuid.UUID | None:
    if isinstance(role, (Owner, Staff)):
        return None
    if isinstance(role, (ResellerAdmin, ResellerMember, ResellerDefault)):
        return role.team_id
    assert_never(role)


def _admin_of(role: Role, team_id: uuid.UUID) -> bool:
    if isinstance(role, ResellerAdmin):
        return role.team_id == team_id
    if isinstance(role, (Owner, Staff, ResellerMember, ResellerDefault)):
        return False
    assert_never(role)
