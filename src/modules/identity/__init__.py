"""Identity module — authentication, role resolution and team memberships."""

from src.modules.identity.auth import AuthenticatedUser, create_access_token, get_current_user
from src.modules.identity.dependencies import get_principal
from src.modules.identity.resolver import RoleResolver
from src.modules.identity.roles import (
    Owner,
    Principal,
    ResellerAdmin,
    ResellerDefault,
    ResellerMember,
    Role,
    Staff,
)

__all__ = [
    # Auth
    "AuthenticatedUser",
    "create_access_token",
    "get_current_user",
    # Roles
    "Owner",
    "Staff",
    "ResellerAdmin",
    "ResellerMember",
    "ResellerDefault",
    "Role",
    "Principal",
    "RoleResolver",
    # Dependencies
    "get_principal",
]
