# Import all models so SQLAlchemy metadata is populated for Alembic and create_all
from src.models.audit import AuditLog
from src.models.category import Category
from src.models.chat import Chat, Message
from src.models.dispute import Dispute
from src.models.enums import (
    DisputeStatus,
    FileEntityType,
    MemberRole,
    MemberStatus,
    OrderSla,
    OrderStatus,
    StaffStatus,
    UserRole,
)
from src.models.file_record import FileRecord
from src.models.order import Order
from src.models.order_pass import OrderPass
from src.models.reseller_member import ResellerMember
from src.models.staff_member import StaffMember
from src.models.team import Team
from src.models.user import User

__all__ = [
    "AuditLog",
    "Category",
    "Chat",
    "Dispute",
    "DisputeStatus",
    "FileEntityType",
    "FileRecord",
    "MemberRole",
    "MemberStatus",
    "Message",
    "Order",
    "OrderPass",
    "OrderSla",
    "OrderStatus",
    "ResellerMember",
    "StaffMember",
    "StaffStatus",
    "Team",
    "User",
    "UserRole",
]
