import enum


class UserRole(str, enum.Enum):
    OWNER = "owner"
    STAFF = "staff"
    RESELLER = "reseller"


class MemberRole(str, enum.Enum):
    ADMIN = "admin"
    MEMBER = "member"


class MemberStatus(str, enum.Enum):
    PENDING_INVITATION = "pending_invitation"
    ACTIVE_MEMBER = "active_member"
    SUSPENDED_MEMBER = "suspended_member"
    DEFAULT_MEMBER = "default_member"


class StaffStatus(str, enum.Enum):
    ONLINE = "online"
    OFFLINE = "offline"


class OrderStatus(str, enum.Enum):
    SUBMITTED = "submitted"
    PICKED = "picked"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    FULFIL_SUBMITTED = "fulfil_submitted"
    COMPLETED = "completed"
    DISPUTED = "disputed"
    CANCELLED = "cancelled"


class OrderSla(str, enum.Enum):
    ASAP = "asap"
    TODAY = "today"
    WITHIN_24H = "24h"


class DisputeStatus(str, enum.Enum):
    OPEN = "open"
    APPROVED = "approved"
    DECLINED = "declined"
    PARTIAL_REFUND = "partial_refund"
    RESOLVED = "resolved"


class FileEntityType(str, enum.Enum):
    ORDER = "order"
    MESSAGE = "message"
    DISPUTE = "dispute"
    FULFILMENT = "fulfilment"
