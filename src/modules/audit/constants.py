"""Audit action names and entity kinds written to the audit log."""

# ---------------------------------------------------------------------------
# Entity kinds
# ---------------------------------------------------------------------------

ENTITY_ORDER = "order"
ENTITY_DISPUTE = "dispute"
ENTITY_FILE = "file"
ENTITY_MEMBERSHIP = "reseller_member"

# ---------------------------------------------------------------------------
# Order lifecycle
# ---------------------------------------------------------------------------

ACTION_ORDER_CREATED = "order_created"
ACTION_ORDER_PICKED = "order_picked"
ACTION_ORDER_PASSED = "order_passed"
ACTION_ORDER_IN_PROGRESS = "order_in_progress"
ACTION_ORDER_HOLD = "order_hold"
ACTION_ORDER_RESUME = "order_resume"
ACTION_ORDER_FULFIL_SUBMITTED = "order_fulfil_submitted"
ACTION_ORDER_COMPLETED = "order_completed"
ACTION_ORDER_DISPUTED = "order_disputed"
ACTION_ORDER_AUTO_CANCELLED = "order_auto_cancelled"
ACTION_ORDER_CANCELLED_ALL_PASSED = "order_cancelled_auto_all_passed"

# ---------------------------------------------------------------------------
# ACL overlay
# ---------------------------------------------------------------------------

ACTION_ORDER_READ_ACCESS_UPDATED = "order_read_access_updated"
ACTION_ORDER_WRITE_ACCESS_UPDATED = "order_write_access_updated"

# ---------------------------------------------------------------------------
# Disputes
# ---------------------------------------------------------------------------

ACTION_DISPUTE_APPROVED = "dispute_fixed_and_completed"
ACTION_DISPUTE_DECLINED = "dispute_declined_and_completed"
ACTION_DISPUTE_PARTIAL_REFUND = "dispute_partial_refund_and_completed"

# ---------------------------------------------------------------------------
# Files and memberships
# ---------------------------------------------------------------------------

ACTION_FILE_UPLOADED = "file_uploaded"
ACTION_MEMBER_INVITED = "member_invited"
ACTION_MEMBER_JOINED = "member_joined"
ACTION_MEMBER_ROLE_CHANGED = "member_role_changed"
ACTION_MEMBER_SUSPENDED = "member_suspended"
ACTION_MEMBER_BLOCKED = "member_blocked"
ACTION_MEMBER_UNBLOCKED = "member_unblocked"
