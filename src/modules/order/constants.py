"""Order status transitions and terminal states."""

from __future__ import annotations

from src.models.enums import OrderStatus

# ---------------------------------------------------------------------------
# Valid status transitions: current_status -> set of allowed next statuses
# ---------------------------------------------------------------------------

ORDER_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.SUBMITTED: {
        OrderStatus.PICKED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PICKED: {
        OrderStatus.IN_PROGRESS,
        OrderStatus.ON_HOLD,
    },
    OrderStatus.IN_PROGRESS: {
        OrderStatus.ON_HOLD,
        OrderStatus.FULFIL_SUBMITTED,
    },
    OrderStatus.ON_HOLD: {
        OrderStatus.IN_PROGRESS,
        OrderStatus.FULFIL_SUBMITTED,
    },
    OrderStatus.FULFIL_SUBMITTED: {
        OrderStatus.COMPLETED,
    },
}

# Terminal statuses (no further transitions)
ORDER_TERMINAL_STATUSES: set[OrderStatus] = {
    OrderStatus.COMPLETED,
    OrderStatus.DISPUTED,
    OrderStatus.CANCELLED,
}

# ---------------------------------------------------------------------------
# Source statuses accepted by each staff/reseller operation
# ---------------------------------------------------------------------------

PICK_FROM: set[OrderStatus] = {OrderStatus.SUBMITTED}
START_FROM: set[OrderStatus] = {OrderStatus.PICKED, OrderStatus.ON_HOLD}
HOLD_FROM: set[OrderStatus] = {OrderStatus.PICKED, OrderStatus.IN_PROGRESS}
RESUME_FROM: set[OrderStatus] = {OrderStatus.ON_HOLD}
SUBMIT_FULFILMENT_FROM: set[OrderStatus] = {OrderStatus.IN_PROGRESS, OrderStatus.ON_HOLD}
COMPLETE_FROM: set[OrderStatus] = {OrderStatus.FULFIL_SUBMITTED}
DISPUTE_FROM: set[OrderStatus] = {OrderStatus.COMPLETED}
