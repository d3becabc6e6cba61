"""Dispute resolution outcomes and their audit actions."""

from __future__ import annotations

from src.models.enums import DisputeStatus
from src.modules.audit.constants import (
    ACTION_DISPUTE_APPROVED,
    ACTION_DISPUTE_DECLINED,
    ACTION_DISPUTE_PARTIAL_REFUND,
)

# Resolutions are only possible from OPEN
RESOLVABLE_STATUSES: set[DisputeStatus] = {DisputeStatus.OPEN}

RESOLUTION_ACTIONS: dict[DisputeStatus, str] = {
    DisputeStatus.APPROVED: ACTION_DISPUTE_APPROVED,
    DisputeStatus.DECLINED: ACTION_DISPUTE_DECLINED,
    DisputeStatus.PARTIAL_REFUND: ACTION_DISPUTE_PARTIAL_REFUND,
}
