"""Access control gate shared by orders, chat, files and disputes."""

from src.modules.access.gate import can_read, can_view_in_queue, can_write
from src.modules.access.service import AccessService

__all__ = ["AccessService", "can_read", "can_view_in_queue", "can_write"]
