"""Admin: двухфазная передача прав администратора."""

from src.admin.handover import AdminHandover, HandoverState, HandoverTransitionResult

__all__ = [
    "AdminHandover",
    "HandoverState",
    "HandoverTransitionResult",
]
