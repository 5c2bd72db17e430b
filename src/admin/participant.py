"""Участник ledger с администратором (Market, RiskEngine)."""

import logging

from src.admin.handover import AdminHandover, HandoverTransitionResult
from src.core.errors import ErrorCode
from src.ledger.host import LedgerParticipant, atomic

logger = logging.getLogger(__name__)


class AdministeredParticipant(LedgerParticipant):
    """
    Mixin: хранит AdminHandover в атрибуте handover (часть _STATE_FIELDS
    подкласса) и предоставляет set_pending_admin / accept_admin.
    """

    handover: AdminHandover

    @property
    def admin(self) -> str:
        return self.handover.admin

    @property
    def pending_admin(self) -> str:
        return self.handover.pending_admin

    def _require_admin(self, sender: str, code: ErrorCode = ErrorCode.NOT_ADMIN) -> None:
        self.handover.require_admin(sender, code)

    @atomic
    def set_pending_admin(self, sender: str, new_pending_admin: str) -> HandoverTransitionResult:
        result = self.handover.propose(sender, new_pending_admin)
        self.handover = result.handover
        self.emit(
            "NewPendingAdmin",
            old_pending_admin=result.previous.pending_admin,
            new_pending_admin=new_pending_admin,
        )
        return result

    @atomic
    def accept_admin(self, sender: str) -> HandoverTransitionResult:
        result = self.handover.accept(sender)
        self.handover = result.handover
        self.emit("NewAdmin", old_admin=result.previous.admin, new_admin=result.handover.admin)
        self.emit(
            "NewPendingAdmin",
            old_pending_admin=result.previous.pending_admin,
            new_pending_admin="",
        )
        logger.info(f"{self.address}: admin {result.previous.admin} -> {result.handover.admin}")
        return result
