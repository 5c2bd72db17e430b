"""Admin Handover: двухфазная передача прав администратора.

Состояния:
- NO_PENDING_ADMIN: admin назначен, кандидата нет
- PENDING_ADMIN_SET: admin предложил кандидата, ждём принятия
- ADMIN_ACCEPTED: кандидат принял права (pending очищен)

Переходы:
- propose(sender=admin, candidate) → PENDING_ADMIN_SET
- accept(sender=candidate) → ADMIN_ACCEPTED
- повторный propose из любого состояния заменяет кандидата

Значение AdminHandover неизменяемо: каждый переход возвращает новое значение
в HandoverTransitionResult, владелец (Market / RiskEngine) сохраняет его и
эмитит audit-записи.
"""

from dataclasses import dataclass, field, replace
from enum import Enum

from src.core.errors import ErrorCode, ProtocolError


class HandoverState(str, Enum):
    """Состояние передачи прав."""
    NO_PENDING_ADMIN = "NO_PENDING_ADMIN"
    PENDING_ADMIN_SET = "PENDING_ADMIN_SET"
    ADMIN_ACCEPTED = "ADMIN_ACCEPTED"


@dataclass(frozen=True)
class HandoverTransitionResult:
    """Результат перехода."""

    handover: "AdminHandover"
    previous: "AdminHandover"

    # Диагностика
    transition_occurred: bool
    transition_reason: str

    @property
    def new_state(self) -> HandoverState:
        return self.handover.state

    @property
    def previous_state(self) -> HandoverState:
        return self.previous.state


@dataclass(frozen=True)
class AdminHandover:
    """Текущий admin и кандидат."""

    admin: str
    pending_admin: str = ""
    state: HandoverState = field(default=HandoverState.NO_PENDING_ADMIN)

    def __post_init__(self) -> None:
        if not self.admin:
            raise ProtocolError(ErrorCode.ZERO_ADDRESS, "admin")
        has_pending = bool(self.pending_admin)
        if has_pending != (self.state == HandoverState.PENDING_ADMIN_SET):
            raise ValueError(
                f"pending_admin={self.pending_admin!r} inconsistent with state {self.state.value}"
            )

    def is_admin(self, account: str) -> bool:
        return account == self.admin

    def require_admin(self, sender: str, code: ErrorCode = ErrorCode.NOT_ADMIN) -> None:
        """
        Raises:
            ProtocolError(code): если sender не admin
        """
        if sender != self.admin:
            raise ProtocolError(code, sender)

    def propose(self, sender: str, candidate: str) -> HandoverTransitionResult:
        """Admin предлагает кандидата.

        Raises:
            ProtocolError(NotAdmin): sender не admin
            ProtocolError(ZeroAddress): пустой кандидат
        """
        self.require_admin(sender)
        if not candidate:
            raise ProtocolError(ErrorCode.ZERO_ADDRESS, "pending admin")

        new = replace(
            self, pending_admin=candidate, state=HandoverState.PENDING_ADMIN_SET
        )
        reason = "candidate_replaced" if self.pending_admin else "candidate_proposed"
        return HandoverTransitionResult(
            handover=new, previous=self, transition_occurred=True, transition_reason=reason
        )

    def accept(self, sender: str) -> HandoverTransitionResult:
        """Кандидат принимает права.

        Raises:
            ProtocolError(NotPendingAdmin): нет кандидата или sender не кандидат
        """
        if self.state != HandoverState.PENDING_ADMIN_SET or sender != self.pending_admin:
            raise ProtocolError(ErrorCode.NOT_PENDING_ADMIN, sender)

        new = AdminHandover(
            admin=self.pending_admin, pending_admin="", state=HandoverState.ADMIN_ACCEPTED
        )
        return HandoverTransitionResult(
            handover=new, previous=self, transition_occurred=True, transition_reason="accepted"
        )
