"""
Тесты двухфазной передачи прав администратора.

Проверяет переходы AdminHandover и их интеграцию с Market / RiskEngine:
propose → accept, замена кандидата, отказ неавторизованным.
"""

import pytest

from src.admin import AdminHandover, HandoverState
from src.core.errors import ErrorCode, ProtocolError

ADMIN = "admin"
CANDIDATE = "candidate"
OTHER = "other"


class TestAdminHandover:
    def test_initial_state(self):
        handover = AdminHandover(admin=ADMIN)
        assert handover.state == HandoverState.NO_PENDING_ADMIN
        assert handover.is_admin(ADMIN)

    def test_empty_admin_rejected(self):
        with pytest.raises(ProtocolError) as exc_info:
            AdminHandover(admin="")
        assert exc_info.value.code == ErrorCode.ZERO_ADDRESS

    def test_inconsistent_pending_rejected(self):
        with pytest.raises(ValueError):
            AdminHandover(admin=ADMIN, pending_admin=CANDIDATE)

    def test_propose(self):
        result = AdminHandover(admin=ADMIN).propose(ADMIN, CANDIDATE)
        assert result.transition_occurred
        assert result.transition_reason == "candidate_proposed"
        assert result.previous_state == HandoverState.NO_PENDING_ADMIN
        assert result.new_state == HandoverState.PENDING_ADMIN_SET
        assert result.handover.pending_admin == CANDIDATE

    def test_propose_replaces_candidate(self):
        handover = AdminHandover(admin=ADMIN).propose(ADMIN, CANDIDATE).handover
        result = handover.propose(ADMIN, OTHER)
        assert result.transition_reason == "candidate_replaced"
        assert result.handover.pending_admin == OTHER

    def test_propose_requires_admin(self):
        with pytest.raises(ProtocolError) as exc_info:
            AdminHandover(admin=ADMIN).propose(OTHER, CANDIDATE)
        assert exc_info.value.code == ErrorCode.NOT_ADMIN

    def test_propose_empty_candidate(self):
        with pytest.raises(ProtocolError) as exc_info:
            AdminHandover(admin=ADMIN).propose(ADMIN, "")
        assert exc_info.value.code == ErrorCode.ZERO_ADDRESS

    def test_accept(self):
        handover = AdminHandover(admin=ADMIN).propose(ADMIN, CANDIDATE).handover
        result = handover.accept(CANDIDATE)
        assert result.handover.admin == CANDIDATE
        assert result.handover.pending_admin == ""
        assert result.new_state == HandoverState.ADMIN_ACCEPTED

    def test_accept_by_non_candidate(self):
        handover = AdminHandover(admin=ADMIN).propose(ADMIN, CANDIDATE).handover
        with pytest.raises(ProtocolError) as exc_info:
            handover.accept(OTHER)
        assert exc_info.value.code == ErrorCode.NOT_PENDING_ADMIN

    def test_accept_without_candidate(self):
        with pytest.raises(ProtocolError) as exc_info:
            AdminHandover(admin=ADMIN).accept(ADMIN)
        assert exc_info.value.code == ErrorCode.NOT_PENDING_ADMIN

    def test_custom_error_code(self):
        with pytest.raises(ProtocolError) as exc_info:
            AdminHandover(admin=ADMIN).require_admin(OTHER, ErrorCode.REDUCE_RESERVES_ADMIN_CHECK)
        assert exc_info.value.code == ErrorCode.REDUCE_RESERVES_ADMIN_CHECK


class TestParticipantHandover:
    """Передача прав на живых участниках ledger."""

    def test_engine_handover_emits_events(self, deployment):
        engine = deployment.engine
        engine.set_pending_admin(ADMIN, CANDIDATE)
        assert engine.pending_admin == CANDIDATE

        engine.accept_admin(CANDIDATE)
        assert engine.admin == CANDIDATE
        assert engine.pending_admin == ""

        new_admin = deployment.ledger.records(event="NewAdmin", emitter=engine.address)
        assert new_admin[-1].args == {"old_admin": ADMIN, "new_admin": CANDIDATE}
        pending = deployment.ledger.records(event="NewPendingAdmin", emitter=engine.address)
        assert pending[-1].args == {"old_pending_admin": CANDIDATE, "new_pending_admin": ""}

    def test_old_admin_loses_rights(self, deployment):
        market = deployment.market_a
        market.set_pending_admin(ADMIN, CANDIDATE)
        market.accept_admin(CANDIDATE)
        with pytest.raises(ProtocolError) as exc_info:
            market.set_pending_admin(ADMIN, OTHER)
        assert exc_info.value.code == ErrorCode.NOT_ADMIN

    def test_failed_accept_leaves_handover_unchanged(self, deployment):
        market = deployment.market_a
        market.set_pending_admin(ADMIN, CANDIDATE)
        with pytest.raises(ProtocolError):
            market.accept_admin(OTHER)
        assert market.admin == ADMIN
        assert market.pending_admin == CANDIDATE
