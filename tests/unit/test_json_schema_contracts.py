"""
Tests for JSON Schema Contract Validators

Комплексное тестирование JSON Schema валидаторов:
- Валидность самих схем
- Валидация правильных данных
- Детекция нарушений required полей и типов
- Детекция нарушений constraints (min/max/pattern)
- Интеграция с Pydantic моделями и audit log
"""

import pytest
from jsonschema import ValidationError

from src.core.contracts import (
    AccountSnapshotValidator,
    AuditRecordValidator,
    MarketSnapshotValidator,
    SchemaLoader,
    validate_account_snapshot,
    validate_audit_log,
    validate_audit_record,
    validate_market_snapshot,
)
from src.core.domain import AuditRecord
from src.core.math.fixed_point import EXP_SCALE

ALICE = "alice"


# =============================================================================
# FIXTURES - VALID DATA SAMPLES
# =============================================================================


@pytest.fixture
def valid_audit_record():
    return {
        "height": 120,
        "emitter": "market:A",
        "event": "Mint",
        "args": {"minter": "alice", "mint_amount": 100, "mint_shares": 100},
    }


@pytest.fixture
def valid_market_snapshot():
    return {
        "address": "market:A",
        "symbol": "mTKA",
        "underlying": "token:A",
        "height": 120,
        "accrual_block_number": 120,
        "cash": 100,
        "total_shares": 100,
        "total_borrows": 0,
        "total_reserves": 0,
        "borrow_index": EXP_SCALE,
        "reserve_factor_mantissa": 0,
        "exchange_rate_mantissa": EXP_SCALE,
    }


@pytest.fixture
def valid_account_snapshot():
    return {
        "market": "market:A",
        "account": "alice",
        "share_balance": 100,
        "borrow_balance": 0,
        "exchange_rate_mantissa": EXP_SCALE,
    }


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class TestSchemaLoader:
    @pytest.mark.parametrize("name", ["audit_record", "market_snapshot", "account_snapshot"])
    def test_schemas_load_and_are_valid(self, name):
        schema = SchemaLoader().load_schema(name)
        assert schema["type"] == "object"

    def test_missing_schema(self):
        with pytest.raises(FileNotFoundError):
            SchemaLoader().load_schema("does_not_exist")

    def test_schema_cached(self):
        loader = SchemaLoader()
        assert loader.load_schema("audit_record") is loader.load_schema("audit_record")


# =============================================================================
# AUDIT RECORD
# =============================================================================


class TestAuditRecordContract:
    def test_valid(self, valid_audit_record):
        validate_audit_record(valid_audit_record)

    def test_missing_required(self, valid_audit_record):
        del valid_audit_record["emitter"]
        with pytest.raises(ValidationError):
            validate_audit_record(valid_audit_record)

    def test_event_pattern(self, valid_audit_record):
        valid_audit_record["event"] = "mint"
        assert not AuditRecordValidator().is_valid(valid_audit_record)

    def test_negative_height(self, valid_audit_record):
        valid_audit_record["height"] = -1
        assert not AuditRecordValidator().is_valid(valid_audit_record)

    def test_nested_arg_rejected(self, valid_audit_record):
        valid_audit_record["args"]["minter"] = {"nested": True}
        assert not AuditRecordValidator().is_valid(valid_audit_record)

    def test_additional_property_rejected(self, valid_audit_record):
        valid_audit_record["extra"] = 1
        errors = list(AuditRecordValidator().iter_errors(valid_audit_record))
        assert len(errors) == 1

    def test_pydantic_record_matches_contract(self):
        record = AuditRecord.create(
            1, "risk-engine", "ActionPaused", {"action": "Seize", "pause_state": True}
        )
        validate_audit_record(record.to_dict())

    def test_ledger_records_match_contract(self, borrowed_position):
        audit_log = borrowed_position.ledger.audit_log
        assert validate_audit_log(audit_log) == len(audit_log)
        assert len(audit_log) > 0


# =============================================================================
# SNAPSHOTS
# =============================================================================


class TestSnapshotContracts:
    def test_valid_market_snapshot(self, valid_market_snapshot):
        validate_market_snapshot(valid_market_snapshot)

    def test_borrow_index_minimum(self, valid_market_snapshot):
        valid_market_snapshot["borrow_index"] = EXP_SCALE - 1
        assert not MarketSnapshotValidator().is_valid(valid_market_snapshot)

    def test_reserve_factor_maximum(self, valid_market_snapshot):
        valid_market_snapshot["reserve_factor_mantissa"] = EXP_SCALE + 1
        assert not MarketSnapshotValidator().is_valid(valid_market_snapshot)

    def test_float_rejected(self, valid_market_snapshot):
        valid_market_snapshot["cash"] = 1.5
        assert not MarketSnapshotValidator().is_valid(valid_market_snapshot)

    def test_valid_account_snapshot(self, valid_account_snapshot):
        validate_account_snapshot(valid_account_snapshot)

    def test_account_snapshot_missing_field(self, valid_account_snapshot):
        del valid_account_snapshot["borrow_balance"]
        assert not AccountSnapshotValidator().is_valid(valid_account_snapshot)

    def test_live_market_snapshot_matches_contract(self, borrowed_position):
        d = borrowed_position
        validate_market_snapshot(d.market_b.snapshot().to_dict())
        validate_account_snapshot(d.market_b.get_account_snapshot(ALICE).to_dict())
