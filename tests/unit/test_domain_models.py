"""
Тесты для доменных моделей: BorrowSnapshot, RepayAmount, AccountLiquidity,
MarketSnapshot, AccountSnapshot, AuditRecord и конвертеры единиц.

Проверяет:
1. Создание и валидацию моделей Pydantic
2. Immutability (frozen=True)
3. Инварианты (liquidity XOR shortfall, full без суммы)
4. Реестр audit-событий
"""

import pytest
from pydantic import ValidationError

from src.core.domain import (
    EVENT_FIELDS,
    AccountLiquidity,
    AccountSnapshot,
    AuditRecord,
    BorrowSnapshot,
    MarketSnapshot,
    RepayAmount,
    RepayKind,
    borrow_weight,
    seize_ratio,
    shares_from_underlying,
    tokens_to_denom,
    underlying_from_shares,
    value_of,
)
from src.core.errors import InvariantViolation
from src.core.math.fixed_point import EXP_SCALE, to_mantissa


# =============================================================================
# POSITION
# =============================================================================


class TestBorrowSnapshot:
    def test_balance_scales_with_index(self):
        snapshot = BorrowSnapshot(principal=100, interest_index=EXP_SCALE)
        assert snapshot.balance(to_mantissa("1.1")) == 110

    def test_empty_snapshot_is_zero_debt(self):
        assert BorrowSnapshot().balance(to_mantissa("1.5")) == 0

    def test_frozen(self):
        snapshot = BorrowSnapshot(principal=1, interest_index=EXP_SCALE)
        with pytest.raises(ValidationError):
            snapshot.principal = 2

    def test_negative_principal_rejected(self):
        with pytest.raises(ValidationError):
            BorrowSnapshot(principal=-1, interest_index=EXP_SCALE)


class TestRepayAmount:
    def test_exact(self):
        amount = RepayAmount.exact(40)
        assert amount.kind == RepayKind.EXACT
        assert not amount.is_full
        assert amount.resolve(100) == 40

    def test_full_resolves_to_current_debt(self):
        amount = RepayAmount.full()
        assert amount.is_full
        assert amount.resolve(123) == 123

    def test_coerce_int_is_exact(self):
        assert RepayAmount.coerce(7) == RepayAmount.exact(7)

    def test_coerce_passes_through(self):
        full = RepayAmount.full()
        assert RepayAmount.coerce(full) is full

    def test_full_with_amount_rejected(self):
        with pytest.raises(ValidationError):
            RepayAmount(kind=RepayKind.FULL, amount=5)

    def test_negative_exact_rejected(self):
        with pytest.raises(ValidationError):
            RepayAmount.exact(-1)


class TestAccountLiquidity:
    def test_from_values_surplus(self):
        result = AccountLiquidity.from_values(100, 30)
        assert (result.liquidity, result.shortfall) == (70, 0)
        assert not result.has_shortfall

    def test_from_values_shortfall(self):
        result = AccountLiquidity.from_values(30, 100)
        assert (result.liquidity, result.shortfall) == (0, 70)
        assert result.has_shortfall

    def test_from_values_equal_is_neither(self):
        result = AccountLiquidity.from_values(80, 80)
        assert (result.liquidity, result.shortfall) == (0, 0)

    def test_mutually_exclusive(self):
        with pytest.raises(ValidationError, match="mutually exclusive"):
            AccountLiquidity(liquidity=1, shortfall=1)


# =============================================================================
# SNAPSHOTS
# =============================================================================


class TestSnapshots:
    @pytest.fixture
    def market_snapshot(self) -> MarketSnapshot:
        return MarketSnapshot(
            address="market:A",
            symbol="mTKA",
            underlying="token:A",
            height=10,
            accrual_block_number=10,
            cash=100,
            total_shares=100,
            total_borrows=0,
            total_reserves=0,
            borrow_index=EXP_SCALE,
            reserve_factor_mantissa=0,
            exchange_rate_mantissa=EXP_SCALE,
        )

    def test_is_fresh(self, market_snapshot):
        assert market_snapshot.is_fresh
        stale = market_snapshot.model_copy(update={"height": 11})
        assert not stale.is_fresh

    def test_borrow_index_below_one_rejected(self, market_snapshot):
        data = market_snapshot.to_dict()
        data["borrow_index"] = EXP_SCALE - 1
        with pytest.raises(ValidationError):
            MarketSnapshot(**data)

    def test_reserve_factor_above_one_rejected(self, market_snapshot):
        data = market_snapshot.to_dict()
        data["reserve_factor_mantissa"] = EXP_SCALE + 1
        with pytest.raises(ValidationError):
            MarketSnapshot(**data)

    def test_account_snapshot_to_dict(self):
        snapshot = AccountSnapshot(
            market="market:A",
            account="alice",
            share_balance=5,
            borrow_balance=0,
            exchange_rate_mantissa=EXP_SCALE,
        )
        assert snapshot.to_dict()["share_balance"] == 5

    def test_account_snapshot_requires_account(self):
        with pytest.raises(ValidationError):
            AccountSnapshot(
                market="market:A",
                account="",
                share_balance=0,
                borrow_balance=0,
                exchange_rate_mantissa=EXP_SCALE,
            )


# =============================================================================
# AUDIT RECORD
# =============================================================================


class TestAuditRecord:
    def test_create_orders_args_by_registry(self):
        record = AuditRecord.create(
            5, "market:A", "Mint", {"mint_shares": 3, "minter": "alice", "mint_amount": 3}
        )
        assert tuple(record.args) == EVENT_FIELDS["Mint"]
        assert record.field_values() == ("alice", 3, 3)

    def test_unregistered_event(self):
        with pytest.raises(InvariantViolation, match="Unregistered"):
            AuditRecord.create(0, "market:A", "Unknown", {})

    def test_missing_field(self):
        with pytest.raises(InvariantViolation):
            AuditRecord.create(0, "market:A", "Mint", {"minter": "alice", "mint_amount": 1})

    def test_extra_field(self):
        with pytest.raises(InvariantViolation):
            AuditRecord.create(
                0, "market:A", "MarketListed", {"market": "market:A", "extra": 1}
            )

    def test_to_dict(self):
        record = AuditRecord.create(1, "risk-engine", "MarketListed", {"market": "market:A"})
        assert record.to_dict() == {
            "height": 1,
            "emitter": "risk-engine",
            "event": "MarketListed",
            "args": {"market": "market:A"},
        }


# =============================================================================
# UNITS
# =============================================================================


class TestUnits:
    def test_shares_round_trip_at_unit_rate(self):
        shares = shares_from_underlying(100, EXP_SCALE)
        assert underlying_from_shares(shares, EXP_SCALE) == 100

    def test_shares_truncate(self):
        assert shares_from_underlying(10, 3 * EXP_SCALE) == 3

    def test_tokens_to_denom(self):
        assert tokens_to_denom(to_mantissa("0.8"), EXP_SCALE, EXP_SCALE) == to_mantissa("0.8")

    def test_value_of(self):
        assert value_of(to_mantissa("0.8"), 100) == 80

    def test_borrow_weight(self):
        assert borrow_weight(110, to_mantissa("1.1")) == 100

    def test_borrow_weight_zero_index(self):
        with pytest.raises(ValueError):
            borrow_weight(1, 0)

    def test_seize_ratio(self):
        ratio = seize_ratio(to_mantissa("1.08"), EXP_SCALE, to_mantissa("0.9"), EXP_SCALE)
        assert ratio == to_mantissa("1.2")
