"""
Unit тесты для policy-классов Risk Engine.

Политики - чистые проверки: PolicyResult с block_reason вместо исключений.
Порядок проверок фиксирован (первая сработавшая определяет ошибку).
"""

from types import SimpleNamespace

import pytest

from src.core.errors import ErrorCode, ProtocolError
from src.core.math.fixed_point import EXP_SCALE
from src.risk_engine import MarketEntry, PolicyResult
from src.risk_engine.policies import (
    BorrowPolicy,
    LiquidatePolicy,
    MintPolicy,
    RedeemPolicy,
    RepayPolicy,
    SeizePolicy,
    TransferPolicy,
)

ALICE = "alice"
TRUSTED = "leverage"


class FixedOracle:
    def __init__(self, price):
        self.price = price

    def get_underlying_price(self, market):
        return self.price


def make_market(address="market:X", total_borrows=0, risk_engine="engine", debt=0):
    return SimpleNamespace(
        address=address,
        total_borrows=total_borrows,
        risk_engine=risk_engine,
        borrow_balance_stored=lambda account: debt,
    )


# =============================================================================
# RESULT
# =============================================================================


class TestPolicyResult:
    def test_allow(self):
        result = PolicyResult.allow("ok")
        assert result.allowed and result.block_reason is None
        assert result.raise_if_blocked() is result

    def test_block_raises(self):
        result = PolicyResult.block(ErrorCode.MINT_PAUSED, "market:X")
        with pytest.raises(ProtocolError) as exc_info:
            result.raise_if_blocked()
        assert exc_info.value.code == ErrorCode.MINT_PAUSED
        assert exc_info.value.details == "market:X"

    def test_inconsistent_results_rejected(self):
        with pytest.raises(ValueError):
            PolicyResult(allowed=True, block_reason=ErrorCode.MINT_PAUSED)
        with pytest.raises(ValueError):
            PolicyResult(allowed=False, block_reason=None)


# =============================================================================
# MINT / REDEEM / REPAY
# =============================================================================


class TestMintPolicy:
    def test_listed(self):
        entry = MarketEntry(market=make_market())
        assert MintPolicy().evaluate(entry, "market:X", ALICE, 1).allowed

    def test_unlisted(self):
        result = MintPolicy().evaluate(None, "market:X", ALICE, 1)
        assert result.block_reason == ErrorCode.MARKET_NOT_LISTED

    def test_pause_checked_first(self):
        entry = MarketEntry(market=make_market(), listed=False, mint_paused=True)
        assert MintPolicy().evaluate(entry, "market:X", ALICE, 1).block_reason == ErrorCode.MINT_PAUSED


class TestRedeemPolicy:
    def test_unlisted(self):
        result = RedeemPolicy().evaluate(None, make_market(), ALICE, 1, True, [], FixedOracle(EXP_SCALE))
        assert result.block_reason == ErrorCode.MARKET_NOT_LISTED

    def test_non_member_skips_liquidity(self):
        entry = MarketEntry(market=make_market())
        result = RedeemPolicy().evaluate(entry, entry.market, ALICE, 10**30, False, [], None)
        assert result.allowed

    @pytest.mark.parametrize(
        "amount, shares, allowed",
        [(0, 0, True), (5, 1, True), (5, 0, False)],
    )
    def test_verify(self, amount, shares, allowed):
        result = RedeemPolicy.verify(amount, shares)
        assert result.allowed is allowed
        if not allowed:
            assert result.block_reason == ErrorCode.ZERO_REDEEM_SHARES


class TestRepayPolicy:
    def test_listed_only(self):
        entry = MarketEntry(market=make_market())
        assert RepayPolicy().evaluate(entry, "market:X", ALICE, ALICE).allowed
        result = RepayPolicy().evaluate(None, "market:X", ALICE, ALICE)
        assert result.block_reason == ErrorCode.MARKET_NOT_LISTED


# =============================================================================
# BORROW
# =============================================================================


class TestBorrowPolicy:
    def evaluate(self, entry, market, is_member=True, caller_is_market=True, oracle=None, amount=10):
        oracle = oracle or FixedOracle(EXP_SCALE)
        return BorrowPolicy().evaluate(
            entry, market, ALICE, amount, is_member, caller_is_market, [], oracle
        )

    def test_paused_before_listing(self):
        market = make_market()
        entry = MarketEntry(market=market, listed=False, borrow_paused=True)
        assert self.evaluate(entry, market).block_reason == ErrorCode.BORROW_PAUSED

    def test_unlisted(self):
        assert self.evaluate(None, make_market()).block_reason == ErrorCode.MARKET_NOT_LISTED

    def test_auto_entry_requires_market_caller(self):
        market = make_market()
        result = self.evaluate(MarketEntry(market=market), market, is_member=False, caller_is_market=False)
        assert result.block_reason == ErrorCode.SENDER_MUST_BE_MARKET

    def test_zero_price(self):
        market = make_market()
        result = self.evaluate(MarketEntry(market=market), market, oracle=FixedOracle(0))
        assert result.block_reason == ErrorCode.PRICE_ERROR

    @pytest.mark.parametrize("total_borrows", [90, 95])
    def test_cap_reached(self, total_borrows):
        # cap достигнут, когда total + amount >= cap
        market = make_market(total_borrows=total_borrows)
        result = self.evaluate(MarketEntry(market=market, borrow_cap=100), market)
        assert result.block_reason == ErrorCode.BORROW_CAP_REACHED

    def test_behalf_requires_trusted_caller(self):
        market = make_market()
        result = BorrowPolicy().evaluate_behalf(
            TRUSTED, ALICE, MarketEntry(market=market), market, ALICE, 1, True, True, [], None
        )
        assert result.block_reason == ErrorCode.SENDER_MUST_BE_TRUSTED_CALLER

    def test_behalf_without_configured_caller(self):
        market = make_market()
        result = BorrowPolicy().evaluate_behalf(
            "", "", MarketEntry(market=market), market, ALICE, 1, True, True, [], None
        )
        assert result.block_reason == ErrorCode.SENDER_MUST_BE_TRUSTED_CALLER


# =============================================================================
# LIQUIDATION / SEIZE / TRANSFER
# =============================================================================


class TestLiquidatePolicy:
    def evaluate(self, borrowed_entry, collateral_entry, repay, deprecated, debt=100):
        borrowed = make_market("market:B", debt=debt)
        collateral = make_market("market:A")
        return LiquidatePolicy().evaluate(
            borrowed_entry, collateral_entry, borrowed, collateral, ALICE,
            repay, deprecated, EXP_SCALE // 2, [], None,
        )

    def test_unlisted_collateral(self):
        result = self.evaluate(MarketEntry(market=make_market()), None, 10, False)
        assert result.block_reason == ErrorCode.MARKET_NOT_LISTED

    def test_deprecated_allows_full_debt(self):
        entry = MarketEntry(market=make_market())
        assert self.evaluate(entry, entry, 100, True).allowed

    def test_deprecated_caps_at_debt(self):
        entry = MarketEntry(market=make_market())
        assert self.evaluate(entry, entry, 101, True).block_reason == ErrorCode.TOO_MUCH_REPAY

    def test_no_shortfall(self):
        entry = MarketEntry(market=make_market())
        # аккаунт без рынков: ни обеспечения, ни долга
        assert self.evaluate(entry, entry, 10, False).block_reason == ErrorCode.INSUFFICIENT_SHORTFALL


class TestSeizePolicy:
    def test_paused(self):
        entry = MarketEntry(market=make_market())
        result = SeizePolicy().evaluate(True, entry, entry, entry.market, entry.market, True)
        assert result.block_reason == ErrorCode.SEIZE_PAUSED

    def test_comptroller_mismatch(self):
        collateral = make_market("market:A", risk_engine="engine-1")
        borrowed = make_market("market:B", risk_engine="engine-2")
        result = SeizePolicy().evaluate(
            False, MarketEntry(market=collateral), MarketEntry(market=borrowed), collateral, borrowed, True
        )
        assert result.block_reason == ErrorCode.COMPTROLLER_MISMATCH

    def test_unlisted_borrowed(self):
        collateral = make_market("market:A")
        result = SeizePolicy().evaluate(
            False, MarketEntry(market=collateral), None, collateral, make_market("market:B"), True
        )
        assert result.block_reason == ErrorCode.MARKET_NOT_LISTED

    def test_outside_liquidation(self):
        collateral = make_market("market:A")
        borrowed = make_market("market:B")
        result = SeizePolicy().evaluate(
            False, MarketEntry(market=collateral), MarketEntry(market=borrowed), collateral, borrowed, False
        )
        assert result.block_reason == ErrorCode.SEIZE_OUTSIDE_LIQUIDATION

    def test_allowed_inside_liquidation(self):
        collateral = make_market("market:A")
        borrowed = make_market("market:B")
        result = SeizePolicy().evaluate(
            False, MarketEntry(market=collateral), MarketEntry(market=borrowed), collateral, borrowed, True
        )
        assert result.allowed


class TestTransferPolicy:
    def test_paused(self):
        entry = MarketEntry(market=make_market())
        result = TransferPolicy().evaluate(True, entry, entry.market, ALICE, 1, False, [], None)
        assert result.block_reason == ErrorCode.TRANSFER_PAUSED

    def test_delegates_to_redeem(self):
        result = TransferPolicy().evaluate(False, None, make_market(), ALICE, 1, False, [], None)
        assert result.block_reason == ErrorCode.MARKET_NOT_LISTED
