"""
Borrow policy

Порядок проверок borrow_allowed:
    1. BorrowPaused
    2. MarketNotListed
    3. аккаунт не участник: авто-вход разрешён только если вызывает сам
       рынок (SenderMustBeMarket)
    4. цена underlying = 0 → PriceError
    5. borrow cap: cap != 0 и total_borrows + amount >= cap → BorrowCapReached
    6. гипотетический borrow без shortfall → InsufficientLiquidity

borrow_behalf_allowed добавляет проверку trusted caller перед всем остальным.
"""

from typing import Optional, Sequence

from src.core.errors import ErrorCode
from src.risk_engine.market_view import MarketView
from src.risk_engine.policies.base import PolicyResult
from src.risk_engine.policies.redeem import hypothetical_liquidity_check
from src.risk_engine.state import MarketEntry


class BorrowPolicy:
    """Проверка borrow."""

    def evaluate(
        self,
        entry: Optional[MarketEntry],
        market: MarketView,
        borrower: str,
        borrow_amount: int,
        is_member: bool,
        caller_is_market: bool,
        entries: Sequence[MarketEntry],
        oracle,
    ) -> PolicyResult:
        """
        Args:
            entries: Рынки аккаунта для расчёта ликвидности; для не-участника
                уже включают market (гипотетический вход)
        """
        if entry is not None and entry.borrow_paused:
            return PolicyResult.block(ErrorCode.BORROW_PAUSED, market.address)
        if entry is None or not entry.listed:
            return PolicyResult.block(ErrorCode.MARKET_NOT_LISTED, market.address)

        if not is_member and not caller_is_market:
            return PolicyResult.block(
                ErrorCode.SENDER_MUST_BE_MARKET,
                f"auto-entry of {borrower} into {market.address} requires the market as caller",
            )

        if oracle is None or oracle.get_underlying_price(market) == 0:
            return PolicyResult.block(ErrorCode.PRICE_ERROR, market.address)

        if entry.borrow_cap != 0:
            next_total_borrows = market.total_borrows + borrow_amount
            if next_total_borrows >= entry.borrow_cap:
                return PolicyResult.block(
                    ErrorCode.BORROW_CAP_REACHED,
                    f"{next_total_borrows} >= cap {entry.borrow_cap} in {market.address}",
                )

        return hypothetical_liquidity_check(
            borrower, entries, oracle, market, borrow_amount=borrow_amount
        )

    def evaluate_behalf(
        self,
        trusted_caller: str,
        sender: str,
        entry: Optional[MarketEntry],
        market: MarketView,
        borrower: str,
        borrow_amount: int,
        is_member: bool,
        caller_is_market: bool,
        entries: Sequence[MarketEntry],
        oracle,
    ) -> PolicyResult:
        if not trusted_caller or sender != trusted_caller:
            return PolicyResult.block(ErrorCode.SENDER_MUST_BE_TRUSTED_CALLER, sender)
        return self.evaluate(
            entry, market, borrower, borrow_amount, is_member, caller_is_market, entries, oracle
        )
