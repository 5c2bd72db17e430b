"""
Redeem policy

redeem_allowed:
    1. рынок в листинге (MarketNotListed)
    2. аккаунт не участник рынка → разрешено без проверки ликвидности
       (его shares не учитываются как обеспечение)
    3. гипотетический redeem не должен создавать shortfall
       (InsufficientLiquidity)

redeem_verify: 0 shares при ненулевой сумме → ZeroRedeemShares
(округление exchange rate не должно выдавать underlying бесплатно).
"""

from typing import Optional, Sequence

from src.core.errors import ErrorCode, ProtocolError
from src.risk_engine.liquidity import compute_hypothetical_liquidity
from src.risk_engine.market_view import MarketView
from src.risk_engine.policies.base import PolicyResult
from src.risk_engine.state import MarketEntry


def hypothetical_liquidity_check(
    account: str,
    entries: Sequence[MarketEntry],
    oracle,
    market: MarketView,
    redeem_shares: int = 0,
    borrow_amount: int = 0,
) -> PolicyResult:
    """Shortfall после гипотетического действия → InsufficientLiquidity."""
    try:
        liquidity = compute_hypothetical_liquidity(
            account,
            entries,
            oracle,
            modify=market,
            redeem_shares=redeem_shares,
            borrow_amount=borrow_amount,
        )
    except ProtocolError as exc:
        return PolicyResult.block(exc.code, exc.details)

    if liquidity.shortfall > 0:
        return PolicyResult.block(
            ErrorCode.INSUFFICIENT_LIQUIDITY,
            f"{account} shortfall {liquidity.shortfall} in {market.address}",
        )
    return PolicyResult.allow(f"{account} liquidity {liquidity.liquidity}")


class RedeemPolicy:
    """Проверка redeem (и исходящего transfer shares)."""

    def evaluate(
        self,
        entry: Optional[MarketEntry],
        market: MarketView,
        redeemer: str,
        redeem_shares: int,
        is_member: bool,
        entries: Sequence[MarketEntry],
        oracle,
    ) -> PolicyResult:
        if entry is None or not entry.listed:
            return PolicyResult.block(ErrorCode.MARKET_NOT_LISTED, market.address)

        if not is_member:
            return PolicyResult.allow(f"{redeemer} not in {market.address}")

        return hypothetical_liquidity_check(
            redeemer, entries, oracle, market, redeem_shares=redeem_shares
        )

    @staticmethod
    def verify(redeem_amount: int, redeem_shares: int) -> PolicyResult:
        if redeem_shares == 0 and redeem_amount > 0:
            return PolicyResult.block(
                ErrorCode.ZERO_REDEEM_SHARES, f"amount {redeem_amount} for 0 shares"
            )
        return PolicyResult.allow()
