"""Transfer policy: TransferPaused, затем проверка redeem для источника."""

from typing import Optional, Sequence

from src.core.errors import ErrorCode
from src.risk_engine.market_view import MarketView
from src.risk_engine.policies.base import PolicyResult
from src.risk_engine.policies.redeem import RedeemPolicy
from src.risk_engine.state import MarketEntry


class TransferPolicy:
    def __init__(self, redeem_policy: Optional[RedeemPolicy] = None) -> None:
        self._redeem_policy = redeem_policy or RedeemPolicy()

    def evaluate(
        self,
        transfer_paused: bool,
        entry: Optional[MarketEntry],
        market: MarketView,
        src: str,
        transfer_shares: int,
        is_member: bool,
        entries: Sequence[MarketEntry],
        oracle,
    ) -> PolicyResult:
        if transfer_paused:
            return PolicyResult.block(ErrorCode.TRANSFER_PAUSED)
        # Исходящий transfer shares эквивалентен redeem для src
        return self._redeem_policy.evaluate(
            entry, market, src, transfer_shares, is_member, entries, oracle
        )
