"""Repay policy: только листинг рынка."""

from typing import Optional

from src.core.errors import ErrorCode
from src.risk_engine.policies.base import PolicyResult
from src.risk_engine.state import MarketEntry


class RepayPolicy:
    def evaluate(
        self, entry: Optional[MarketEntry], market: str, payer: str, borrower: str
    ) -> PolicyResult:
        if entry is None or not entry.listed:
            return PolicyResult.block(ErrorCode.MARKET_NOT_LISTED, market)
        return PolicyResult.allow(f"{payer} repays for {borrower}")
