"""Mint policy: пауза и листинг рынка."""

from typing import Optional

from src.core.errors import ErrorCode
from src.risk_engine.policies.base import PolicyResult
from src.risk_engine.state import MarketEntry


class MintPolicy:
    """Проверка mint: MintPaused → MarketNotListed."""

    def evaluate(
        self, entry: Optional[MarketEntry], market: str, minter: str, mint_amount: int
    ) -> PolicyResult:
        if entry is not None and entry.mint_paused:
            return PolicyResult.block(ErrorCode.MINT_PAUSED, market)
        if entry is None or not entry.listed:
            return PolicyResult.block(ErrorCode.MARKET_NOT_LISTED, market)
        return PolicyResult.allow(f"{minter} mints {mint_amount} in {market}")
