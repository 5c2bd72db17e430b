"""
Liquidation policies

liquidate_borrow_allowed:
    - оба рынка в листинге (MarketNotListed)
    - deprecated рынок: можно погасить весь долг, но не больше
      (TooMuchRepay)
    - иначе заёмщик обязан иметь shortfall (InsufficientShortfall) и
      repay ≤ close_factor × долг (TooMuchRepay)

seize_allowed:
    - SeizePaused
    - оба рынка в листинге
    - оба рынка подключены к одному Risk Engine (ComptrollerMismatch)
    - seize идёт изнутри liquidate_borrow рынка borrowed
      (SeizeOutsideLiquidation)
"""

from typing import Optional, Sequence

from src.core.errors import ErrorCode, ProtocolError
from src.core.math.fixed_point import mul_scalar_truncate
from src.risk_engine.liquidity import compute_hypothetical_liquidity
from src.risk_engine.market_view import MarketView
from src.risk_engine.policies.base import PolicyResult
from src.risk_engine.state import MarketEntry


def _is_listed(entry: Optional[MarketEntry]) -> bool:
    return entry is not None and entry.listed


class LiquidatePolicy:
    """Проверка liquidate_borrow."""

    def evaluate(
        self,
        borrowed_entry: Optional[MarketEntry],
        collateral_entry: Optional[MarketEntry],
        borrowed: MarketView,
        collateral: MarketView,
        borrower: str,
        repay_amount: int,
        deprecated: bool,
        close_factor_mantissa: int,
        borrower_entries: Sequence[MarketEntry],
        oracle,
    ) -> PolicyResult:
        if not _is_listed(borrowed_entry):
            return PolicyResult.block(ErrorCode.MARKET_NOT_LISTED, borrowed.address)
        if not _is_listed(collateral_entry):
            return PolicyResult.block(ErrorCode.MARKET_NOT_LISTED, collateral.address)

        borrow_balance = borrowed.borrow_balance_stored(borrower)

        if deprecated:
            if repay_amount > borrow_balance:
                return PolicyResult.block(
                    ErrorCode.TOO_MUCH_REPAY,
                    f"repay {repay_amount} > debt {borrow_balance} in deprecated market",
                )
            return PolicyResult.allow(f"{borrowed.address} is deprecated")

        try:
            liquidity = compute_hypothetical_liquidity(borrower, borrower_entries, oracle)
        except ProtocolError as exc:
            return PolicyResult.block(exc.code, exc.details)

        if liquidity.shortfall == 0:
            return PolicyResult.block(
                ErrorCode.INSUFFICIENT_SHORTFALL, f"{borrower} has no shortfall"
            )

        max_close = mul_scalar_truncate(close_factor_mantissa, borrow_balance)
        if repay_amount > max_close:
            return PolicyResult.block(
                ErrorCode.TOO_MUCH_REPAY, f"repay {repay_amount} > max close {max_close}"
            )
        return PolicyResult.allow(f"{borrower} shortfall {liquidity.shortfall}")


class SeizePolicy:
    """Проверка seize."""

    def evaluate(
        self,
        seize_paused: bool,
        collateral_entry: Optional[MarketEntry],
        borrowed_entry: Optional[MarketEntry],
        collateral: MarketView,
        borrowed: MarketView,
        in_liquidation: bool,
    ) -> PolicyResult:
        """
        Args:
            in_liquidation: Вызов пришёл из liquidate_borrow рынка borrowed
                (определяется Risk Engine по стеку вызовов ledger)
        """
        if seize_paused:
            return PolicyResult.block(ErrorCode.SEIZE_PAUSED)
        if not _is_listed(collateral_entry):
            return PolicyResult.block(ErrorCode.MARKET_NOT_LISTED, collateral.address)
        if not _is_listed(borrowed_entry):
            return PolicyResult.block(ErrorCode.MARKET_NOT_LISTED, borrowed.address)
        if collateral.risk_engine is not borrowed.risk_engine:
            return PolicyResult.block(
                ErrorCode.COMPTROLLER_MISMATCH,
                f"{collateral.address} and {borrowed.address} use different risk engines",
            )
        if not in_liquidation:
            return PolicyResult.block(
                ErrorCode.SEIZE_OUTSIDE_LIQUIDATION,
                f"{collateral.address} seize not initiated by {borrowed.address}.liquidate_borrow",
            )
        return PolicyResult.allow()
