"""Policies: проверки Risk Engine для каждого действия Market."""

from .base import PolicyResult
from .borrow import BorrowPolicy
from .liquidation import LiquidatePolicy, SeizePolicy
from .mint import MintPolicy
from .redeem import RedeemPolicy, hypothetical_liquidity_check
from .repay import RepayPolicy
from .transfer import TransferPolicy

__all__ = [
    "PolicyResult",
    "MintPolicy",
    "RedeemPolicy",
    "BorrowPolicy",
    "RepayPolicy",
    "LiquidatePolicy",
    "SeizePolicy",
    "TransferPolicy",
    "hypothetical_liquidity_check",
]
