"""
Ledger host: высота блока, атомарные вызовы, audit log, ERC-20 токены.
"""

from src.ledger.host import CallFrame, Ledger, LedgerParticipant, atomic, non_reentrant
from src.ledger.logging_setup import configure_logging
from src.ledger.token import Erc20Token, RewardToken

__all__ = [
    "CallFrame",
    "Ledger",
    "LedgerParticipant",
    "atomic",
    "non_reentrant",
    "configure_logging",
    "Erc20Token",
    "RewardToken",
]
