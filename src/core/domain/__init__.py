"""
Domain models and value objects.

Snapshots рынков и аккаунтов, долг и сумма погашения, результат ликвидности,
audit-записи и конвертеры единиц.
"""

from src.core.domain.audit import EVENT_FIELDS, AuditRecord
from src.core.domain.market_state import AccountSnapshot, MarketSnapshot
from src.core.domain.position import (
    AccountLiquidity,
    BorrowSnapshot,
    RepayAmount,
    RepayKind,
)
from src.core.domain.units import (
    borrow_weight,
    seize_ratio,
    shares_from_underlying,
    tokens_to_denom,
    underlying_from_shares,
    value_of,
)

__all__ = [
    # Audit
    "EVENT_FIELDS",
    "AuditRecord",
    # Snapshots
    "MarketSnapshot",
    "AccountSnapshot",
    # Position
    "BorrowSnapshot",
    "RepayAmount",
    "RepayKind",
    "AccountLiquidity",
    # Units
    "shares_from_underlying",
    "underlying_from_shares",
    "tokens_to_denom",
    "value_of",
    "borrow_weight",
    "seize_ratio",
]
