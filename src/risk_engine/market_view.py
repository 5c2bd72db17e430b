"""
MarketView: read-only вид рынка для Risk Engine

Risk Engine никогда не мутирует рынок напрямую: он читает позиции и totals
через этот протокол. Единственное исключение - accrue_interest, который
идемпотентен в пределах блока.
"""

from typing import Any, Protocol, runtime_checkable

from src.core.domain.market_state import AccountSnapshot


@runtime_checkable
class MarketView(Protocol):
    address: str
    underlying: Any
    risk_engine: Any
    is_market: bool

    total_shares: int
    total_borrows: int
    borrow_index: int
    reserve_factor_mantissa: int
    accrual_block_number: int

    def balance_of(self, account: str) -> int: ...

    def borrow_balance_stored(self, account: str) -> int: ...

    def exchange_rate_stored(self) -> int: ...

    def get_account_snapshot(self, account: str) -> AccountSnapshot: ...

    def accrue_interest(self) -> Any: ...
