"""
Market State: Срезы состояния рынка и позиции аккаунта

Immutable Pydantic модели. Соответствуют схемам
contracts/schema/market_snapshot.json и account_snapshot.json.
"""

from typing import Any, Dict

from pydantic import BaseModel, Field

from src.core.math.fixed_point import EXP_SCALE


class MarketSnapshot(BaseModel):
    """Срез состояния Market на заданной высоте."""

    address: str = Field(..., min_length=1, description="Адрес рынка")
    symbol: str = Field(..., min_length=1, description="Символ share-токена")
    underlying: str = Field(..., min_length=1, description="Адрес underlying-токена")

    height: int = Field(..., ge=0, description="Текущая высота ledger")
    accrual_block_number: int = Field(..., ge=0, description="Checkpoint начисления")

    cash: int = Field(..., ge=0)
    total_shares: int = Field(..., ge=0)
    total_borrows: int = Field(..., ge=0)
    total_reserves: int = Field(..., ge=0)
    borrow_index: int = Field(..., ge=EXP_SCALE, description="Кумулятивный индекс долга")
    reserve_factor_mantissa: int = Field(..., ge=0, le=EXP_SCALE)
    exchange_rate_mantissa: int = Field(..., ge=0, description="Stored exchange rate")

    model_config = {"frozen": True}

    @property
    def is_fresh(self) -> bool:
        return self.accrual_block_number == self.height

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()


class AccountSnapshot(BaseModel):
    """
    Позиция аккаунта в одном рынке.

    Тройка (share_balance, borrow_balance, exchange_rate) - всё, что
    Risk Engine читает из рынка для расчёта ликвидности.
    """

    market: str = Field(..., min_length=1)
    account: str = Field(..., min_length=1)
    share_balance: int = Field(..., ge=0)
    borrow_balance: int = Field(..., ge=0, description="Stored borrow balance")
    exchange_rate_mantissa: int = Field(..., ge=0, description="Stored exchange rate")

    model_config = {"frozen": True}

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()
