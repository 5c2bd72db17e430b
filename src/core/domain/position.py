"""
Position: Позиция аккаунта в рынке

Immutable Pydantic модели:
- BorrowSnapshot: principal и interest_index на момент последнего изменения долга
- RepayAmount: tagged-значение суммы погашения (exact / full)
- AccountLiquidity: результат расчёта ликвидности (liquidity XOR shortfall)
"""

from enum import Enum

from pydantic import BaseModel, Field, model_validator

from src.core.math.accrual import borrow_balance


# =============================================================================
# BORROW SNAPSHOT
# =============================================================================


class BorrowSnapshot(BaseModel):
    """
    Снимок долга аккаунта.

    Текущий долг = principal × borrow_index / interest_index. Все изменения
    долга создают новый экземпляр.
    """

    principal: int = Field(0, ge=0, description="Долг в underlying на момент снимка")
    interest_index: int = Field(0, ge=0, description="borrow_index рынка на момент снимка")

    model_config = {"frozen": True}

    def balance(self, borrow_index: int) -> int:
        """Текущий долг при заданном borrow_index рынка."""
        return borrow_balance(self.principal, borrow_index, self.interest_index)


# =============================================================================
# REPAY AMOUNT
# =============================================================================


class RepayKind(str, Enum):
    """Вид суммы погашения"""

    EXACT = "exact"
    FULL = "full"  # погасить весь текущий долг


class RepayAmount(BaseModel):
    """
    Сумма погашения.

    Явное значение "погасить всё" вместо магического максимального числа.
    Full разрешается в текущий долг ПОСЛЕ начисления процентов.
    """

    kind: RepayKind = Field(..., description="exact | full")
    amount: int = Field(0, ge=0, description="Сумма для kind=exact")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_full_has_no_amount(self) -> "RepayAmount":
        if self.kind == RepayKind.FULL and self.amount != 0:
            raise ValueError("RepayAmount.full() carries no amount")
        return self

    @classmethod
    def exact(cls, amount: int) -> "RepayAmount":
        return cls(kind=RepayKind.EXACT, amount=amount)

    @classmethod
    def full(cls) -> "RepayAmount":
        return cls(kind=RepayKind.FULL)

    @classmethod
    def coerce(cls, value: "RepayAmount | int") -> "RepayAmount":
        """Plain int трактуется как exact."""
        if isinstance(value, RepayAmount):
            return value
        return cls.exact(value)

    @property
    def is_full(self) -> bool:
        return self.kind == RepayKind.FULL

    def resolve(self, current_debt: int) -> int:
        """Конкретная сумма к погашению при текущем долге."""
        return current_debt if self.is_full else self.amount


# =============================================================================
# ACCOUNT LIQUIDITY
# =============================================================================


class AccountLiquidity(BaseModel):
    """
    Результат расчёта ликвидности аккаунта (в единицах оракула).

    liquidity и shortfall взаимоисключающие: хотя бы одно из них равно 0.
    """

    liquidity: int = Field(0, ge=0, description="Избыток обеспечения")
    shortfall: int = Field(0, ge=0, description="Недостаток обеспечения")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_mutually_exclusive(self) -> "AccountLiquidity":
        if self.liquidity > 0 and self.shortfall > 0:
            raise ValueError(
                f"liquidity ({self.liquidity}) and shortfall ({self.shortfall}) "
                "are mutually exclusive"
            )
        return self

    @classmethod
    def from_values(cls, collateral_value: int, debt_value: int) -> "AccountLiquidity":
        if collateral_value > debt_value:
            return cls(liquidity=collateral_value - debt_value, shortfall=0)
        return cls(liquidity=0, shortfall=debt_value - collateral_value)

    @property
    def has_shortfall(self) -> bool:
        return self.shortfall > 0
