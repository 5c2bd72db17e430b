"""
Accrual: Начисление процентов и производные величины рынка

Простое (simple) начисление процентов за блоки с момента checkpoint:

    simple_interest_factor = borrow_rate × Δblocks
    interest_accumulated   = trunc(factor × total_borrows)
    total_borrows'         = total_borrows + interest_accumulated
    total_reserves'        = trunc(reserve_factor × interest) + total_reserves
    borrow_index'          = trunc(factor × borrow_index) + borrow_index

Композиция по блокам происходит через borrow_index: долг аккаунта
principal × borrow_index / interest_index.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Δblocks == 0 → состояние не меняется (идемпотентность в пределах блока)
2. borrow_index никогда не убывает
3. borrow_rate > BORROW_RATE_MAX_MANTISSA → RateTooHigh
"""

from typing import Final, NamedTuple

from src.core.errors import ErrorCode, ProtocolError
from src.core.math.fixed_point import (
    EXP_SCALE,
    div_exp,
    mul_scalar_truncate,
    mul_scalar_truncate_add_uint,
    validate_uint,
)

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Максимальная borrow rate за блок (0.0005% / block)
BORROW_RATE_MAX_MANTISSA: Final[int] = 5 * 10**12

# Максимальный reserve factor (100%)
RESERVE_FACTOR_MAX_MANTISSA: Final[int] = EXP_SCALE

# Начальное значение borrow_index (1.0)
INITIAL_BORROW_INDEX: Final[int] = EXP_SCALE


# =============================================================================
# RESULT
# =============================================================================


class AccrualResult(NamedTuple):
    """Результат начисления процентов за Δblocks."""

    cash_prior: int
    interest_accumulated: int
    total_borrows: int
    total_reserves: int
    borrow_index: int
    block_delta: int


# =============================================================================
# ACCRUAL
# =============================================================================


def compute_accrual(
    cash_prior: int,
    total_borrows: int,
    total_reserves: int,
    borrow_index: int,
    reserve_factor_mantissa: int,
    borrow_rate_mantissa: int,
    block_delta: int,
) -> AccrualResult:
    """
    Вычисление новых totals после Δblocks.

    Args:
        cash_prior: Cash рынка до начисления
        total_borrows: Текущий total borrows
        total_reserves: Текущие резервы
        borrow_index: Текущий borrow index (Exp)
        reserve_factor_mantissa: Доля процентов в резервы (Exp)
        borrow_rate_mantissa: Borrow rate за блок (Exp)
        block_delta: Количество блоков с последнего checkpoint

    Returns:
        AccrualResult (при block_delta == 0 - исходные значения)

    Raises:
        ProtocolError(RateTooHigh): если rate выше BORROW_RATE_MAX_MANTISSA
        ValueError: на отрицательных входах

    Examples:
        >>> r = compute_accrual(0, 1000, 0, 10**18, 0, 10**15, 10)
        >>> r.interest_accumulated, r.total_borrows
        (10, 1010)
    """
    validate_uint(block_delta, "block_delta")
    validate_uint(total_borrows, "total_borrows")
    validate_uint(total_reserves, "total_reserves")

    if block_delta == 0:
        return AccrualResult(
            cash_prior=cash_prior,
            interest_accumulated=0,
            total_borrows=total_borrows,
            total_reserves=total_reserves,
            borrow_index=borrow_index,
            block_delta=0,
        )

    if borrow_rate_mantissa > BORROW_RATE_MAX_MANTISSA:
        raise ProtocolError(
            ErrorCode.RATE_TOO_HIGH,
            f"borrow rate {borrow_rate_mantissa} > {BORROW_RATE_MAX_MANTISSA}",
        )

    simple_interest_factor = borrow_rate_mantissa * block_delta
    interest_accumulated = mul_scalar_truncate(simple_interest_factor, total_borrows)

    return AccrualResult(
        cash_prior=cash_prior,
        interest_accumulated=interest_accumulated,
        total_borrows=interest_accumulated + total_borrows,
        total_reserves=mul_scalar_truncate_add_uint(
            reserve_factor_mantissa, interest_accumulated, total_reserves
        ),
        borrow_index=mul_scalar_truncate_add_uint(
            simple_interest_factor, borrow_index, borrow_index
        ),
        block_delta=block_delta,
    )


# =============================================================================
# ПРОИЗВОДНЫЕ ВЕЛИЧИНЫ
# =============================================================================


def exchange_rate(
    cash: int,
    total_borrows: int,
    total_reserves: int,
    total_shares: int,
    initial_exchange_rate_mantissa: int,
) -> int:
    """
    Exchange rate shares → underlying (Exp).

    exchange_rate = (cash + borrows − reserves) × 1e18 / total_shares,
    либо initial_exchange_rate, пока shares не выпущены.

    Raises:
        ValueError: если cash + borrows < reserves
    """
    if total_shares == 0:
        return initial_exchange_rate_mantissa

    cash_plus_borrows_minus_reserves = cash + total_borrows - total_reserves
    if cash_plus_borrows_minus_reserves < 0:
        raise ValueError(
            f"reserves {total_reserves} exceed cash+borrows {cash + total_borrows}"
        )
    return div_exp(cash_plus_borrows_minus_reserves, total_shares)


def borrow_balance(principal: int, borrow_index: int, interest_index: int) -> int:
    """
    Текущий долг аккаунта: principal × borrow_index / interest_index.

    Нулевой principal (или отсутствующий snapshot) → 0.

    Examples:
        >>> borrow_balance(100, 11 * 10**17, 10**18)
        110
        >>> borrow_balance(0, 11 * 10**17, 0)
        0
    """
    if principal == 0:
        return 0
    if interest_index == 0:
        raise ValueError("interest_index must be positive for non-zero principal")
    return (principal * borrow_index) // interest_index
