"""
Core math modules

Целочисленная fixed-point арифметика и начисление процентов.
"""

# Fixed-point (Exp 1e18 / Double 1e36)
from src.core.math.fixed_point import (
    DOUBLE_SCALE,
    EXP_SCALE,
    HALF_EXP_SCALE,
    MANTISSA_ONE,
    div_exp,
    div_scalar_by_exp_truncate,
    fraction,
    from_mantissa,
    mul_double_scalar,
    mul_exp,
    mul_exp_chain,
    mul_scalar_truncate,
    mul_scalar_truncate_add_uint,
    to_mantissa,
    truncate,
    validate_mantissa_in_range,
    validate_uint,
)

# Accrual
from src.core.math.accrual import (
    BORROW_RATE_MAX_MANTISSA,
    INITIAL_BORROW_INDEX,
    RESERVE_FACTOR_MAX_MANTISSA,
    AccrualResult,
    borrow_balance,
    compute_accrual,
    exchange_rate,
)

__all__ = [
    # Fixed-point: Constants
    "DOUBLE_SCALE",
    "EXP_SCALE",
    "HALF_EXP_SCALE",
    "MANTISSA_ONE",
    # Fixed-point: Functions
    "div_exp",
    "div_scalar_by_exp_truncate",
    "fraction",
    "from_mantissa",
    "mul_double_scalar",
    "mul_exp",
    "mul_exp_chain",
    "mul_scalar_truncate",
    "mul_scalar_truncate_add_uint",
    "to_mantissa",
    "truncate",
    "validate_mantissa_in_range",
    "validate_uint",
    # Accrual: Constants
    "BORROW_RATE_MAX_MANTISSA",
    "INITIAL_BORROW_INDEX",
    "RESERVE_FACTOR_MAX_MANTISSA",
    # Accrual: Types
    "AccrualResult",
    # Accrual: Functions
    "borrow_balance",
    "compute_accrual",
    "exchange_rate",
]
