"""
Unit тесты для fixed-point арифметики и начисления процентов.

Coverage:
- Exp / Double операции и усечение
- validate_uint / validate_mantissa_in_range
- to_mantissa / from_mantissa
- compute_accrual, exchange_rate, borrow_balance
"""

from decimal import Decimal

import pytest

from src.core.errors import ErrorCode, ProtocolError
from src.core.math.accrual import (
    BORROW_RATE_MAX_MANTISSA,
    compute_accrual,
    borrow_balance,
    exchange_rate,
)
from src.core.math.fixed_point import (
    DOUBLE_SCALE,
    EXP_SCALE,
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


class TestExpArithmetic:
    """Операции над Exp (1e18)."""

    def test_truncate_drops_fraction(self):
        assert truncate(2_999_999_999_999_999_999) == 2

    def test_mul_scalar_truncate(self):
        assert mul_scalar_truncate(5 * 10**17, 7) == 3  # 3.5 → 3

    def test_mul_scalar_truncate_add_uint(self):
        assert mul_scalar_truncate_add_uint(5 * 10**17, 7, 10) == 13

    def test_mul_exp(self):
        assert mul_exp(2 * EXP_SCALE, 3 * 10**17) == 6 * 10**17

    def test_mul_exp_chain_truncates_each_step(self):
        a, b, c = 10**18 + 1, 10**17 + 3, 7 * 10**17
        assert mul_exp_chain(a, b, c) == mul_exp(mul_exp(a, b), c)

    def test_mul_exp_chain_requires_operand(self):
        with pytest.raises(ValueError):
            mul_exp_chain()

    def test_div_exp(self):
        assert div_exp(108 * 10**16, 9 * 10**17) == 12 * 10**17

    def test_div_exp_by_zero(self):
        with pytest.raises(ValueError, match="division by zero"):
            div_exp(1, 0)

    def test_div_scalar_by_exp_truncate(self):
        assert div_scalar_by_exp_truncate(100, 2 * 10**17) == 500
        assert div_scalar_by_exp_truncate(1, 3 * EXP_SCALE) == 0


class TestDoubleArithmetic:
    """Операции над Double (1e36) для flywheel."""

    def test_fraction(self):
        assert fraction(1, 4) == DOUBLE_SCALE // 4

    def test_fraction_zero_denominator(self):
        with pytest.raises(ValueError):
            fraction(1, 0)

    def test_mul_double_scalar(self):
        assert mul_double_scalar(fraction(1, 3), 9) == 2  # 2.999... → 2


class TestValidation:
    def test_validate_uint_accepts_zero(self):
        assert validate_uint(0) == 0

    @pytest.mark.parametrize("value", [-1, True, 1.0, "1"])
    def test_validate_uint_rejects(self, value):
        with pytest.raises(ValueError):
            validate_uint(value, "amount")

    def test_validate_mantissa_in_range(self):
        assert validate_mantissa_in_range(5, 0, 10) == 5
        with pytest.raises(ValueError, match="must be in"):
            validate_mantissa_in_range(11, 0, 10)


class TestConversion:
    def test_to_mantissa_from_str(self):
        assert to_mantissa("0.9") == 9 * 10**17
        assert to_mantissa("1.5", decimals=6) == 1_500_000

    def test_to_mantissa_truncates_excess_digits(self):
        assert to_mantissa("0.0000000000000000019") == 1

    def test_to_mantissa_large_value_is_exact(self):
        assert to_mantissa("123456789012345678901234567890") == 123456789012345678901234567890 * EXP_SCALE

    def test_to_mantissa_rejects_float(self):
        with pytest.raises(ValueError, match="float"):
            to_mantissa(0.9)

    def test_to_mantissa_rejects_negative(self):
        with pytest.raises(ValueError):
            to_mantissa("-1")

    def test_from_mantissa(self):
        assert from_mantissa(15 * 10**17) == Decimal("1.5")


class TestComputeAccrual:
    """Начисление процентов за Δblocks."""

    def test_zero_delta_is_noop(self):
        result = compute_accrual(100, 1000, 5, EXP_SCALE, 10**17, 10**15, 0)
        assert result.interest_accumulated == 0
        assert result.total_borrows == 1000
        assert result.total_reserves == 5
        assert result.borrow_index == EXP_SCALE

    def test_interest_and_reserves(self):
        # rate 0.001/block × 10 blocks = 1%
        result = compute_accrual(0, 1000, 0, EXP_SCALE, 2 * 10**17, 10**15, 10)
        assert result.interest_accumulated == 10
        assert result.total_borrows == 1010
        assert result.total_reserves == 2  # 20% от 10
        assert result.borrow_index == EXP_SCALE + 10**16

    def test_rate_too_high(self):
        with pytest.raises(ProtocolError) as exc_info:
            compute_accrual(0, 1000, 0, EXP_SCALE, 0, BORROW_RATE_MAX_MANTISSA + 1, 1)
        assert exc_info.value.code == ErrorCode.RATE_TOO_HIGH

    def test_max_rate_allowed(self):
        result = compute_accrual(0, 10**18, 0, EXP_SCALE, 0, BORROW_RATE_MAX_MANTISSA, 1)
        assert result.interest_accumulated == BORROW_RATE_MAX_MANTISSA

    def test_negative_delta_rejected(self):
        with pytest.raises(ValueError):
            compute_accrual(0, 0, 0, EXP_SCALE, 0, 0, -1)


class TestDerivedValues:
    def test_exchange_rate_initial_when_no_shares(self):
        assert exchange_rate(500, 0, 0, 0, 2 * 10**17) == 2 * 10**17

    def test_exchange_rate_formula(self):
        # (cash 90 + borrows 20 − reserves 10) / 50 shares = 2.0
        assert exchange_rate(90, 20, 10, 50, EXP_SCALE) == 2 * EXP_SCALE

    def test_exchange_rate_reserves_exceed_assets(self):
        with pytest.raises(ValueError):
            exchange_rate(1, 0, 5, 10, EXP_SCALE)

    def test_borrow_balance(self):
        assert borrow_balance(100, 11 * 10**17, EXP_SCALE) == 110
        assert borrow_balance(0, 11 * 10**17, 0) == 0

    def test_borrow_balance_requires_index(self):
        with pytest.raises(ValueError):
            borrow_balance(100, EXP_SCALE, 0)
