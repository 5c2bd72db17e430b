"""
Fixed-Point: Целочисленная арифметика мантисс

Все денежные величины протокола - целые числа в base units underlying-актива.
Дробные величины (exchange rate, collateral factor, rates) хранятся как
мантиссы, масштабированные на EXP_SCALE = 1e18 ("Exp"). Индексы reward
flywheel используют повышенную точность DOUBLE_SCALE = 1e36 ("Double").

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Никаких float: только int и целочисленное деление (truncation к нулю для
   неотрицательных операндов)
2. Каждое умножение мантисс усекается до масштаба ПЕРЕД следующей операцией
   (воспроизводит точное округление эталонных расчётов)
3. Отрицательные величины недопустимы (ValueError)
4. Деление на ноль недопустимо (ValueError)
"""

from decimal import ROUND_DOWN, Decimal, localcontext
from typing import Final

# =============================================================================
# МАСШТАБЫ
# =============================================================================

# Масштаб "Exp" (18 десятичных знаков)
EXP_SCALE: Final[int] = 10**18

# Масштаб "Double" (36 десятичных знаков), для reward-индексов
DOUBLE_SCALE: Final[int] = 10**36

# Половина EXP_SCALE
HALF_EXP_SCALE: Final[int] = EXP_SCALE // 2

# 1.0 в виде мантиссы
MANTISSA_ONE: Final[int] = EXP_SCALE


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_uint(value: int, name: str = "value") -> int:
    """
    Проверка, что value - неотрицательное целое.

    bool формально является int, но как количество недопустим.

    Raises:
        ValueError: если value не int или value < 0
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
    return value


def validate_mantissa_in_range(
    value: int,
    min_value: int,
    max_value: int,
    name: str = "mantissa",
) -> int:
    """
    Проверка, что мантисса лежит в [min_value, max_value] (включительно).

    Raises:
        ValueError: если value вне диапазона
    """
    validate_uint(value, name)
    if value < min_value or value > max_value:
        raise ValueError(
            f"{name} must be in [{min_value}, {max_value}], got {value}"
        )
    return value


def _require_nonzero(denominator: int, name: str) -> None:
    if denominator == 0:
        raise ValueError(f"{name}: division by zero")


# =============================================================================
# EXP (1e18)
# =============================================================================


def truncate(exp_mantissa: int) -> int:
    """
    Усечение мантиссы до целого числа.

    Examples:
        >>> truncate(2_500_000_000_000_000_000)
        2
    """
    return exp_mantissa // EXP_SCALE


def mul_scalar_truncate(exp_mantissa: int, scalar: int) -> int:
    """
    Умножение мантиссы на целое с усечением: trunc(exp × scalar).

    Examples:
        >>> mul_scalar_truncate(5 * 10**17, 7)  # 0.5 × 7
        3
    """
    return (exp_mantissa * scalar) // EXP_SCALE


def mul_scalar_truncate_add_uint(exp_mantissa: int, scalar: int, addend: int) -> int:
    """trunc(exp × scalar) + addend."""
    return mul_scalar_truncate(exp_mantissa, scalar) + addend


def mul_exp(a_mantissa: int, b_mantissa: int) -> int:
    """
    Произведение двух Exp с усечением до масштаба 1e18.

    Examples:
        >>> mul_exp(2 * 10**18, 3 * 10**17)  # 2.0 × 0.3 = 0.6
        600000000000000000
    """
    return (a_mantissa * b_mantissa) // EXP_SCALE


def mul_exp_chain(*mantissas: int) -> int:
    """
    Последовательное произведение нескольких Exp.

    Каждое промежуточное произведение усекается до следующего умножения:
    mul_exp_chain(a, b, c) == mul_exp(mul_exp(a, b), c).
    """
    if not mantissas:
        raise ValueError("mul_exp_chain requires at least one operand")
    result = mantissas[0]
    for mantissa in mantissas[1:]:
        result = mul_exp(result, mantissa)
    return result


def div_exp(a_mantissa: int, b_mantissa: int) -> int:
    """
    Частное двух Exp: a × 1e18 / b.

    Raises:
        ValueError: если b_mantissa == 0
    """
    _require_nonzero(b_mantissa, "div_exp")
    return (a_mantissa * EXP_SCALE) // b_mantissa


def div_scalar_by_exp_truncate(scalar: int, exp_mantissa: int) -> int:
    """
    Деление целого на Exp с усечением: trunc(scalar / exp).

    Используется для конвертации underlying → shares через exchange rate.

    Examples:
        >>> div_scalar_by_exp_truncate(100, 2 * 10**17)  # 100 / 0.2
        500
    """
    _require_nonzero(exp_mantissa, "div_scalar_by_exp_truncate")
    return (scalar * EXP_SCALE) // exp_mantissa


# =============================================================================
# DOUBLE (1e36)
# =============================================================================


def fraction(numerator: int, denominator: int) -> int:
    """
    Дробь numerator / denominator как Double-мантисса.

    Raises:
        ValueError: если denominator == 0
    """
    _require_nonzero(denominator, "fraction")
    return (numerator * DOUBLE_SCALE) // denominator


def mul_double_scalar(double_mantissa: int, scalar: int) -> int:
    """Произведение Double на целое с усечением до целого."""
    return (double_mantissa * scalar) // DOUBLE_SCALE


# =============================================================================
# КОНВЕРТАЦИЯ
# =============================================================================


def to_mantissa(value: Decimal | str | int, decimals: int = 18) -> int:
    """
    Конвертация десятичного значения в целую мантиссу (parse units).

    Для конфигураций и тестов: "0.9" → 900000000000000000. Дробная часть
    сверх decimals знаков отбрасывается.

    Args:
        value: Значение как Decimal/str/int (float не принимается)
        decimals: Количество десятичных знаков масштаба

    Raises:
        ValueError: если value отрицательно или передан float

    Examples:
        >>> to_mantissa("0.9")
        900000000000000000
        >>> to_mantissa("1.5", decimals=6)
        1500000
    """
    if isinstance(value, float):
        raise ValueError("float values are not accepted, pass str or Decimal")
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")
    with localcontext() as ctx:
        ctx.prec = 96
        dec = Decimal(value)
        if dec < 0:
            raise ValueError(f"value must be non-negative, got {value}")
        return int(dec.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN))


def from_mantissa(mantissa: int, decimals: int = 18) -> Decimal:
    """Обратная конвертация мантиссы в Decimal (для логов и отчётов)."""
    with localcontext() as ctx:
        ctx.prec = 96
        return Decimal(mantissa).scaleb(-decimals)
