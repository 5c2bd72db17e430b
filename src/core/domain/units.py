"""
Units: Конверсия между shares, underlying и reward-весами

Единственный допустимый способ преобразований между:
- shares (доли рынка, выпускаются при mint)
- underlying (base units актива)
- стоимость в единицах оракула (price × amount)
- веса flywheel (supply: total_shares; borrow: total_borrows / borrow_index)

Все конверсии - целочисленные с усечением вниз. ЗАПРЕЩЕНО смешивать
единицы без явного конвертера из этого модуля.
"""

from src.core.math.fixed_point import (
    EXP_SCALE,
    div_exp,
    div_scalar_by_exp_truncate,
    mul_exp,
    mul_scalar_truncate,
)


# =============================================================================
# SHARES ↔ UNDERLYING
# =============================================================================


def shares_from_underlying(amount: int, exchange_rate_mantissa: int) -> int:
    """
    Конверсия: underlying → shares.

    shares = amount × 1e18 / exchange_rate

    Examples:
        >>> shares_from_underlying(1_000_000, 2 * 10**14)
        5000000000
    """
    return div_scalar_by_exp_truncate(amount, exchange_rate_mantissa)


def underlying_from_shares(shares: int, exchange_rate_mantissa: int) -> int:
    """
    Конверсия: shares → underlying.

    amount = exchange_rate × shares / 1e18

    Examples:
        >>> underlying_from_shares(5_000_000_000, 2 * 10**14)
        1000000
    """
    return mul_scalar_truncate(exchange_rate_mantissa, shares)


# =============================================================================
# СТОИМОСТЬ
# =============================================================================


def tokens_to_denom(
    collateral_factor_mantissa: int,
    exchange_rate_mantissa: int,
    price_mantissa: int,
) -> int:
    """
    Стоимость одной share в единицах оракула с учётом collateral factor.

    tokens_to_denom = cf × er × price, каждое произведение усечено до Exp
    перед следующим.
    """
    return mul_exp(
        mul_exp(collateral_factor_mantissa, exchange_rate_mantissa), price_mantissa
    )


def value_of(price_or_rate_mantissa: int, amount: int) -> int:
    """trunc(mantissa × amount): стоимость amount единиц по цене/курсу."""
    return mul_scalar_truncate(price_or_rate_mantissa, amount)


# =============================================================================
# FLYWHEEL ВЕСА
# =============================================================================


def borrow_weight(total_borrows: int, borrow_index: int) -> int:
    """
    Вес borrow-стороны: total_borrows / borrow_index (нормализованный долг).

    Для аккаунта: borrow_balance / borrow_index.
    """
    if borrow_index == 0:
        raise ValueError("borrow_index must be positive")
    return (total_borrows * EXP_SCALE) // borrow_index


def seize_ratio(
    liquidation_incentive_mantissa: int,
    price_borrowed_mantissa: int,
    price_collateral_mantissa: int,
    exchange_rate_collateral_mantissa: int,
) -> int:
    """
    Коэффициент конверсии repay → seize shares (Exp).

    ratio = (incentive × price_borrowed) / (price_collateral × er_collateral)
    """
    numerator = mul_exp(liquidation_incentive_mantissa, price_borrowed_mantissa)
    denominator = mul_exp(price_collateral_mantissa, exchange_rate_collateral_mantissa)
    return div_exp(numerator, denominator)
