"""
Liquidity: расчёт ликвидности / shortfall аккаунта

Для каждого рынка, в который вошёл аккаунт:

    tokens_to_denom = cf × er × price            (каждое умножение усечено)
    collateral     += tokens_to_denom × shares
    debt           += price × borrow_balance

Для what-if рынка (гипотетические redeem / borrow) к debt добавляется:

    tokens_to_denom × redeem_shares + price × borrow_amount

Результат - AccountLiquidity (liquidity XOR shortfall). При нулевой цене
ProtocolError(ZeroPrice), без цены оценка невозможна (fail closed).
"""

import logging
from typing import Iterable, Optional

from src.core.domain.position import AccountLiquidity
from src.core.domain.units import tokens_to_denom, value_of
from src.core.errors import ErrorCode, ProtocolError
from src.risk_engine.market_view import MarketView
from src.risk_engine.state import MarketEntry

logger = logging.getLogger(__name__)


def require_price(oracle, market: MarketView) -> int:
    """
    Цена underlying рынка; 0 или отсутствие оракула → ZeroPrice.
    """
    if oracle is None:
        raise ProtocolError(ErrorCode.ZERO_PRICE, f"no price oracle for {market.address}")
    price = oracle.get_underlying_price(market)
    if price == 0:
        raise ProtocolError(ErrorCode.ZERO_PRICE, market.address)
    return price


def compute_hypothetical_liquidity(
    account: str,
    entries: Iterable[MarketEntry],
    oracle,
    modify: Optional[MarketView] = None,
    redeem_shares: int = 0,
    borrow_amount: int = 0,
) -> AccountLiquidity:
    """
    Ликвидность аккаунта с гипотетическим redeem / borrow в рынке modify.

    Args:
        account: Аккаунт
        entries: Записи рынков, в которые вошёл аккаунт (в порядке входа)
        oracle: PriceOracle
        modify: What-if рынок (или None)
        redeem_shares: Гипотетически выкупаемые shares в modify
        borrow_amount: Гипотетический дополнительный долг в modify

    Raises:
        ProtocolError(ZeroPrice): если цена любого рынка недоступна
    """
    collateral_value = 0
    debt_value = 0

    for entry in entries:
        market = entry.market
        snapshot = market.get_account_snapshot(account)
        price = require_price(oracle, market)

        denom = tokens_to_denom(
            entry.collateral_factor_mantissa, snapshot.exchange_rate_mantissa, price
        )
        collateral_value += value_of(denom, snapshot.share_balance)
        debt_value += value_of(price, snapshot.borrow_balance)

        if modify is not None and market is modify:
            debt_value += value_of(denom, redeem_shares)
            debt_value += value_of(price, borrow_amount)

    result = AccountLiquidity.from_values(collateral_value, debt_value)
    logger.debug(
        f"Liquidity {account}: collateral={collateral_value} debt={debt_value} "
        f"-> liquidity={result.liquidity} shortfall={result.shortfall}"
    )
    return result
