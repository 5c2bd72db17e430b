"""
Price Oracle: цены underlying-активов для Risk Engine

Протокол PriceOracle: get_underlying_price(market) → мантисса цены,
масштабированная так, что price × amount_base_units / 1e18 = стоимость
с 18 знаками. 0 означает "цена недоступна"; Risk Engine обязан трактовать
0 как невозможность оценки (fail closed).

DirectPriceOracle: owner-only прямые цены по адресу актива и feed-ы по
символу. Прямая цена имеет приоритет над feed.

CompositePriceFeed: производный feed, произведение двух-трёх feed-ов
(например, rETH/USD = ETH/USD × rETH/ETH).
"""

import logging
from typing import Any, Dict, Optional, Protocol, Tuple, runtime_checkable

from src.core.errors import ErrorCode, ProtocolError
from src.core.math.fixed_point import EXP_SCALE, validate_uint
from src.ledger.host import Ledger, LedgerParticipant, atomic

logger = logging.getLogger(__name__)


# =============================================================================
# PROTOCOLS
# =============================================================================


class UnderlyingView(Protocol):
    address: str
    symbol: str
    decimals: int


class PricedMarket(Protocol):
    """Минимальный вид рынка, нужный оракулу."""

    underlying: UnderlyingView


@runtime_checkable
class PriceOracle(Protocol):
    """Источник цен для Risk Engine."""

    def get_underlying_price(self, market: PricedMarket) -> int: ...


class PriceFeed(Protocol):
    """Внешний feed (например, агрегатор): последняя цена и её точность."""

    decimals: int

    def latest_answer(self) -> int: ...


# =============================================================================
# FEEDS
# =============================================================================


class FixedPriceFeed:
    """Feed с вручную выставляемым значением (симуляции, тесты)."""

    def __init__(self, address: str, answer: int, decimals: int = 8) -> None:
        self.address = address
        self.answer = answer
        self.decimals = decimals

    def latest_answer(self) -> int:
        return self.answer


class CompositePriceFeed:
    """
    Производный feed: base × multiplier [× second_multiplier], 18 знаков.

    Каждый ответ приводится к 18 знакам, произведение усекается на каждом
    шаге. Неположительный ответ любого компонента → 0 (цена недоступна).
    """

    decimals = 18

    def __init__(
        self,
        address: str,
        base: PriceFeed,
        multiplier: PriceFeed,
        second_multiplier: Optional[PriceFeed] = None,
    ) -> None:
        self.address = address
        self.base = base
        self.multiplier = multiplier
        self.second_multiplier = second_multiplier

    @property
    def components(self) -> Tuple[PriceFeed, ...]:
        feeds = (self.base, self.multiplier, self.second_multiplier)
        return tuple(feed for feed in feeds if feed is not None)

    def latest_answer(self) -> int:
        price = EXP_SCALE
        for feed in self.components:
            answer = feed.latest_answer()
            if answer <= 0:
                return 0
            price = price * scale_answer(answer, feed.decimals) // EXP_SCALE
        return price


def scale_answer(answer: int, decimals: int, target_decimals: int = 18) -> int:
    """Перевод ответа feed с decimals знаками в target_decimals (с усечением)."""
    if decimals <= target_decimals:
        return answer * 10 ** (target_decimals - decimals)
    return answer // 10 ** (decimals - target_decimals)


# =============================================================================
# DIRECT PRICE ORACLE
# =============================================================================


class DirectPriceOracle(LedgerParticipant):
    """
    Оракул с прямыми ценами и feed-ами.

    Приоритет: прямая цена по адресу underlying → feed по символу → 0.
    """

    _STATE_FIELDS = ("asset_prices", "_feeds")

    is_price_oracle = True

    def __init__(self, ledger: Ledger, address: str, owner: str) -> None:
        self.owner = owner
        self.asset_prices: Dict[str, int] = {}
        self._feeds: Dict[str, PriceFeed] = {}
        super().__init__(ledger, address)

    def capture_state(self) -> Dict[str, Any]:
        # feed-объекты внешние: копируется только словарь ссылок
        return {"asset_prices": dict(self.asset_prices), "_feeds": dict(self._feeds)}

    # ==================== Owner ====================

    @atomic
    def set_direct_price(self, sender: str, asset: str, price: int) -> None:
        self._require_owner(sender)
        validate_uint(price, "price")
        previous = self.asset_prices.get(asset, 0)
        self.asset_prices[asset] = price
        self.emit(
            "PricePosted",
            asset=asset,
            previous_price_mantissa=previous,
            requested_price_mantissa=price,
            new_price_mantissa=price,
        )
        logger.info(f"{self.address}: direct price {asset} {previous} -> {price}")

    @atomic
    def set_feed(self, sender: str, symbol: str, feed: PriceFeed) -> None:
        self._require_owner(sender)
        if not symbol:
            raise ProtocolError(ErrorCode.INVALID_INPUT, "empty symbol")
        self._feeds[symbol] = feed
        self.emit("FeedSet", feed=getattr(feed, "address", repr(feed)), symbol=symbol)
        logger.info(f"{self.address}: feed set for {symbol}")

    # ==================== Views ====================

    def get_feed(self, symbol: str) -> Optional[PriceFeed]:
        return self._feeds.get(symbol)

    def get_underlying_price(self, market: PricedMarket) -> int:
        underlying = market.underlying
        direct = self.asset_prices.get(underlying.address, 0)
        if direct:
            return direct

        feed = self._feeds.get(underlying.symbol)
        if feed is None:
            return 0
        return self._price_from_feed(feed, underlying.decimals)

    # ==================== Internal ====================

    def _require_owner(self, sender: str) -> None:
        if sender != self.owner:
            raise ProtocolError(ErrorCode.OWNABLE_UNAUTHORIZED_ACCOUNT, sender)

    @staticmethod
    def _price_from_feed(feed: PriceFeed, underlying_decimals: int) -> int:
        """
        Нормализация ответа feed к мантиссе 1e(36 − underlying_decimals).

        Неположительный ответ → 0 (цена недоступна).
        """
        answer = feed.latest_answer()
        if answer <= 0:
            return 0
        price_18 = scale_answer(answer, feed.decimals)
        # 1e18 на единицу актива → 1e(36 − underlying_decimals) на base unit
        if underlying_decimals <= 18:
            return price_18 * 10 ** (18 - underlying_decimals)
        return price_18 // 10 ** (underlying_decimals - 18)
