"""Price oracle collaborator: протокол, оракул с прямыми ценами, feed-ы."""

from src.oracle.price_oracle import (
    CompositePriceFeed,
    DirectPriceOracle,
    FixedPriceFeed,
    PricedMarket,
    PriceFeed,
    PriceOracle,
)

__all__ = [
    "CompositePriceFeed",
    "DirectPriceOracle",
    "FixedPriceFeed",
    "PricedMarket",
    "PriceFeed",
    "PriceOracle",
]
