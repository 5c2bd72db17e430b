"""Market: денежный рынок одного underlying-актива."""

from .market import Market, MarketConfig

__all__ = ["Market", "MarketConfig"]
