"""Risk Engine: реестр рынков, ликвидность, policy hooks, reward flywheel."""

from .engine import RiskEngine, SeizeQuote
from .flywheel import RewardFlywheel, RewardSide
from .market_view import MarketView
from .membership import MembershipIndex
from .policies import PolicyResult
from .state import MarketEntry, RiskEngineConfig

__all__ = [
    "RiskEngine",
    "RiskEngineConfig",
    "SeizeQuote",
    "MarketEntry",
    "MarketView",
    "MembershipIndex",
    "PolicyResult",
    "RewardFlywheel",
    "RewardSide",
]
