"""
Risk Engine state: конфигурация и запись рынка в реестре.
"""

from dataclasses import dataclass
from typing import Final

from src.core.math.fixed_point import DOUBLE_SCALE, to_mantissa
from src.risk_engine.market_view import MarketView

# Начальный индекс reward flywheel (1.0 в Double)
REWARD_INITIAL_INDEX: Final[int] = DOUBLE_SCALE

# Границы close factor
CLOSE_FACTOR_MIN_MANTISSA: Final[int] = to_mantissa("0.05")
CLOSE_FACTOR_MAX_MANTISSA: Final[int] = to_mantissa("0.9")

# Максимальный collateral factor
COLLATERAL_FACTOR_MAX_MANTISSA: Final[int] = to_mantissa("0.9")

# Стартовые параметры ликвидации
DEFAULT_CLOSE_FACTOR_MANTISSA: Final[int] = to_mantissa("0.5")
DEFAULT_LIQUIDATION_INCENTIVE_MANTISSA: Final[int] = to_mantissa("1.08")


@dataclass(frozen=True)
class RiskEngineConfig:
    """Границы и стартовые значения параметров Risk Engine."""

    close_factor_min_mantissa: int = CLOSE_FACTOR_MIN_MANTISSA
    close_factor_max_mantissa: int = CLOSE_FACTOR_MAX_MANTISSA
    collateral_factor_max_mantissa: int = COLLATERAL_FACTOR_MAX_MANTISSA
    reward_initial_index: int = REWARD_INITIAL_INDEX

    close_factor_mantissa: int = DEFAULT_CLOSE_FACTOR_MANTISSA
    liquidation_incentive_mantissa: int = DEFAULT_LIQUIDATION_INCENTIVE_MANTISSA

    def __post_init__(self) -> None:
        if self.close_factor_min_mantissa > self.close_factor_max_mantissa:
            raise ValueError(
                f"close factor bounds inverted: "
                f"{self.close_factor_min_mantissa} > {self.close_factor_max_mantissa}"
            )
        if not (
            self.close_factor_min_mantissa
            <= self.close_factor_mantissa
            <= self.close_factor_max_mantissa
        ):
            raise ValueError(f"close_factor_mantissa out of bounds: {self.close_factor_mantissa}")
        if self.liquidation_incentive_mantissa < 0:
            raise ValueError("liquidation_incentive_mantissa must be non-negative")
        if self.reward_initial_index <= 0:
            raise ValueError("reward_initial_index must be positive")


@dataclass
class MarketEntry:
    """
    Запись рынка в реестре Risk Engine.

    listed устанавливается один раз и никогда не снимается.
    """

    market: MarketView
    listed: bool = True
    collateral_factor_mantissa: int = 0
    borrow_cap: int = 0  # 0 = без ограничения
    mint_paused: bool = False
    borrow_paused: bool = False
