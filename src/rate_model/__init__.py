"""Rate Model: kinked (jump) utilization interest-rate model."""

from src.rate_model.jump_rate_model import (
    BLOCKS_PER_YEAR_DEFAULT,
    JumpRateModel,
    JumpRateModelConfig,
    kinked_borrow_rate,
    utilization_rate,
)

__all__ = [
    "BLOCKS_PER_YEAR_DEFAULT",
    "JumpRateModel",
    "JumpRateModelConfig",
    "kinked_borrow_rate",
    "utilization_rate",
]
