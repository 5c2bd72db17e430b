"""
Unit тесты для JumpRateModel.

Coverage:
- utilization (0 без заимствований, учёт reserves)
- borrow rate ниже и выше kink, включая потерю base во второй ветке
- supply rate с reserve factor
- owner-only обновление параметров и blocks_per_year
"""

import pytest

from src.core.errors import ErrorCode, ProtocolError
from src.core.math.fixed_point import EXP_SCALE, to_mantissa
from src.ledger import Ledger
from src.rate_model import (
    BLOCKS_PER_YEAR_DEFAULT,
    JumpRateModel,
    JumpRateModelConfig,
    kinked_borrow_rate,
    utilization_rate,
)

OWNER = "owner"

# один блок в год: блочные параметры равны годовым
PER_BLOCK_CONFIG = JumpRateModelConfig(blocks_per_year=1)


@pytest.fixture
def ledger():
    return Ledger(height=1)


@pytest.fixture
def model(ledger):
    return JumpRateModel(ledger, "rate-model", owner=OWNER, config=PER_BLOCK_CONFIG)


class TestUtilization:
    def test_zero_borrows(self):
        assert utilization_rate(1000, 0, 0) == 0

    def test_half(self):
        assert utilization_rate(100, 100, 0) == EXP_SCALE // 2

    def test_reserves_reduce_denominator(self):
        assert utilization_rate(50, 100, 50) == EXP_SCALE


class TestBorrowRate:
    def test_no_borrows_is_base_rate(self, model):
        assert model.get_borrow_rate(1000, 0, 0) == to_mantissa("0.1")

    def test_below_kink(self, model):
        # 0.5 × 0.45 + 0.1
        assert model.get_borrow_rate(100, 100, 0) == to_mantissa("0.325")

    def test_at_kink_uses_first_branch(self):
        rate = kinked_borrow_rate(to_mantissa("0.9"), 7, to_mantissa("0.45"), to_mantissa("5"), to_mantissa("0.9"))
        assert rate == to_mantissa("0.405") + 7

    def test_above_kink_base_added_before_scaling(self, model):
        # (0.05 × 5 + 0.9 × 0.45) + 0.1 / 1e18 → base теряется при делении
        assert model.get_borrow_rate(5, 95, 0) == to_mantissa("0.655")

    def test_default_config_per_block(self, ledger):
        model = JumpRateModel(ledger, "rate-model:default", owner=OWNER)
        assert model.blocks_per_year == BLOCKS_PER_YEAR_DEFAULT
        assert model.base_rate_per_block == to_mantissa("0.1") // BLOCKS_PER_YEAR_DEFAULT
        assert model.kink == to_mantissa("0.9")


class TestSupplyRate:
    def test_reserve_factor_applied(self, model):
        rate = model.get_supply_rate(100, 100, 0, to_mantissa("0.1"))
        assert rate == to_mantissa("0.14625")

    def test_zero_utilization(self, model):
        assert model.get_supply_rate(100, 0, 0, 0) == 0


class TestOwnerUpdates:
    def test_update_params(self, model, ledger):
        model.update_jump_rate_model(OWNER, 0, to_mantissa("0.2"), to_mantissa("2"), to_mantissa("0.8"))
        assert model.base_rate_per_block == 0
        assert model.kink == to_mantissa("0.8")
        record = ledger.records(event="NewInterestParams")[-1]
        assert record.args["multiplier_per_block"] == to_mantissa("0.2")

    def test_update_requires_owner(self, model):
        with pytest.raises(ProtocolError) as exc_info:
            model.update_jump_rate_model("mallory", 0, 0, 0, 0)
        assert exc_info.value.code == ErrorCode.OWNABLE_UNAUTHORIZED_ACCOUNT

    def test_negative_param_rejected(self, model):
        with pytest.raises(ProtocolError) as exc_info:
            model.update_jump_rate_model(OWNER, -1, 0, 0, 0)
        assert exc_info.value.code == ErrorCode.INVALID_INPUT
        assert model.base_rate_per_block == to_mantissa("0.1")

    def test_update_blocks_per_year_recomputes(self, model):
        model.update_blocks_per_year(OWNER, 10)
        assert model.base_rate_per_block == to_mantissa("0.01")
        assert model.multiplier_per_block == to_mantissa("0.045")
        assert model.kink == to_mantissa("0.9")

    def test_zero_blocks_per_year_rejected(self, model):
        with pytest.raises(ProtocolError):
            model.update_blocks_per_year(OWNER, 0)

    def test_config_validation(self):
        with pytest.raises(ValueError):
            JumpRateModelConfig(blocks_per_year=0)
