"""
Jump Rate Model: Кусочно-линейная (kinked) модель процентной ставки

Ставка зависит от utilization рынка:

    util = borrows × 1e18 / (cash + borrows − reserves)   (0 при borrows == 0)

    util ≤ kink:  borrow_rate = util × multiplier / 1e18 + base
    util > kink:  borrow_rate = ((util − kink) × jump + kink × multiplier + base) / 1e18

    supply_rate = util × (borrow_rate × (1e18 − reserve_factor) / 1e18) / 1e18

ВАЖНО: во второй ветке base прибавляется ДО деления на 1e18, в первой - после.
Это асимметрия эталонной формулы, её допуски зафиксированы тестами;
формула сохраняется как есть.

Все ставки - за блок. Годовые параметры переводятся в блочные делением на
blocks_per_year (целочисленно).
"""

import logging
from dataclasses import dataclass
from typing import Final

from src.core.errors import ErrorCode, ProtocolError
from src.core.math.fixed_point import EXP_SCALE, to_mantissa, validate_uint
from src.ledger.host import Ledger, LedgerParticipant, atomic

logger = logging.getLogger(__name__)

# Блоков в год по умолчанию (~15 s / block)
BLOCKS_PER_YEAR_DEFAULT: Final[int] = 2_102_400


# =============================================================================
# CONFIG
# =============================================================================


@dataclass(frozen=True)
class JumpRateModelConfig:
    """Годовые параметры модели (мантиссы 1e18)."""

    blocks_per_year: int = BLOCKS_PER_YEAR_DEFAULT
    base_rate_per_year: int = to_mantissa("0.1")
    multiplier_per_year: int = to_mantissa("0.45")
    jump_multiplier_per_year: int = to_mantissa("5")
    kink: int = to_mantissa("0.9")

    def __post_init__(self) -> None:
        if self.blocks_per_year <= 0:
            raise ValueError(f"blocks_per_year must be positive, got {self.blocks_per_year}")
        validate_uint(self.base_rate_per_year, "base_rate_per_year")
        validate_uint(self.multiplier_per_year, "multiplier_per_year")
        validate_uint(self.jump_multiplier_per_year, "jump_multiplier_per_year")
        validate_uint(self.kink, "kink")


# =============================================================================
# PURE FUNCTIONS
# =============================================================================


def utilization_rate(cash: int, borrows: int, reserves: int) -> int:
    """
    Utilization рынка (мантисса).

    Examples:
        >>> utilization_rate(500, 0, 0)
        0
        >>> utilization_rate(100, 100, 0)
        500000000000000000
    """
    if borrows == 0:
        return 0
    return (borrows * EXP_SCALE) // (cash + borrows - reserves)


def kinked_borrow_rate(
    util: int,
    base_rate_per_block: int,
    multiplier_per_block: int,
    jump_multiplier_per_block: int,
    kink: int,
) -> int:
    """Borrow rate за блок для заданной utilization (с асимметрией base)."""
    if util <= kink:
        return (util * multiplier_per_block) // EXP_SCALE + base_rate_per_block
    excess_util = util - kink
    return (
        excess_util * jump_multiplier_per_block
        + kink * multiplier_per_block
        + base_rate_per_block
    ) // EXP_SCALE


# =============================================================================
# MODEL
# =============================================================================


class JumpRateModel(LedgerParticipant):
    """
    Модель ставки с owner-only обновлением параметров.

    Состояние - только параметры; ставки - чистые функции от
    (cash, borrows, reserves[, reserve_factor]).
    """

    _STATE_FIELDS = (
        "blocks_per_year",
        "_base_rate_per_year",
        "_multiplier_per_year",
        "_jump_multiplier_per_year",
        "base_rate_per_block",
        "multiplier_per_block",
        "jump_multiplier_per_block",
        "kink",
    )

    is_interest_rate_model: Final[bool] = True

    def __init__(
        self,
        ledger: Ledger,
        address: str,
        owner: str,
        config: JumpRateModelConfig | None = None,
    ) -> None:
        config = config or JumpRateModelConfig()
        self.owner = owner
        self.blocks_per_year = config.blocks_per_year
        self._base_rate_per_year = config.base_rate_per_year
        self._multiplier_per_year = config.multiplier_per_year
        self._jump_multiplier_per_year = config.jump_multiplier_per_year
        self.base_rate_per_block = 0
        self.multiplier_per_block = 0
        self.jump_multiplier_per_block = 0
        self.kink = 0
        super().__init__(ledger, address)
        self._update_internal(
            config.base_rate_per_year,
            config.multiplier_per_year,
            config.jump_multiplier_per_year,
            config.kink,
        )

    # ==================== Views ====================

    def utilization_rate(self, cash: int, borrows: int, reserves: int) -> int:
        return utilization_rate(cash, borrows, reserves)

    def get_borrow_rate(self, cash: int, borrows: int, reserves: int) -> int:
        util = utilization_rate(cash, borrows, reserves)
        return kinked_borrow_rate(
            util,
            self.base_rate_per_block,
            self.multiplier_per_block,
            self.jump_multiplier_per_block,
            self.kink,
        )

    def get_supply_rate(
        self, cash: int, borrows: int, reserves: int, reserve_factor_mantissa: int
    ) -> int:
        one_minus_reserve_factor = EXP_SCALE - reserve_factor_mantissa
        borrow_rate = self.get_borrow_rate(cash, borrows, reserves)
        rate_to_pool = (borrow_rate * one_minus_reserve_factor) // EXP_SCALE
        util = utilization_rate(cash, borrows, reserves)
        return (util * rate_to_pool) // EXP_SCALE

    # ==================== Owner ====================

    @atomic
    def update_jump_rate_model(
        self,
        sender: str,
        base_rate_per_year: int,
        multiplier_per_year: int,
        jump_multiplier_per_year: int,
        kink: int,
    ) -> None:
        self._require_owner(sender)
        self._update_internal(base_rate_per_year, multiplier_per_year, jump_multiplier_per_year, kink)

    @atomic
    def update_blocks_per_year(self, sender: str, blocks_per_year: int) -> None:
        self._require_owner(sender)
        if blocks_per_year <= 0:
            raise ProtocolError(ErrorCode.INVALID_INPUT, f"blocks_per_year={blocks_per_year}")
        self.blocks_per_year = blocks_per_year
        self._update_internal(
            self._base_rate_per_year,
            self._multiplier_per_year,
            self._jump_multiplier_per_year,
            self.kink,
        )

    # ==================== Internal ====================

    def _require_owner(self, sender: str) -> None:
        if sender != self.owner:
            raise ProtocolError(ErrorCode.OWNABLE_UNAUTHORIZED_ACCOUNT, sender)

    def _update_internal(
        self,
        base_rate_per_year: int,
        multiplier_per_year: int,
        jump_multiplier_per_year: int,
        kink: int,
    ) -> None:
        for name, value in (
            ("base_rate_per_year", base_rate_per_year),
            ("multiplier_per_year", multiplier_per_year),
            ("jump_multiplier_per_year", jump_multiplier_per_year),
            ("kink", kink),
        ):
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ProtocolError(ErrorCode.INVALID_INPUT, f"{name}={value!r}")

        self._base_rate_per_year = base_rate_per_year
        self._multiplier_per_year = multiplier_per_year
        self._jump_multiplier_per_year = jump_multiplier_per_year

        self.base_rate_per_block = base_rate_per_year // self.blocks_per_year
        self.multiplier_per_block = multiplier_per_year // self.blocks_per_year
        self.jump_multiplier_per_block = jump_multiplier_per_year // self.blocks_per_year
        self.kink = kink

        self.emit(
            "NewInterestParams",
            base_rate_per_block=self.base_rate_per_block,
            multiplier_per_block=self.multiplier_per_block,
            jump_multiplier_per_block=self.jump_multiplier_per_block,
            kink=self.kink,
        )
        logger.info(
            f"{self.address}: interest params base={self.base_rate_per_block} "
            f"multiplier={self.multiplier_per_block} jump={self.jump_multiplier_per_block} "
            f"kink={self.kink} blocks_per_year={self.blocks_per_year}"
        )
