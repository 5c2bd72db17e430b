"""
Audit: Записи append-only audit log

Каждое state-changing действие эмитит ровно одну или несколько записей
AuditRecord(height, emitter, event, args). Порядок и состав полей args
фиксирован реестром EVENT_FIELDS; запись с иным набором полей - нарушение
внутреннего инварианта (InvariantViolation).

Соответствует схеме contracts/schema/audit_record.json.
"""

from typing import Any, Dict, Final, Mapping, Tuple

from pydantic import BaseModel, Field

from src.core.errors import InvariantViolation


# =============================================================================
# EVENT REGISTRY
# =============================================================================

EVENT_FIELDS: Final[Dict[str, Tuple[str, ...]]] = {
    # Market: interest & actions
    "AccrueInterest": ("cash_prior", "interest_accumulated", "borrow_index", "total_borrows"),
    "Mint": ("minter", "mint_amount", "mint_shares"),
    "Redeem": ("redeemer", "redeem_amount", "redeem_shares"),
    "Borrow": ("borrower", "borrow_amount", "account_borrows", "total_borrows"),
    "RepayBorrow": ("payer", "borrower", "repay_amount", "account_borrows", "total_borrows"),
    "LiquidateBorrow": (
        "liquidator",
        "borrower",
        "repay_amount",
        "collateral_market",
        "seize_shares",
    ),
    # ERC-20 (shares и underlying-токены)
    "Transfer": ("src", "dst", "amount"),
    "Approval": ("owner", "spender", "amount"),
    # Market: admin
    "NewPendingAdmin": ("old_pending_admin", "new_pending_admin"),
    "NewAdmin": ("old_admin", "new_admin"),
    "NewComptroller": ("old_comptroller", "new_comptroller"),
    "NewReserveFactor": ("old_reserve_factor_mantissa", "new_reserve_factor_mantissa"),
    "NewMarketInterestRateModel": ("old_interest_rate_model", "new_interest_rate_model"),
    "ReservesAdded": ("benefactor", "add_amount", "new_total_reserves"),
    "ReservesReduced": ("admin", "reduce_amount", "new_total_reserves"),
    # Rate model
    "NewInterestParams": (
        "base_rate_per_block",
        "multiplier_per_block",
        "jump_multiplier_per_block",
        "kink",
    ),
    # Risk engine: registry & parameters
    "MarketListed": ("market",),
    "MarketEntered": ("market", "account"),
    "MarketExited": ("market", "account"),
    "NewCloseFactor": ("old_close_factor_mantissa", "new_close_factor_mantissa"),
    "NewCollateralFactor": (
        "market",
        "old_collateral_factor_mantissa",
        "new_collateral_factor_mantissa",
    ),
    "NewLiquidationIncentive": (
        "old_liquidation_incentive_mantissa",
        "new_liquidation_incentive_mantissa",
    ),
    "NewPriceOracle": ("old_price_oracle", "new_price_oracle"),
    "NewPauseGuardian": ("old_pause_guardian", "new_pause_guardian"),
    "NewBorrowCapGuardian": ("old_borrow_cap_guardian", "new_borrow_cap_guardian"),
    "NewBorrowCap": ("market", "new_borrow_cap"),
    "ActionPaused": ("action", "pause_state"),
    "MarketActionPaused": ("market", "action", "pause_state"),
    "NewRewardToken": ("old_reward_token", "new_reward_token"),
    "NewTrustedCaller": ("old_trusted_caller", "new_trusted_caller"),
    # Risk engine: flywheel
    "RewardSupplySpeedUpdated": ("market", "new_speed"),
    "RewardBorrowSpeedUpdated": ("market", "new_speed"),
    "ContributorRewardSpeedUpdated": ("contributor", "new_speed"),
    "DistributedSupplierReward": ("market", "supplier", "reward_delta", "reward_supply_index"),
    "DistributedBorrowerReward": ("market", "borrower", "reward_delta", "reward_borrow_index"),
    "RewardGranted": ("recipient", "amount"),
    # Oracle
    "PricePosted": (
        "asset",
        "previous_price_mantissa",
        "requested_price_mantissa",
        "new_price_mantissa",
    ),
    "FeedSet": ("feed", "symbol"),
    # Reward token
    "NewMinter": ("old_minter", "new_minter"),
    "Minted": ("minter", "to", "amount"),
}


# =============================================================================
# AUDIT RECORD
# =============================================================================


class AuditRecord(BaseModel):
    """
    Одна запись audit log.

    Immutable. Создаётся только через AuditRecord.create (проверка реестра).
    """

    height: int = Field(..., ge=0, description="Высота ledger в момент эмиссии")
    emitter: str = Field(..., min_length=1, description="Адрес эмитента")
    event: str = Field(..., min_length=1, description="Имя события из EVENT_FIELDS")
    args: Dict[str, Any] = Field(default_factory=dict, description="Аргументы события")

    model_config = {"frozen": True}

    @classmethod
    def create(
        cls,
        height: int,
        emitter: str,
        event: str,
        args: Mapping[str, Any],
    ) -> "AuditRecord":
        """
        Создание записи с проверкой порядка полей.

        args переупорядочиваются в порядок реестра; отсутствующее или
        лишнее поле - InvariantViolation.
        """
        expected = EVENT_FIELDS.get(event)
        if expected is None:
            raise InvariantViolation(f"Unregistered audit event: {event}")
        if set(args) != set(expected):
            raise InvariantViolation(
                f"Audit event {event} expects fields {expected}, got {tuple(args)}"
            )
        ordered = {name: args[name] for name in expected}
        return cls(height=height, emitter=emitter, event=event, args=ordered)

    def field_values(self) -> Tuple[Any, ...]:
        """Значения args в порядке реестра."""
        return tuple(self.args.values())

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()
