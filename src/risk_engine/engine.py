"""
Risk Engine: кросс-рыночный контроль риска

Отвечает за:
- реестр рынков (листинг необратим) и их параметры риска
  (collateral factor, borrow cap, паузы)
- членство аккаунтов в рынках (вход / выход)
- расчёт ликвидности и shortfall через MarketView и Price Oracle
- policy hooks для каждого действия Market
- reward flywheel: индексы рынков, распределение, claim / grant

ИНТЕГРАЦИЯ:
Market начисляет проценты, затем вызывает hook; hook возвращает
PolicyResult, Market вызывает raise_if_blocked(). Побочные эффекты hook-а
(flywheel, авто-вход при borrow) выполняются только при разрешении.
Все hooks и setters атомарны: ошибка откатывает весь вызов.
"""

import logging
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

from src.admin.handover import AdminHandover
from src.admin.participant import AdministeredParticipant
from src.core.domain.position import AccountLiquidity
from src.core.domain.units import borrow_weight, seize_ratio
from src.core.errors import ErrorCode, ProtocolError
from src.core.math.fixed_point import EXP_SCALE, mul_scalar_truncate, validate_uint
from src.ledger.host import Ledger, atomic
from src.oracle.price_oracle import PriceOracle
from src.risk_engine.flywheel import RewardFlywheel, RewardSide
from src.risk_engine.liquidity import compute_hypothetical_liquidity
from src.risk_engine.market_view import MarketView
from src.risk_engine.membership import MembershipIndex
from src.risk_engine.policies import (
    BorrowPolicy,
    LiquidatePolicy,
    MintPolicy,
    PolicyResult,
    RedeemPolicy,
    RepayPolicy,
    SeizePolicy,
    TransferPolicy,
)
from src.risk_engine.state import MarketEntry, RiskEngineConfig

logger = logging.getLogger(__name__)


class SeizeQuote(NamedTuple):
    """Результат конверсии repay → seize shares."""

    error: Optional[ErrorCode]
    seize_shares: int


class RiskEngine(AdministeredParticipant):
    """
    Risk Engine (comptroller).

    Args:
        ledger: Хост
        address: Адрес engine
        admin: Начальный admin
        config: Границы параметров и стартовые значения
    """

    _STATE_FIELDS = (
        "handover",
        "markets",
        "all_markets",
        "membership",
        "close_factor_mantissa",
        "liquidation_incentive_mantissa",
        "pause_guardian",
        "borrow_cap_guardian",
        "transfer_paused",
        "seize_paused",
        "trusted_caller",
        "flywheel",
    )
    _REF_FIELDS = ("price_oracle", "reward_token")

    is_risk_engine = True

    def __init__(
        self,
        ledger: Ledger,
        address: str,
        admin: str,
        config: Optional[RiskEngineConfig] = None,
    ) -> None:
        self.config = config or RiskEngineConfig()
        self.handover = AdminHandover(admin=admin)

        self.markets: Dict[str, MarketEntry] = {}
        self.all_markets: List[str] = []
        self.membership = MembershipIndex()

        self.close_factor_mantissa = self.config.close_factor_mantissa
        self.liquidation_incentive_mantissa = self.config.liquidation_incentive_mantissa

        self.pause_guardian = ""
        self.borrow_cap_guardian = ""
        self.transfer_paused = False
        self.seize_paused = False
        self.trusted_caller = ""

        self.flywheel = RewardFlywheel(self.config.reward_initial_index)
        self.price_oracle: Optional[PriceOracle] = None
        self.reward_token = None

        self._mint_policy = MintPolicy()
        self._redeem_policy = RedeemPolicy()
        self._borrow_policy = BorrowPolicy()
        self._repay_policy = RepayPolicy()
        self._liquidate_policy = LiquidatePolicy()
        self._seize_policy = SeizePolicy()
        self._transfer_policy = TransferPolicy(self._redeem_policy)

        super().__init__(ledger, address)

    # =========================================================================
    # REGISTRY
    # =========================================================================

    def _entry(self, market: MarketView) -> Optional[MarketEntry]:
        """Запись реестра, только если это тот самый объект рынка."""
        entry = self.markets.get(market.address)
        if entry is None or entry.market is not market:
            return None
        return entry

    def _require_listed(self, market: MarketView) -> MarketEntry:
        entry = self._entry(market)
        if entry is None or not entry.listed:
            raise ProtocolError(ErrorCode.MARKET_NOT_LISTED, market.address)
        return entry

    def _entries_for(self, account: str) -> List[MarketEntry]:
        return [self.markets[address] for address in self.membership.assets_in(account)]

    def _is_member(self, account: str, market: MarketView) -> bool:
        return self.membership.is_member(account, market.address)

    def _price(self, market: MarketView) -> int:
        if self.price_oracle is None:
            return 0
        return self.price_oracle.get_underlying_price(market)

    @atomic
    def support_market(self, sender: str, market: MarketView) -> None:
        """
        Листинг рынка (admin, необратимо).

        Raises:
            ProtocolError(NotAdmin / InvalidInput / AlreadyListed)
        """
        self._require_admin(sender)
        if not isinstance(market, MarketView) or not market.is_market:
            raise ProtocolError(ErrorCode.INVALID_INPUT, f"{market!r} is not a market")
        if market.address in self.markets:
            raise ProtocolError(ErrorCode.ALREADY_LISTED, market.address)

        self.markets[market.address] = MarketEntry(market=market)
        self.all_markets.append(market.address)
        self.flywheel.initialize_market(market.address, self.ledger.height)

        self.emit("MarketListed", market=market.address)
        logger.info(f"{self.address}: market listed {market.address}")

    # =========================================================================
    # ADMIN PARAMETERS
    # =========================================================================

    @atomic
    def set_price_oracle(self, sender: str, oracle: PriceOracle) -> None:
        self._require_admin(sender)
        if not isinstance(oracle, PriceOracle):
            raise ProtocolError(ErrorCode.INVALID_PRICE_ORACLE, repr(oracle))
        old = self.price_oracle
        self.price_oracle = oracle
        self.emit(
            "NewPriceOracle",
            old_price_oracle=_address_of(old),
            new_price_oracle=_address_of(oracle),
        )
        logger.info(f"{self.address}: price oracle -> {_address_of(oracle)}")

    @atomic
    def set_close_factor(self, sender: str, new_close_factor_mantissa: int) -> None:
        self._require_admin(sender)
        validate_uint(new_close_factor_mantissa, "close_factor")
        if not (
            self.config.close_factor_min_mantissa
            <= new_close_factor_mantissa
            <= self.config.close_factor_max_mantissa
        ):
            raise ProtocolError(ErrorCode.INVALID_CLOSE_FACTOR, str(new_close_factor_mantissa))
        old = self.close_factor_mantissa
        self.close_factor_mantissa = new_close_factor_mantissa
        self.emit(
            "NewCloseFactor",
            old_close_factor_mantissa=old,
            new_close_factor_mantissa=new_close_factor_mantissa,
        )
        logger.info(f"{self.address}: close factor {old} -> {new_close_factor_mantissa}")

    @atomic
    def set_collateral_factor(
        self, sender: str, market: MarketView, new_collateral_factor_mantissa: int
    ) -> None:
        """
        Raises:
            ProtocolError(NotAdmin / MarketNotListed / InvalidCollateralFactor /
            NoPriceForCollateral)
        """
        self._require_admin(sender)
        entry = self._require_listed(market)
        validate_uint(new_collateral_factor_mantissa, "collateral_factor")
        if new_collateral_factor_mantissa > self.config.collateral_factor_max_mantissa:
            raise ProtocolError(
                ErrorCode.INVALID_COLLATERAL_FACTOR, str(new_collateral_factor_mantissa)
            )
        if new_collateral_factor_mantissa != 0 and self._price(market) == 0:
            raise ProtocolError(ErrorCode.NO_PRICE_FOR_COLLATERAL, market.address)

        old = entry.collateral_factor_mantissa
        entry.collateral_factor_mantissa = new_collateral_factor_mantissa
        self.emit(
            "NewCollateralFactor",
            market=market.address,
            old_collateral_factor_mantissa=old,
            new_collateral_factor_mantissa=new_collateral_factor_mantissa,
        )
        logger.info(
            f"{self.address}: collateral factor {market.address} "
            f"{old} -> {new_collateral_factor_mantissa}"
        )

    @atomic
    def set_liquidation_incentive(self, sender: str, new_incentive_mantissa: int) -> None:
        self._require_admin(sender)
        validate_uint(new_incentive_mantissa, "liquidation_incentive")
        old = self.liquidation_incentive_mantissa
        self.liquidation_incentive_mantissa = new_incentive_mantissa
        self.emit(
            "NewLiquidationIncentive",
            old_liquidation_incentive_mantissa=old,
            new_liquidation_incentive_mantissa=new_incentive_mantissa,
        )
        logger.info(f"{self.address}: liquidation incentive {old} -> {new_incentive_mantissa}")

    @atomic
    def set_market_borrow_caps(
        self, sender: str, markets: Sequence[MarketView], new_borrow_caps: Sequence[int]
    ) -> None:
        if sender != self.admin and sender != self.borrow_cap_guardian:
            raise ProtocolError(ErrorCode.NOT_ADMIN_OR_BORROW_CAP_GUARDIAN, sender)
        if not markets or len(markets) != len(new_borrow_caps):
            raise ProtocolError(
                ErrorCode.INVALID_INPUT,
                f"{len(markets)} markets vs {len(new_borrow_caps)} caps",
            )
        for market, cap in zip(markets, new_borrow_caps):
            entry = self._require_listed(market)
            validate_uint(cap, "borrow_cap")
            entry.borrow_cap = cap
            self.emit("NewBorrowCap", market=market.address, new_borrow_cap=cap)
            logger.info(f"{self.address}: borrow cap {market.address} -> {cap}")

    @atomic
    def set_borrow_cap_guardian(self, sender: str, new_guardian: str) -> None:
        self._require_admin(sender)
        old = self.borrow_cap_guardian
        self.borrow_cap_guardian = new_guardian
        self.emit(
            "NewBorrowCapGuardian", old_borrow_cap_guardian=old, new_borrow_cap_guardian=new_guardian
        )

    @atomic
    def set_pause_guardian(self, sender: str, new_guardian: str) -> None:
        self._require_admin(sender)
        old = self.pause_guardian
        self.pause_guardian = new_guardian
        self.emit("NewPauseGuardian", old_pause_guardian=old, new_pause_guardian=new_guardian)

    @atomic
    def set_reward_token(self, sender: str, token) -> None:
        self._require_admin(sender)
        old = self.reward_token
        self.reward_token = token
        self.emit(
            "NewRewardToken",
            old_reward_token=_address_of(old),
            new_reward_token=_address_of(token),
        )

    @atomic
    def set_trusted_caller(self, sender: str, new_trusted_caller: str) -> None:
        """Адрес leverage-коллаборатора, которому разрешён borrow_behalf."""
        self._require_admin(sender)
        old = self.trusted_caller
        self.trusted_caller = new_trusted_caller
        self.emit(
            "NewTrustedCaller", old_trusted_caller=old, new_trusted_caller=new_trusted_caller
        )
        logger.info(f"{self.address}: trusted caller {old!r} -> {new_trusted_caller!r}")

    # ==================== Pause ====================

    def _require_pause_rights(self, sender: str, state: bool) -> None:
        if sender != self.admin and sender != self.pause_guardian:
            raise ProtocolError(ErrorCode.NOT_ADMIN_OR_PAUSE_GUARDIAN, sender)
        # снять паузу может только admin
        if not state and sender != self.admin:
            raise ProtocolError(ErrorCode.NOT_ADMIN, sender)

    @atomic
    def set_mint_paused(self, sender: str, market: MarketView, state: bool) -> bool:
        entry = self._require_listed(market)
        self._require_pause_rights(sender, state)
        entry.mint_paused = state
        self.emit("MarketActionPaused", market=market.address, action="Mint", pause_state=state)
        logger.info(f"{self.address}: mint paused={state} for {market.address}")
        return state

    @atomic
    def set_borrow_paused(self, sender: str, market: MarketView, state: bool) -> bool:
        entry = self._require_listed(market)
        self._require_pause_rights(sender, state)
        entry.borrow_paused = state
        self.emit("MarketActionPaused", market=market.address, action="Borrow", pause_state=state)
        logger.info(f"{self.address}: borrow paused={state} for {market.address}")
        return state

    @atomic
    def set_transfer_paused(self, sender: str, state: bool) -> bool:
        self._require_pause_rights(sender, state)
        self.transfer_paused = state
        self.emit("ActionPaused", action="Transfer", pause_state=state)
        logger.info(f"{self.address}: transfer paused={state}")
        return state

    @atomic
    def set_seize_paused(self, sender: str, state: bool) -> bool:
        self._require_pause_rights(sender, state)
        self.seize_paused = state
        self.emit("ActionPaused", action="Seize", pause_state=state)
        logger.info(f"{self.address}: seize paused={state}")
        return state

    # =========================================================================
    # MEMBERSHIP
    # =========================================================================

    def _add_membership(self, market: MarketView, account: str) -> bool:
        added = self.membership.add(account, market.address)
        if added:
            self.emit("MarketEntered", market=market.address, account=account)
        return added

    @atomic
    def enter_markets(self, account: str, markets: Sequence[MarketView]) -> List[bool]:
        """
        Вход аккаунта в рынки. Возвращает флаг "добавлен" для каждого рынка
        (False для уже существующего членства).
        """
        results = []
        for market in markets:
            self._require_listed(market)
            results.append(self._add_membership(market, account))
        return results

    @atomic
    def exit_market(self, account: str, market: MarketView) -> bool:
        """
        Выход из рынка.

        Raises:
            ProtocolError(NonzeroBorrowBalance): есть долг в рынке
            ProtocolError(InsufficientLiquidity): выход создаёт shortfall
        """
        snapshot = market.get_account_snapshot(account)
        if snapshot.borrow_balance != 0:
            raise ProtocolError(
                ErrorCode.NONZERO_BORROW_BALANCE,
                f"{account} owes {snapshot.borrow_balance} in {market.address}",
            )

        self._redeem_policy.evaluate(
            self._entry(market),
            market,
            account,
            snapshot.share_balance,
            self._is_member(account, market),
            self._entries_for(account),
            self.price_oracle,
        ).raise_if_blocked()

        if not self.membership.remove(account, market.address):
            return False
        self.emit("MarketExited", market=market.address, account=account)
        return True

    def get_assets_in(self, account: str) -> Tuple[MarketView, ...]:
        return tuple(entry.market for entry in self._entries_for(account))

    def check_membership(self, account: str, market: MarketView) -> bool:
        return self._is_member(account, market)

    # =========================================================================
    # LIQUIDITY
    # =========================================================================

    def get_account_liquidity(self, account: str) -> AccountLiquidity:
        return compute_hypothetical_liquidity(
            account, self._entries_for(account), self.price_oracle
        )

    def get_hypothetical_account_liquidity(
        self,
        account: str,
        market: Optional[MarketView],
        redeem_shares: int,
        borrow_amount: int,
    ) -> AccountLiquidity:
        """
        Ликвидность после гипотетического redeem / borrow в market.

        Raises:
            ProtocolError(ZeroPrice): цена любого рынка аккаунта недоступна
        """
        validate_uint(redeem_shares, "redeem_shares")
        validate_uint(borrow_amount, "borrow_amount")
        return compute_hypothetical_liquidity(
            account,
            self._entries_for(account),
            self.price_oracle,
            modify=market,
            redeem_shares=redeem_shares,
            borrow_amount=borrow_amount,
        )

    def liquidate_calculate_seize_tokens(
        self, borrowed: MarketView, collateral: MarketView, actual_repay_amount: int
    ) -> SeizeQuote:
        """
        seize_shares = repay × incentive × price_borrowed /
                       (price_collateral × er_collateral)

        Нулевая цена → SeizeQuote(PriceError, 0): ликвидация невозможна.
        """
        price_borrowed = self._price(borrowed)
        price_collateral = self._price(collateral)
        if price_borrowed == 0 or price_collateral == 0:
            return SeizeQuote(ErrorCode.PRICE_ERROR, 0)

        ratio = seize_ratio(
            self.liquidation_incentive_mantissa,
            price_borrowed,
            price_collateral,
            collateral.exchange_rate_stored(),
        )
        return SeizeQuote(None, mul_scalar_truncate(ratio, actual_repay_amount))

    # =========================================================================
    # POLICY HOOKS
    # =========================================================================

    def _finish(self, hook: str, result: PolicyResult) -> PolicyResult:
        if result.allowed:
            logger.debug(f"{self.address}.{hook}: allowed {result.details}")
        else:
            logger.warning(
                f"{self.address}.{hook}: blocked {result.block_reason.value} {result.details}"
            )
        return result

    @atomic
    def mint_allowed(self, market: MarketView, minter: str, mint_amount: int) -> PolicyResult:
        result = self._mint_policy.evaluate(self._entry(market), market.address, minter, mint_amount)
        if result.allowed:
            self._update_supply_index(market)
            self._distribute_supplier(market, minter)
        return self._finish("mint_allowed", result)

    @atomic
    def redeem_allowed(self, market: MarketView, redeemer: str, redeem_shares: int) -> PolicyResult:
        result = self._redeem_policy.evaluate(
            self._entry(market),
            market,
            redeemer,
            redeem_shares,
            self._is_member(redeemer, market),
            self._entries_for(redeemer),
            self.price_oracle,
        )
        if result.allowed:
            self._update_supply_index(market)
            self._distribute_supplier(market, redeemer)
        return self._finish("redeem_allowed", result)

    def redeem_verify(
        self, market: MarketView, redeemer: str, redeem_amount: int, redeem_shares: int
    ) -> PolicyResult:
        return self._finish("redeem_verify", RedeemPolicy.verify(redeem_amount, redeem_shares))

    def _called_from(self, market: MarketView, *actions: str) -> bool:
        """Текущий hook вызван из одного из методов actions этого объекта рынка."""
        frame = self.ledger.caller_frame()
        return frame is not None and frame.participant is market and frame.action in actions

    def _borrow_inputs(
        self, market: MarketView, borrower: str
    ) -> Tuple[Optional[MarketEntry], bool, bool, List[MarketEntry]]:
        entry = self._entry(market)
        is_member = self._is_member(borrower, market)
        # авто-вход только при вызове из borrow самого рынка, подключённого к этому engine
        caller_is_market = (
            entry is not None
            and market.risk_engine is self
            and self._called_from(market, "borrow", "borrow_behalf")
        )
        entries = self._entries_for(borrower)
        if not is_member and entry is not None:
            entries.append(entry)
        return entry, is_member, caller_is_market, entries

    def _after_borrow_allowed(
        self, market: MarketView, borrower: str, is_member: bool
    ) -> None:
        if not is_member:
            self._add_membership(market, borrower)
        self._update_borrow_index(market, market.borrow_index)
        self._distribute_borrower(market, borrower, market.borrow_index)

    @atomic
    def borrow_allowed(
        self,
        market: MarketView,
        borrower: str,
        borrow_amount: int,
    ) -> PolicyResult:
        """
        Авто-вход не-участника разрешён, только если hook вызван из
        Market.borrow / borrow_behalf этого же рынка (по стеку вызовов ledger).
        """
        entry, is_member, caller_is_market, entries = self._borrow_inputs(market, borrower)
        result = self._borrow_policy.evaluate(
            entry,
            market,
            borrower,
            borrow_amount,
            is_member,
            caller_is_market,
            entries,
            self.price_oracle,
        )
        if result.allowed:
            self._after_borrow_allowed(market, borrower, is_member)
        return self._finish("borrow_allowed", result)

    @atomic
    def borrow_behalf_allowed(
        self,
        market: MarketView,
        sender: str,
        borrower: str,
        borrow_amount: int,
    ) -> PolicyResult:
        entry, is_member, caller_is_market, entries = self._borrow_inputs(market, borrower)
        result = self._borrow_policy.evaluate_behalf(
            self.trusted_caller,
            sender,
            entry,
            market,
            borrower,
            borrow_amount,
            is_member,
            caller_is_market,
            entries,
            self.price_oracle,
        )
        if result.allowed:
            self._after_borrow_allowed(market, borrower, is_member)
        return self._finish("borrow_behalf_allowed", result)

    @atomic
    def repay_borrow_allowed(
        self, market: MarketView, payer: str, borrower: str, repay_amount: int
    ) -> PolicyResult:
        result = self._repay_policy.evaluate(self._entry(market), market.address, payer, borrower)
        if result.allowed:
            self._update_borrow_index(market, market.borrow_index)
            self._distribute_borrower(market, borrower, market.borrow_index)
        return self._finish("repay_borrow_allowed", result)

    def liquidate_borrow_allowed(
        self,
        borrowed: MarketView,
        collateral: MarketView,
        liquidator: str,
        borrower: str,
        repay_amount: int,
    ) -> PolicyResult:
        result = self._liquidate_policy.evaluate(
            self._entry(borrowed),
            self._entry(collateral),
            borrowed,
            collateral,
            borrower,
            repay_amount,
            self.is_deprecated(borrowed),
            self.close_factor_mantissa,
            self._entries_for(borrower),
            self.price_oracle,
        )
        return self._finish("liquidate_borrow_allowed", result)

    def _seize_in_liquidation(self, collateral: MarketView, borrowed: MarketView) -> bool:
        frames = self.ledger.call_stack[:-1]  # без кадра самого hook-а
        if not frames or frames[-1].participant is not collateral:
            return False
        if frames[-1].action == "liquidate_borrow":
            return collateral is borrowed
        if frames[-1].action != "seize" or collateral is borrowed or len(frames) < 2:
            return False
        initiator = frames[-2]
        return initiator.participant is borrowed and initiator.action == "liquidate_borrow"

    @atomic
    def seize_allowed(
        self,
        collateral: MarketView,
        borrowed: MarketView,
        liquidator: str,
        borrower: str,
        seize_shares: int,
    ) -> PolicyResult:
        """
        Seize допустим только внутри borrowed.liquidate_borrow: либо
        collateral.seize вызван оттуда, либо рынок изымает собственный залог.
        """
        result = self._seize_policy.evaluate(
            self.seize_paused,
            self._entry(collateral),
            self._entry(borrowed),
            collateral,
            borrowed,
            self._seize_in_liquidation(collateral, borrowed),
        )
        if result.allowed:
            self._update_supply_index(collateral)
            self._distribute_supplier(collateral, borrower)
            self._distribute_supplier(collateral, liquidator)
        return self._finish("seize_allowed", result)

    @atomic
    def transfer_allowed(
        self, market: MarketView, src: str, dst: str, transfer_shares: int
    ) -> PolicyResult:
        result = self._transfer_policy.evaluate(
            self.transfer_paused,
            self._entry(market),
            market,
            src,
            transfer_shares,
            self._is_member(src, market),
            self._entries_for(src),
            self.price_oracle,
        )
        if result.allowed:
            self._update_supply_index(market)
            self._distribute_supplier(market, src)
            self._distribute_supplier(market, dst)
        return self._finish("transfer_allowed", result)

    # =========================================================================
    # REWARD FLYWHEEL
    # =========================================================================

    def _update_supply_index(self, market: MarketView) -> None:
        self.flywheel.update_index(
            RewardSide.SUPPLY, market.address, market.total_shares, self.ledger.height
        )

    def _update_borrow_index(self, market: MarketView, market_borrow_index: int) -> None:
        weight = borrow_weight(market.total_borrows, market_borrow_index)
        self.flywheel.update_index(RewardSide.BORROW, market.address, weight, self.ledger.height)

    def _distribute_supplier(self, market: MarketView, supplier: str) -> None:
        distribution = self.flywheel.distribute(
            RewardSide.SUPPLY, market.address, supplier, market.balance_of(supplier)
        )
        self.emit(
            "DistributedSupplierReward",
            market=market.address,
            supplier=supplier,
            reward_delta=distribution.delta,
            reward_supply_index=distribution.index,
        )

    def _distribute_borrower(
        self, market: MarketView, borrower: str, market_borrow_index: int
    ) -> None:
        weight = borrow_weight(market.borrow_balance_stored(borrower), market_borrow_index)
        distribution = self.flywheel.distribute(RewardSide.BORROW, market.address, borrower, weight)
        self.emit(
            "DistributedBorrowerReward",
            market=market.address,
            borrower=borrower,
            reward_delta=distribution.delta,
            reward_borrow_index=distribution.index,
        )

    @atomic
    def set_reward_speeds(
        self,
        sender: str,
        markets: Sequence[MarketView],
        supply_speeds: Sequence[int],
        borrow_speeds: Sequence[int],
    ) -> None:
        """
        Скорости наград по рынкам (admin). Перед сменой скорости индекс
        стороны обновляется по старой скорости.
        """
        self._require_admin(sender)
        if len(markets) != len(supply_speeds) or len(markets) != len(borrow_speeds):
            raise ProtocolError(
                ErrorCode.INVALID_INPUT,
                f"{len(markets)} markets, {len(supply_speeds)} supply speeds, "
                f"{len(borrow_speeds)} borrow speeds",
            )

        for market, supply_speed, borrow_speed in zip(markets, supply_speeds, borrow_speeds):
            self._require_listed(market)
            validate_uint(supply_speed, "supply_speed")
            validate_uint(borrow_speed, "borrow_speed")

            if self.flywheel.speed(RewardSide.SUPPLY, market.address) != supply_speed:
                self._update_supply_index(market)
                self.flywheel.set_speed(RewardSide.SUPPLY, market.address, supply_speed)
                self.emit("RewardSupplySpeedUpdated", market=market.address, new_speed=supply_speed)

            if self.flywheel.speed(RewardSide.BORROW, market.address) != borrow_speed:
                self._update_borrow_index(market, market.borrow_index)
                self.flywheel.set_speed(RewardSide.BORROW, market.address, borrow_speed)
                self.emit("RewardBorrowSpeedUpdated", market=market.address, new_speed=borrow_speed)

            logger.info(
                f"{self.address}: reward speeds {market.address} "
                f"supply={supply_speed} borrow={borrow_speed}"
            )

    @atomic
    def set_contributor_reward_speed(self, sender: str, contributor: str, speed: int) -> None:
        self._require_admin(sender)
        validate_uint(speed, "speed")
        self.flywheel.set_contributor_speed(contributor, speed, self.ledger.height)
        self.emit("ContributorRewardSpeedUpdated", contributor=contributor, new_speed=speed)

    @atomic
    def update_contributor_rewards(self, contributor: str) -> int:
        return self.flywheel.update_contributor(contributor, self.ledger.height)

    def reward_accrued(self, account: str) -> int:
        return self.flywheel.accrued(account)

    def reward_speeds(self, market: MarketView) -> Tuple[int, int]:
        """(supply_speed, borrow_speed) рынка."""
        return (
            self.flywheel.speed(RewardSide.SUPPLY, market.address),
            self.flywheel.speed(RewardSide.BORROW, market.address),
        )

    def _grant_internal(self, recipient: str, amount: int) -> int:
        """
        Перевод наград из баланса engine. Возвращает невыполненный остаток:
        при нехватке средств перевода нет вовсе (без частичной выплаты).
        """
        if amount == 0:
            return 0
        if self.reward_token is None:
            return amount
        remaining = self.reward_token.balance_of(self.address)
        if amount > remaining:
            return amount
        self.reward_token.transfer(self.address, recipient, amount)
        return 0

    @atomic
    def claim_reward(
        self,
        holder: str,
        markets: Optional[Sequence[MarketView]] = None,
        borrowers: bool = True,
        suppliers: bool = True,
    ) -> int:
        """Claim наград holder-а по рынкам (по умолчанию все). Возвращает выплаченное."""
        return self.claim_reward_for([holder], markets, borrowers, suppliers)

    @atomic
    def claim_reward_for(
        self,
        holders: Sequence[str],
        markets: Optional[Sequence[MarketView]] = None,
        borrowers: bool = True,
        suppliers: bool = True,
    ) -> int:
        if markets is None:
            markets = [self.markets[address].market for address in self.all_markets]

        for market in markets:
            self._require_listed(market)
            if borrowers:
                borrow_index = market.borrow_index
                self._update_borrow_index(market, borrow_index)
                for holder in holders:
                    self._distribute_borrower(market, holder, borrow_index)
            if suppliers:
                self._update_supply_index(market)
                for holder in holders:
                    self._distribute_supplier(market, holder)

        paid = 0
        for holder in holders:
            accrued = self.flywheel.accrued(holder)
            remainder = self._grant_internal(holder, accrued)
            self.flywheel.set_accrued(holder, remainder)
            paid += accrued - remainder
        logger.debug(f"{self.address}: claimed {paid} for {len(holders)} holder(s)")
        return paid

    @atomic
    def grant_reward(self, sender: str, recipient: str, amount: int) -> None:
        """
        Raises:
            ProtocolError(InsufficientRewardForGrant): баланса engine не хватает
        """
        self._require_admin(sender)
        validate_uint(amount, "amount")
        remainder = self._grant_internal(recipient, amount)
        if remainder != 0:
            raise ProtocolError(
                ErrorCode.INSUFFICIENT_REWARD_FOR_GRANT, f"{amount} to {recipient}"
            )
        self.emit("RewardGranted", recipient=recipient, amount=amount)
        logger.info(f"{self.address}: granted {amount} reward to {recipient}")

    # =========================================================================
    # VIEWS
    # =========================================================================

    def get_market_info(self, market: MarketView) -> Tuple[bool, int]:
        """(listed, collateral_factor_mantissa)."""
        entry = self._entry(market)
        if entry is None:
            return False, 0
        return entry.listed, entry.collateral_factor_mantissa

    def get_all_markets(self) -> Tuple[MarketView, ...]:
        return tuple(self.markets[address].market for address in self.all_markets)

    def is_deprecated(self, market: MarketView) -> bool:
        """cf = 0, borrow на паузе и reserve factor = 100%."""
        entry = self._entry(market)
        if entry is None:
            return False
        return (
            entry.collateral_factor_mantissa == 0
            and entry.borrow_paused
            and market.reserve_factor_mantissa == EXP_SCALE
        )


def _address_of(participant) -> str:
    if participant is None:
        return ""
    return getattr(participant, "address", "")
