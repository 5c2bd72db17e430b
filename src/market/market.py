"""
Market: денежный рынок одного underlying-актива

Хранит:
- shares (ERC-20-подобные доли) и allowances
- borrow snapshots аккаунтов (principal, interest_index)
- totals: total_shares, total_borrows, total_reserves, borrow_index
- checkpoint начисления accrual_block_number

ПОРЯДОК ДЕЙСТВИЯ:
1. accrue_interest (проценты до текущей высоты)
2. hook Risk Engine → PolicyResult.raise_if_blocked()
3. проверка свежести (accrual_block_number == height)
4. проверки ресурсов (cash, балансы)
5. мутация состояния и переводы underlying
6. audit-записи

Публичные действия атомарны и не допускают повторного входа в тот же
рынок (Reentered). Поступления underlying измеряются по дельте баланса
рынка (fee-on-transfer токены).
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

from src.admin.handover import AdminHandover
from src.admin.participant import AdministeredParticipant
from src.core.domain.market_state import AccountSnapshot, MarketSnapshot
from src.core.domain.position import BorrowSnapshot, RepayAmount
from src.core.domain.units import shares_from_underlying, underlying_from_shares
from src.core.errors import ErrorCode, ProtocolError
from src.core.math.accrual import (
    INITIAL_BORROW_INDEX,
    RESERVE_FACTOR_MAX_MANTISSA,
    compute_accrual,
    exchange_rate,
)
from src.core.math.fixed_point import EXP_SCALE, div_exp, validate_uint
from src.ledger.host import Ledger, atomic, non_reentrant
from src.ledger.token import Erc20Token

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIG
# =============================================================================


@dataclass(frozen=True)
class MarketConfig:
    """Параметры рынка при создании."""

    initial_exchange_rate_mantissa: int = EXP_SCALE
    reserve_factor_mantissa: int = 0
    name: str = "Market Share"
    symbol: str = "mSHARE"
    decimals: int = 18

    def __post_init__(self) -> None:
        if self.initial_exchange_rate_mantissa <= 0:
            raise ValueError(
                f"initial_exchange_rate_mantissa must be positive, "
                f"got {self.initial_exchange_rate_mantissa}"
            )
        if not 0 <= self.reserve_factor_mantissa <= RESERVE_FACTOR_MAX_MANTISSA:
            raise ValueError(f"reserve_factor_mantissa out of range: {self.reserve_factor_mantissa}")
        if not self.symbol:
            raise ValueError("symbol must be non-empty")


RepayInput = Union[RepayAmount, int]


# =============================================================================
# MARKET
# =============================================================================


class Market(AdministeredParticipant):
    """
    Рынок (cToken-подобный).

    Args:
        ledger: Хост
        address: Адрес рынка
        underlying: ERC-20 underlying-токен
        risk_engine: Risk Engine (is_risk_engine)
        rate_model: Модель ставки (is_interest_rate_model)
        admin: Начальный admin
        config: MarketConfig
    """

    _STATE_FIELDS = (
        "handover",
        "accrual_block_number",
        "borrow_index",
        "total_borrows",
        "total_reserves",
        "total_shares",
        "reserve_factor_mantissa",
        "_balances",
        "_allowances",
        "_borrow_snapshots",
    )
    _REF_FIELDS = ("risk_engine", "rate_model")

    is_market = True

    def __init__(
        self,
        ledger: Ledger,
        address: str,
        underlying: Erc20Token,
        risk_engine,
        rate_model,
        admin: str,
        config: Optional[MarketConfig] = None,
    ) -> None:
        config = config or MarketConfig()
        _require_risk_engine(risk_engine)
        _require_rate_model(rate_model)

        self.config = config
        self.underlying = underlying
        self.name = config.name
        self.symbol = config.symbol
        self.decimals = config.decimals
        self.initial_exchange_rate_mantissa = config.initial_exchange_rate_mantissa

        self.handover = AdminHandover(admin=admin)
        self.risk_engine = risk_engine
        self.rate_model = rate_model

        self.accrual_block_number = ledger.height
        self.borrow_index = INITIAL_BORROW_INDEX
        self.total_borrows = 0
        self.total_reserves = 0
        self.total_shares = 0
        self.reserve_factor_mantissa = config.reserve_factor_mantissa

        self._balances: Dict[str, int] = {}
        self._allowances: Dict[str, Dict[str, int]] = {}
        self._borrow_snapshots: Dict[str, BorrowSnapshot] = {}
        self._entered = False

        super().__init__(ledger, address)

        self.emit("NewComptroller", old_comptroller="", new_comptroller=risk_engine.address)
        self.emit(
            "NewMarketInterestRateModel",
            old_interest_rate_model="",
            new_interest_rate_model=rate_model.address,
        )
        logger.info(
            f"Market {self.symbol} at {address}: underlying={underlying.symbol} "
            f"initial_exchange_rate={self.initial_exchange_rate_mantissa}"
        )

    # =========================================================================
    # ERC-20 VIEWS
    # =========================================================================

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get(owner, {}).get(spender, 0)

    # =========================================================================
    # VIEWS
    # =========================================================================

    def get_cash(self) -> int:
        return self.underlying.balance_of(self.address)

    def exchange_rate_stored(self) -> int:
        return exchange_rate(
            self.get_cash(),
            self.total_borrows,
            self.total_reserves,
            self.total_shares,
            self.initial_exchange_rate_mantissa,
        )

    def borrow_balance_stored(self, account: str) -> int:
        snapshot = self._borrow_snapshots.get(account)
        if snapshot is None:
            return 0
        return snapshot.balance(self.borrow_index)

    def get_account_snapshot(self, account: str) -> AccountSnapshot:
        return AccountSnapshot(
            market=self.address,
            account=account,
            share_balance=self.balance_of(account),
            borrow_balance=self.borrow_balance_stored(account),
            exchange_rate_mantissa=self.exchange_rate_stored(),
        )

    def borrow_rate_per_block(self) -> int:
        return self.rate_model.get_borrow_rate(
            self.get_cash(), self.total_borrows, self.total_reserves
        )

    def supply_rate_per_block(self) -> int:
        return self.rate_model.get_supply_rate(
            self.get_cash(), self.total_borrows, self.total_reserves, self.reserve_factor_mantissa
        )

    def snapshot(self) -> MarketSnapshot:
        return MarketSnapshot(
            address=self.address,
            symbol=self.symbol,
            underlying=self.underlying.address,
            height=self.ledger.height,
            accrual_block_number=self.accrual_block_number,
            cash=self.get_cash(),
            total_shares=self.total_shares,
            total_borrows=self.total_borrows,
            total_reserves=self.total_reserves,
            borrow_index=self.borrow_index,
            reserve_factor_mantissa=self.reserve_factor_mantissa,
            exchange_rate_mantissa=self.exchange_rate_stored(),
        )

    # ==================== Current (с начислением) ====================

    @non_reentrant
    def exchange_rate_current(self) -> int:
        self._accrue_interest()
        return self.exchange_rate_stored()

    @non_reentrant
    def borrow_balance_current(self, account: str) -> int:
        self._accrue_interest()
        return self.borrow_balance_stored(account)

    @non_reentrant
    def total_borrows_current(self) -> int:
        self._accrue_interest()
        return self.total_borrows

    @non_reentrant
    def balance_of_underlying(self, owner: str) -> int:
        self._accrue_interest()
        return underlying_from_shares(self.balance_of(owner), self.exchange_rate_stored())

    # =========================================================================
    # INTEREST
    # =========================================================================

    @atomic
    def accrue_interest(self) -> int:
        """
        Начисление процентов до текущей высоты. Идемпотентно в пределах блока.

        Returns:
            Начисленные проценты (0, если checkpoint уже на текущей высоте)
        """
        return self._accrue_interest()

    def _accrue_interest(self) -> int:
        current = self.ledger.height
        if self.accrual_block_number == current:
            return 0

        cash_prior = self.get_cash()
        borrow_rate = self.rate_model.get_borrow_rate(
            cash_prior, self.total_borrows, self.total_reserves
        )
        result = compute_accrual(
            cash_prior,
            self.total_borrows,
            self.total_reserves,
            self.borrow_index,
            self.reserve_factor_mantissa,
            borrow_rate,
            current - self.accrual_block_number,
        )

        self.accrual_block_number = current
        self.borrow_index = result.borrow_index
        self.total_borrows = result.total_borrows
        self.total_reserves = result.total_reserves

        self.emit(
            "AccrueInterest",
            cash_prior=cash_prior,
            interest_accumulated=result.interest_accumulated,
            borrow_index=result.borrow_index,
            total_borrows=result.total_borrows,
        )
        logger.debug(
            f"{self.symbol}: accrued {result.interest_accumulated} over "
            f"{result.block_delta} blocks, borrow_index={result.borrow_index}"
        )
        return result.interest_accumulated

    def _require_fresh(self, code: ErrorCode) -> None:
        if self.accrual_block_number != self.ledger.height:
            raise ProtocolError(
                code, f"accrued at {self.accrual_block_number}, height {self.ledger.height}"
            )

    # =========================================================================
    # UNDERLYING TRANSFERS
    # =========================================================================

    def _do_transfer_in(self, src: str, amount: int) -> int:
        """Перевод underlying в рынок; возвращает фактически полученное."""
        balance_before = self.get_cash()
        self.underlying.transfer_from(self.address, src, self.address, amount)
        return self.get_cash() - balance_before

    def _do_transfer_out(self, to: str, amount: int) -> None:
        self.underlying.transfer(self.address, to, amount)

    # =========================================================================
    # MINT
    # =========================================================================

    @non_reentrant
    def mint(self, minter: str, mint_amount: int) -> int:
        """
        Поставка underlying в обмен на shares.

        Returns:
            Выпущенные shares
        """
        validate_uint(mint_amount, "mint_amount")
        self._accrue_interest()

        self.risk_engine.mint_allowed(self, minter, mint_amount).raise_if_blocked()
        self._require_fresh(ErrorCode.MINT_FRESHNESS_CHECK)

        exchange_rate_mantissa = self.exchange_rate_stored()
        actual_mint_amount = self._do_transfer_in(minter, mint_amount)
        mint_shares = shares_from_underlying(actual_mint_amount, exchange_rate_mantissa)

        self.total_shares += mint_shares
        self._balances[minter] = self.balance_of(minter) + mint_shares

        self.emit("Mint", minter=minter, mint_amount=actual_mint_amount, mint_shares=mint_shares)
        self.emit("Transfer", src=self.address, dst=minter, amount=mint_shares)
        logger.debug(f"{self.symbol}: {minter} minted {mint_shares} shares for {actual_mint_amount}")
        return mint_shares

    # =========================================================================
    # REDEEM
    # =========================================================================

    @non_reentrant
    def redeem(self, redeemer: str, redeem_shares: int) -> int:
        """Выкуп shares. Возвращает выплаченный underlying."""
        validate_uint(redeem_shares, "redeem_shares")
        self._accrue_interest()
        redeem_amount, _ = self._redeem_fresh(redeemer, redeem_shares, 0)
        return redeem_amount

    @non_reentrant
    def redeem_underlying(self, redeemer: str, redeem_amount: int) -> int:
        """Выкуп заданной суммы underlying. Возвращает сожжённые shares."""
        validate_uint(redeem_amount, "redeem_amount")
        self._accrue_interest()
        _, redeem_shares = self._redeem_fresh(redeemer, 0, redeem_amount)
        return redeem_shares

    def _redeem_fresh(
        self, redeemer: str, redeem_shares_in: int, redeem_amount_in: int
    ) -> Tuple[int, int]:
        """Returns: (redeem_amount, redeem_shares)"""
        exchange_rate_mantissa = self.exchange_rate_stored()

        if redeem_shares_in > 0:
            redeem_shares = redeem_shares_in
            redeem_amount = underlying_from_shares(redeem_shares_in, exchange_rate_mantissa)
        else:
            redeem_shares = div_exp(redeem_amount_in, exchange_rate_mantissa)
            redeem_amount = redeem_amount_in

        self.risk_engine.redeem_allowed(self, redeemer, redeem_shares).raise_if_blocked()
        self._require_fresh(ErrorCode.REDEEM_FRESHNESS_CHECK)

        cash = self.get_cash()
        if cash < redeem_amount:
            raise ProtocolError(
                ErrorCode.REDEEM_TRANSFER_OUT_NOT_POSSIBLE, f"cash {cash} < {redeem_amount}"
            )
        balance = self.balance_of(redeemer)
        if balance < redeem_shares:
            raise ProtocolError(
                ErrorCode.REDEEM_TOO_MUCH, f"{redeemer} holds {balance} < {redeem_shares}"
            )

        self.total_shares -= redeem_shares
        self._balances[redeemer] = balance - redeem_shares
        self._do_transfer_out(redeemer, redeem_amount)

        self.emit("Transfer", src=redeemer, dst=self.address, amount=redeem_shares)
        self.emit(
            "Redeem", redeemer=redeemer, redeem_amount=redeem_amount, redeem_shares=redeem_shares
        )
        self.risk_engine.redeem_verify(
            self, redeemer, redeem_amount, redeem_shares
        ).raise_if_blocked()

        logger.debug(f"{self.symbol}: {redeemer} redeemed {redeem_shares} shares for {redeem_amount}")
        return redeem_amount, redeem_shares

    # =========================================================================
    # BORROW
    # =========================================================================

    @non_reentrant
    def borrow(self, borrower: str, borrow_amount: int) -> int:
        """Заём underlying; средства получает borrower."""
        validate_uint(borrow_amount, "borrow_amount")
        self._accrue_interest()
        self.risk_engine.borrow_allowed(self, borrower, borrow_amount).raise_if_blocked()
        return self._borrow_fresh(borrower, borrow_amount, recipient=borrower)

    @non_reentrant
    def borrow_behalf(self, sender: str, borrower: str, borrow_amount: int) -> int:
        """
        Заём от имени borrower (только trusted caller). Долг записывается
        на borrower, underlying получает sender.
        """
        validate_uint(borrow_amount, "borrow_amount")
        self._accrue_interest()
        self.risk_engine.borrow_behalf_allowed(
            self, sender, borrower, borrow_amount
        ).raise_if_blocked()
        return self._borrow_fresh(borrower, borrow_amount, recipient=sender)

    def _borrow_fresh(self, borrower: str, borrow_amount: int, recipient: str) -> int:
        self._require_fresh(ErrorCode.BORROW_FRESHNESS_CHECK)

        cash = self.get_cash()
        if cash < borrow_amount:
            raise ProtocolError(
                ErrorCode.BORROW_CASH_NOT_AVAILABLE, f"cash {cash} < {borrow_amount}"
            )

        account_borrows = self.borrow_balance_stored(borrower) + borrow_amount
        self.total_borrows += borrow_amount
        self._borrow_snapshots[borrower] = BorrowSnapshot(
            principal=account_borrows, interest_index=self.borrow_index
        )

        self._do_transfer_out(recipient, borrow_amount)

        self.emit(
            "Borrow",
            borrower=borrower,
            borrow_amount=borrow_amount,
            account_borrows=account_borrows,
            total_borrows=self.total_borrows,
        )
        logger.debug(f"{self.symbol}: {borrower} borrowed {borrow_amount}, debt {account_borrows}")
        return account_borrows

    # =========================================================================
    # REPAY
    # =========================================================================

    @non_reentrant
    def repay_borrow(self, payer: str, repay_amount: RepayInput) -> int:
        """Погашение собственного долга. Возвращает фактически погашенное."""
        self._accrue_interest()
        return self._repay_borrow_fresh(payer, payer, RepayAmount.coerce(repay_amount))

    @non_reentrant
    def repay_borrow_behalf(self, payer: str, borrower: str, repay_amount: RepayInput) -> int:
        self._accrue_interest()
        return self._repay_borrow_fresh(payer, borrower, RepayAmount.coerce(repay_amount))

    def _repay_borrow_fresh(self, payer: str, borrower: str, repay_amount: RepayAmount) -> int:
        account_borrows_prev = self.borrow_balance_stored(borrower)
        repay = repay_amount.resolve(account_borrows_prev)

        self.risk_engine.repay_borrow_allowed(self, payer, borrower, repay).raise_if_blocked()
        self._require_fresh(ErrorCode.REPAY_BORROW_FRESHNESS_CHECK)

        if repay > account_borrows_prev:
            raise ProtocolError(
                ErrorCode.TOO_MUCH_REPAY, f"repay {repay} > debt {account_borrows_prev}"
            )

        actual_repay_amount = self._do_transfer_in(payer, repay)

        account_borrows = account_borrows_prev - actual_repay_amount
        # округление borrow_index может дать сумму долгов больше total_borrows
        self.total_borrows = max(self.total_borrows - actual_repay_amount, 0)
        self._borrow_snapshots[borrower] = BorrowSnapshot(
            principal=account_borrows, interest_index=self.borrow_index
        )

        self.emit(
            "RepayBorrow",
            payer=payer,
            borrower=borrower,
            repay_amount=actual_repay_amount,
            account_borrows=account_borrows,
            total_borrows=self.total_borrows,
        )
        logger.debug(f"{self.symbol}: {payer} repaid {actual_repay_amount} for {borrower}")
        return actual_repay_amount

    # =========================================================================
    # LIQUIDATION
    # =========================================================================

    @non_reentrant
    def liquidate_borrow(
        self,
        liquidator: str,
        borrower: str,
        repay_amount: RepayInput,
        collateral: "Market",
    ) -> Tuple[int, int]:
        """
        Ликвидация: liquidator гасит часть долга borrower и получает shares
        collateral-рынка с incentive.

        Returns:
            (actual_repay_amount, seize_shares)
        """
        self._accrue_interest()
        if collateral is self:
            self._accrue_interest()
        else:
            collateral.accrue_interest()

        self._require_fresh(ErrorCode.LIQUIDATE_FRESHNESS_CHECK)
        if collateral.accrual_block_number != self.ledger.height:
            raise ProtocolError(ErrorCode.LIQUIDATE_COLLATERAL_FRESHNESS_CHECK, collateral.address)

        if liquidator == borrower:
            raise ProtocolError(ErrorCode.LIQUIDATE_LIQUIDATOR_IS_BORROWER, borrower)

        repay = RepayAmount.coerce(repay_amount)
        if repay.is_full:
            raise ProtocolError(ErrorCode.LIQUIDATE_CLOSE_AMOUNT_IS_UINT_MAX)
        if repay.amount == 0:
            raise ProtocolError(ErrorCode.LIQUIDATE_CLOSE_AMOUNT_IS_ZERO)

        self.risk_engine.liquidate_borrow_allowed(
            self, collateral, liquidator, borrower, repay.amount
        ).raise_if_blocked()

        actual_repay_amount = self._repay_borrow_fresh(liquidator, borrower, repay)

        quote = self.risk_engine.liquidate_calculate_seize_tokens(
            self, collateral, actual_repay_amount
        )
        if quote.error is not None:
            raise ProtocolError(
                ErrorCode.LIQUIDATE_CALCULATE_AMOUNT_SEIZE_FAILED, quote.error.value
            )
        seize_shares = quote.seize_shares

        collateral_balance = collateral.balance_of(borrower)
        if collateral_balance < seize_shares:
            raise ProtocolError(
                ErrorCode.LIQUIDATE_SEIZE_TOO_MUCH, f"{collateral_balance} < {seize_shares}"
            )

        if collateral is self:
            self._seize_internal(self, liquidator, borrower, seize_shares)
        else:
            collateral.seize(self, liquidator, borrower, seize_shares)

        self.emit(
            "LiquidateBorrow",
            liquidator=liquidator,
            borrower=borrower,
            repay_amount=actual_repay_amount,
            collateral_market=collateral.address,
            seize_shares=seize_shares,
        )
        logger.info(
            f"{self.symbol}: {liquidator} liquidated {borrower}: repaid {actual_repay_amount}, "
            f"seized {seize_shares} shares of {collateral.address}"
        )
        return actual_repay_amount, seize_shares

    @non_reentrant
    def seize(self, seizer: "Market", liquidator: str, borrower: str, seize_shares: int) -> None:
        """
        Перевод shares заёмщика ликвидатору. Risk Engine разрешает seize только
        изнутри seizer.liquidate_borrow (SeizeOutsideLiquidation).
        """
        validate_uint(seize_shares, "seize_shares")
        self._seize_internal(seizer, liquidator, borrower, seize_shares)

    def _seize_internal(
        self, seizer: "Market", liquidator: str, borrower: str, seize_shares: int
    ) -> None:
        self.risk_engine.seize_allowed(
            self, seizer, liquidator, borrower, seize_shares
        ).raise_if_blocked()

        if liquidator == borrower:
            raise ProtocolError(ErrorCode.LIQUIDATE_SEIZE_LIQUIDATOR_IS_BORROWER, borrower)
        self._require_fresh(ErrorCode.LIQUIDATE_COLLATERAL_FRESHNESS_CHECK)

        borrower_balance = self.balance_of(borrower)
        if borrower_balance < seize_shares:
            raise ProtocolError(
                ErrorCode.LIQUIDATE_SEIZE_TOO_MUCH, f"{borrower_balance} < {seize_shares}"
            )

        self._balances[borrower] = borrower_balance - seize_shares
        self._balances[liquidator] = self.balance_of(liquidator) + seize_shares
        self.emit("Transfer", src=borrower, dst=liquidator, amount=seize_shares)

    # =========================================================================
    # SHARE TRANSFERS
    # =========================================================================

    @non_reentrant
    def transfer(self, sender: str, dst: str, amount: int) -> bool:
        self._transfer_tokens(sender, sender, dst, amount)
        return True

    @non_reentrant
    def transfer_from(self, sender: str, src: str, dst: str, amount: int) -> bool:
        self._transfer_tokens(sender, src, dst, amount)
        return True

    @atomic
    def approve(self, sender: str, spender: str, amount: int) -> bool:
        if not spender:
            raise ProtocolError(ErrorCode.ZERO_ADDRESS, "spender")
        validate_uint(amount, "amount")
        self._allowances.setdefault(sender, {})[spender] = amount
        self.emit("Approval", owner=sender, spender=spender, amount=amount)
        return True

    def _transfer_tokens(self, spender: str, src: str, dst: str, amount: int) -> None:
        validate_uint(amount, "amount")
        if not dst:
            raise ProtocolError(ErrorCode.ZERO_ADDRESS, "dst")

        self.risk_engine.transfer_allowed(self, src, dst, amount).raise_if_blocked()

        if src == dst:
            raise ProtocolError(ErrorCode.TRANSFER_NOT_ALLOWED, f"{src} -> {dst}")

        # spender == src: allowance не ограничена
        allowance = None if spender == src else self.allowance(src, spender)
        if allowance is not None and allowance < amount:
            raise ProtocolError(
                ErrorCode.TRANSFER_NOT_ENOUGH, f"{spender} allowance {allowance} < {amount}"
            )

        src_balance = self.balance_of(src)
        if src_balance < amount:
            raise ProtocolError(
                ErrorCode.TRANSFER_NOT_ENOUGH, f"{src} balance {src_balance} < {amount}"
            )

        self._balances[src] = src_balance - amount
        self._balances[dst] = self.balance_of(dst) + amount
        if allowance is not None:
            self._allowances[src][spender] = allowance - amount

        self.emit("Transfer", src=src, dst=dst, amount=amount)

    # =========================================================================
    # ADMIN
    # =========================================================================

    @non_reentrant
    def set_comptroller(self, sender: str, new_risk_engine) -> None:
        self._accrue_interest()
        self._require_admin(sender)
        self._require_fresh(ErrorCode.SET_COMPTROLLER_FRESH_CHECK)
        _require_risk_engine(new_risk_engine)
        old = self.risk_engine
        self.risk_engine = new_risk_engine
        self.emit(
            "NewComptroller", old_comptroller=old.address, new_comptroller=new_risk_engine.address
        )
        logger.info(f"{self.symbol}: risk engine {old.address} -> {new_risk_engine.address}")

    @non_reentrant
    def set_reserve_factor(self, sender: str, new_reserve_factor_mantissa: int) -> None:
        self._accrue_interest()
        self._require_admin(sender)
        self._require_fresh(ErrorCode.SET_RESERVE_FACTOR_FRESH_CHECK)
        validate_uint(new_reserve_factor_mantissa, "reserve_factor")
        if new_reserve_factor_mantissa > RESERVE_FACTOR_MAX_MANTISSA:
            raise ProtocolError(
                ErrorCode.SET_RESERVE_FACTOR_BOUNDS_CHECK, str(new_reserve_factor_mantissa)
            )

        old = self.reserve_factor_mantissa
        self.reserve_factor_mantissa = new_reserve_factor_mantissa
        self.emit(
            "NewReserveFactor",
            old_reserve_factor_mantissa=old,
            new_reserve_factor_mantissa=new_reserve_factor_mantissa,
        )
        logger.info(f"{self.symbol}: reserve factor {old} -> {new_reserve_factor_mantissa}")

    @non_reentrant
    def set_interest_rate_model(self, sender: str, new_rate_model) -> None:
        self._accrue_interest()
        self._require_admin(sender)
        self._require_fresh(ErrorCode.SET_INTEREST_RATE_MODEL_FRESH_CHECK)
        _require_rate_model(new_rate_model)

        old = self.rate_model
        self.rate_model = new_rate_model
        self.emit(
            "NewMarketInterestRateModel",
            old_interest_rate_model=old.address,
            new_interest_rate_model=new_rate_model.address,
        )
        logger.info(f"{self.symbol}: rate model {old.address} -> {new_rate_model.address}")

    @non_reentrant
    def add_reserves(self, sender: str, add_amount: int) -> int:
        """Пополнение резервов (любой аккаунт). Возвращает фактически добавленное."""
        validate_uint(add_amount, "add_amount")
        self._accrue_interest()
        self._require_fresh(ErrorCode.ADD_RESERVES_FRESH_CHECK)

        actual_add_amount = self._do_transfer_in(sender, add_amount)
        self.total_reserves += actual_add_amount
        self.emit(
            "ReservesAdded",
            benefactor=sender,
            add_amount=actual_add_amount,
            new_total_reserves=self.total_reserves,
        )
        return actual_add_amount

    @non_reentrant
    def reduce_reserves(self, sender: str, reduce_amount: int) -> None:
        """
        Вывод резервов admin-у.

        Raises:
            ProtocolError(ReduceReservesAdminCheck / ReduceReservesFreshCheck /
            ReduceReservesCashNotAvailable / ReduceReservesCashValidation)
        """
        validate_uint(reduce_amount, "reduce_amount")
        self._accrue_interest()
        self._require_admin(sender, ErrorCode.REDUCE_RESERVES_ADMIN_CHECK)
        self._require_fresh(ErrorCode.REDUCE_RESERVES_FRESH_CHECK)

        cash = self.get_cash()
        if cash < reduce_amount:
            raise ProtocolError(
                ErrorCode.REDUCE_RESERVES_CASH_NOT_AVAILABLE, f"cash {cash} < {reduce_amount}"
            )
        if reduce_amount > self.total_reserves:
            raise ProtocolError(
                ErrorCode.REDUCE_RESERVES_CASH_VALIDATION,
                f"reserves {self.total_reserves} < {reduce_amount}",
            )

        self.total_reserves -= reduce_amount
        self._do_transfer_out(self.admin, reduce_amount)
        self.emit(
            "ReservesReduced",
            admin=self.admin,
            reduce_amount=reduce_amount,
            new_total_reserves=self.total_reserves,
        )
        logger.info(f"{self.symbol}: reserves reduced by {reduce_amount}")

    @atomic
    def sweep_token(self, sender: str, token: Erc20Token) -> int:
        """Вывод admin-у случайно отправленных токенов (кроме underlying)."""
        self._require_admin(sender)
        if token is self.underlying or token.address == self.underlying.address:
            raise ProtocolError(ErrorCode.CAN_NOT_SWEEP_UNDERLYING_TOKEN, token.address)
        balance = token.balance_of(self.address)
        token.transfer(self.address, self.admin, balance)
        logger.info(f"{self.symbol}: swept {balance} of {token.address}")
        return balance


def _require_risk_engine(candidate) -> None:
    if not getattr(candidate, "is_risk_engine", False):
        raise ProtocolError(ErrorCode.INVALID_RISK_ENGINE, repr(candidate))


def _require_rate_model(candidate) -> None:
    if not getattr(candidate, "is_interest_rate_model", False):
        raise ProtocolError(ErrorCode.INVALID_RATE_MODEL, repr(candidate))
